from __future__ import annotations

import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))

    root.handlers.clear()
    root.addHandler(handler)

    # pymongo is chatty at DEBUG (heartbeats, pool events).
    if root.getEffectiveLevel() < logging.INFO:
        logging.getLogger("pymongo").setLevel(logging.INFO)
