"""Repair promotions interrupted between the employee insert and the candidate update.

Usage::

    python -m hrms.services.reconcile [--owner <id>] [--dry-run]
"""
from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv

from hrms.config import get_config
from hrms.db import create_client
from hrms.services.transitions import CANDIDATE_PROMOTED_STATUS
from hrms.utils.datetime import utc_now
from hrms.utils.logging import setup_logging

log = logging.getLogger(__name__)


def reconcile_promotions(
    db, owner_id: ObjectId | None = None, dry_run: bool = False, *, now: datetime | None = None
) -> list[str]:
    """Mark Selected every candidate whose promotion stopped after the employee insert.

    A completed promotion stamps the candidate with the employee's ``createdAt``, and
    any later status change moves ``updatedAt`` past it. Only a candidate last written
    before its employee existed is repaired, so deliberate status changes are kept.

    Returns the ids of the candidates repaired (or that would be, with ``dry_run``).
    """
    query: dict[str, Any] = {"candidateId": {"$ne": None}}
    if owner_id is not None:
        query["ownerId"] = owner_id

    now = now or utc_now()
    repaired: list[str] = []
    for emp in db.employees.find(query, {"candidateId": 1, "ownerId": 1, "createdAt": 1}):
        cand = db.candidates.find_one(
            {"_id": emp["candidateId"], "ownerId": emp["ownerId"], "updatedAt": {"$lt": emp["createdAt"]}},
            {"status": 1},
        )
        if not cand or cand.get("status") == CANDIDATE_PROMOTED_STATUS:
            continue
        repaired.append(str(cand["_id"]))
        if dry_run:
            log.info("would mark candidate=%s Selected (employee=%s)", cand["_id"], emp["_id"])
            continue
        db.candidates.update_one(
            {"_id": cand["_id"]}, {"$set": {"status": CANDIDATE_PROMOTED_STATUS, "updatedAt": now}}
        )
        log.warning("reconciled candidate=%s to Selected (employee=%s)", cand["_id"], emp["_id"])
    return repaired


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Repair interrupted candidate promotions.")
    parser.add_argument("--owner", help="Only reconcile records of this owner id")
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    args = parser.parse_args(argv)

    load_dotenv()

    cfg = get_config()
    setup_logging(cfg.LOG_LEVEL)

    owner_id = None
    if args.owner:
        try:
            owner_id = ObjectId(args.owner)
        except (InvalidId, TypeError):
            parser.error(f"invalid owner id: {args.owner}")

    client = create_client(cfg.MONGODB_URI, server_selection_timeout_ms=cfg.MONGO_SERVER_SELECTION_TIMEOUT_MS)
    try:
        repaired = reconcile_promotions(client[cfg.DB_NAME], owner_id=owner_id, dry_run=args.dry_run)
    finally:
        client.close()

    print(json.dumps({"dryRun": args.dry_run, "repaired": repaired}))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
