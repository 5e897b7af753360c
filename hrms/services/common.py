from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Page:
    items: list[dict[str, Any]]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def contains_ci(text: str) -> dict[str, str]:
    return {"$regex": re.escape(text), "$options": "i"}


def equals_ci(text: str) -> dict[str, str]:
    return {"$regex": f"^{re.escape(text)}$", "$options": "i"}


def paginate(collection, query: dict[str, Any], *, page: int, limit: int, sort: list[tuple[str, int]]) -> Page:
    cursor = collection.find(query).sort(sort).skip((page - 1) * limit).limit(limit)
    items = list(cursor)
    total = collection.count_documents(query)
    return Page(items=items, total=total, page=page, limit=limit)
