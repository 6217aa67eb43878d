from __future__ import annotations

import threading
from collections import OrderedDict
from typing import List, Optional

from .models import ViolationRecord


class ViolationLog:
    """Thread-safe bounded log of violation episodes, oldest first.

    Each episode occupies one slot keyed by record id; updates to an open
    episode replace its entry in place.
    """

    def __init__(self, capacity: int = 1000) -> None:
        self._capacity = max(1, int(capacity))
        self._records: "OrderedDict[str, ViolationRecord]" = OrderedDict()
        self._lock = threading.RLock()

    def upsert(self, record: ViolationRecord) -> None:
        with self._lock:
            self._records[record.id] = record.snapshot()
            while len(self._records) > self._capacity:
                self._records.popitem(last=False)

    def records(self, budget_name: Optional[str] = None, limit: Optional[int] = None) -> List[ViolationRecord]:
        with self._lock:
            items = [record.snapshot() for record in self._records.values()]
        if budget_name is not None:
            items = [record for record in items if record.budget_name == budget_name]
        if limit is not None:
            if limit <= 0:
                return []
            items = items[-limit:]
        return items

    def discard_budget(self, budget_name: str) -> int:
        with self._lock:
            keys = [key for key, record in self._records.items() if record.budget_name == budget_name]
            for key in keys:
                del self._records[key]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["ViolationLog"]
