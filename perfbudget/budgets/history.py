from __future__ import annotations

import threading
from collections import deque
from typing import Deque, List, Optional

from .models import Sample

__all__ = ["SampleHistory"]


class SampleHistory:
    """Bounded, time ordered samples of a single budget.

    Two caps apply on every append: at most ``max_entries`` samples are kept
    (oldest dropped first) and samples older than ``now - retention_s`` are
    pruned. Readers always receive copies.
    """

    def __init__(self, *, max_entries: int = 1000, retention_s: float = 86400.0) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        if retention_s <= 0:
            raise ValueError("retention_s must be > 0")
        self._max_entries = int(max_entries)
        self._retention_s = float(retention_s)
        self._samples: Deque[Sample] = deque(maxlen=self._max_entries)
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def retention_s(self) -> float:
        return self._retention_s

    def append(self, sample: Sample, *, now: Optional[float] = None) -> None:
        reference = sample.timestamp if now is None else float(now)
        with self._lock:
            self._samples.append(sample)
            self._prune(reference)

    def prune(self, now: float) -> int:
        with self._lock:
            return self._prune(float(now))

    def _prune(self, now: float) -> int:
        cutoff = now - self._retention_s
        removed = 0
        while self._samples and self._samples[0].timestamp < cutoff:
            self._samples.popleft()
            removed += 1
        return removed

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def all(self) -> List[Sample]:
        with self._lock:
            return list(self._samples)

    def values(self) -> List[float]:
        with self._lock:
            return [sample.value for sample in self._samples]

    def latest(self) -> Optional[Sample]:
        with self._lock:
            return self._samples[-1] if self._samples else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
