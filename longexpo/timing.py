from __future__ import annotations

from contextlib import contextmanager
from time import perf_counter
from typing import Dict, Iterator, Optional


class TimingStats:
    """Accumulated wall time and call counts per named phase."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._totals: Dict[str, float] = {}
        self._counts: Dict[str, int] = {}

    def add(self, name: str, dt: float) -> None:
        if not self.enabled:
            return
        self._totals[name] = self._totals.get(name, 0.0) + dt
        self._counts[name] = self._counts.get(name, 0) + 1

    def as_dict(self) -> Dict[str, Dict[str, float] | Dict[str, int]]:
        return {"totals": dict(self._totals), "counts": dict(self._counts)}


@contextmanager
def record(ts: Optional[TimingStats], name: str) -> Iterator[None]:
    if ts is None or not ts.enabled:
        yield
        return
    t0 = perf_counter()
    try:
        yield
    finally:
        ts.add(name, perf_counter() - t0)
