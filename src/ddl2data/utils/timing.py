"""Timing utilities for generation stage latencies."""

import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, Iterator, List, Optional

from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TimingStat:
    """Durations recorded for one stage."""

    timings: List[float] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.timings)

    @property
    def total_ms(self) -> float:
        return sum(self.timings)

    def to_dict(self) -> Dict[str, Any]:
        """Summary in the camelCase shape used by generation metadata."""
        if not self.timings:
            return {"count": 0, "totalMs": 0.0, "meanMs": 0.0, "maxMs": 0.0}
        return {
            "count": self.count,
            "totalMs": round(self.total_ms, 3),
            "meanMs": round(self.total_ms / self.count, 3),
            "maxMs": round(max(self.timings), 3),
        }


class LatencyTracker:
    """Thread-safe per-stage duration tracker.

    One tracker per generation run; its stats end up in ``meta["timings"]``.
    """

    def __init__(self):
        self._stats: Dict[str, TimingStat] = defaultdict(TimingStat)
        self._lock = Lock()

    def record(self, stage: str, duration_ms: float) -> None:
        with self._lock:
            self._stats[stage].timings.append(duration_ms)

    def get_stats(self) -> Dict[str, Any]:
        """Summaries keyed by stage name."""
        with self._lock:
            return {stage: stat.to_dict() for stage, stat in self._stats.items()}


_process_tracker = LatencyTracker()


@contextmanager
def TimingContext(
    stage: str,
    tracker: Optional[LatencyTracker] = None,
    log_level: str = "debug",
) -> Iterator[None]:
    """
    Context manager timing one stage.

    Example:
        with TimingContext("generate_table", tracker=tracker):
            rows = generator.generate_table(name, table)

    Args:
        stage: Stage name ("schema_parse", "generate_table", "validate")
        tracker: Tracker to record into (process-wide tracker if None)
        log_level: Logging level for the timing message
    """
    start_time = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        (tracker or _process_tracker).record(stage, duration_ms)

        log_fn = getattr(logger, log_level, logger.debug)
        log_fn(f"{stage} took {duration_ms:.3f}ms")
