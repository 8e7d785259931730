"""Metrics tracking for a probe run."""
import time
import logging
from collections import defaultdict
from typing import Dict

from sentinel.models import ErrorKind, ProbeOutcome

logger = logging.getLogger(__name__)


class RunMetrics:
    """Count probe outcomes by liveness and error kind."""

    def __init__(self, total: int):
        self.total = total
        self.start_time = time.time()
        self.counters: Dict[str, int] = defaultdict(int)
        self.response_times: list[int] = []

    def increment(self, key: str, amount: int = 1) -> None:
        """Increment a counter."""
        self.counters[key] = self.counters.get(key, 0) + amount

    def record(self, outcome: ProbeOutcome) -> None:
        """Fold one outcome into the counters."""
        self.increment("probed")
        self.increment("live" if outcome.is_live else "down")
        self.increment(outcome.error_kind.value)
        if outcome.elapsed_ms is not None:
            self.response_times.append(outcome.elapsed_ms)

    def avg_response_ms(self) -> float:
        if not self.response_times:
            return 0.0
        return sum(self.response_times) / len(self.response_times)

    def report(self) -> None:
        """Log current metrics."""
        elapsed = time.time() - self.start_time
        probed = self.counters.get("probed", 0)
        kinds = " | ".join(
            f"{kind.value}: {self.counters.get(kind.value, 0)}" for kind in ErrorKind
        )
        logger.info(
            f"Probed: {probed}/{self.total} in {elapsed:.1f}s | "
            f"Live: {self.counters.get('live', 0)} | "
            f"Down: {self.counters.get('down', 0)} | "
            f"Avg response: {self.avg_response_ms():.0f}ms | "
            f"{kinds}"
        )

    def get_summary(self) -> Dict:
        """Get summary statistics."""
        return {
            "total": self.total,
            "probed": self.counters.get("probed", 0),
            "live": self.counters.get("live", 0),
            "down": self.counters.get("down", 0),
            "error_kinds": {kind.value: self.counters.get(kind.value, 0) for kind in ErrorKind},
            "avg_response_ms": round(self.avg_response_ms(), 1),
            "elapsed_seconds": round(time.time() - self.start_time, 3),
        }
