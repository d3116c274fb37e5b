"""
Thread-safe counters for the guaranteed JSON engine.
"""

import threading
from dataclasses import asdict, dataclass


@dataclass
class _Counters:
    total_requests: int = 0
    first_pass_success: int = 0
    repaired_success: int = 0
    fallback_used: int = 0
    cache_hits: int = 0
    model_errors: int = 0
    total_attempts: int = 0
    total_latency_ms: float = 0.0


class EngineMetrics:
    """
    Process-wide engine counters.

    Counters only ever increase; ``reset`` is the explicit administrative
    way to clear them.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters = _Counters()

    def record_request(self) -> None:
        with self._lock:
            self._counters.total_requests += 1

    def record_cache_hit(self) -> None:
        with self._lock:
            self._counters.cache_hits += 1

    def record_model_error(self) -> None:
        with self._lock:
            self._counters.model_errors += 1

    def record_outcome(self, outcome: str, attempts: int, latency_ms: float) -> None:
        """
        Record how a generation request finished.

        Args:
            outcome: One of ``first_pass``, ``repaired`` or ``fallback``
            attempts: Model calls made for the request
            latency_ms: Wall-clock time spent on the request
        """
        with self._lock:
            if outcome == "first_pass":
                self._counters.first_pass_success += 1
            elif outcome == "repaired":
                self._counters.repaired_success += 1
            elif outcome == "fallback":
                self._counters.fallback_used += 1
            else:
                raise ValueError(f"Unknown generation outcome: {outcome}")
            self._counters.total_attempts += attempts
            self._counters.total_latency_ms += latency_ms

    def snapshot(self) -> dict[str, float | int]:
        """Return the counters plus derived averages and percentage rates."""
        with self._lock:
            counters = asdict(self._counters)

        total = counters["total_requests"]
        finished = (
            counters["first_pass_success"]
            + counters["repaired_success"]
            + counters["fallback_used"]
        )

        def rate(count: int) -> float:
            return (count / total) * 100 if total else 0.0

        total_attempts = counters.pop("total_attempts")
        total_latency_ms = counters.pop("total_latency_ms")
        return {
            **counters,
            "average_attempts": total_attempts / finished if finished else 0.0,
            "average_latency_ms": total_latency_ms / finished if finished else 0.0,
            "first_pass_rate": rate(counters["first_pass_success"]),
            "repaired_rate": rate(counters["repaired_success"]),
            "fallback_rate": rate(counters["fallback_used"]),
            "cache_hit_rate": rate(counters["cache_hits"]),
            "overall_success_rate": rate(
                counters["first_pass_success"] + counters["repaired_success"]
            ),
        }

    def reset(self) -> None:
        with self._lock:
            self._counters = _Counters()
