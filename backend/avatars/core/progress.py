"""
Progress Reporter - Fans build progress out to every sink

Values are clamped so the reported sequence never decreases, even where
stage windows overlap. Sinks are best-effort: a failing sink is logged and
the build carries on.
"""
import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

ProgressSink = Callable[[float, str], None]


class ProgressReporter:
    """Monotonic progress dispatcher for one build"""

    def __init__(self, sinks: Optional[List[Optional[ProgressSink]]] = None):
        self._sinks: List[ProgressSink] = [s for s in (sinks or []) if s is not None]
        self.value = 0.0
        self.status = ""

    def add_sink(self, sink: ProgressSink) -> None:
        self._sinks.append(sink)

    def report(self, value: float, status: str) -> float:
        """
        Report progress

        Args:
            value: Ratio in [0, 1]
            status: Human-readable status

        Returns:
            The value actually dispatched after clamping
        """
        value = min(1.0, max(float(value), self.value))
        self.value = value
        self.status = status

        for sink in list(self._sinks):
            try:
                sink(value, status)
            except Exception as e:
                logger.warning(f"[ProgressReporter] Progress sink failed: {e}")
        return value


__all__ = ["ProgressReporter", "ProgressSink"]
