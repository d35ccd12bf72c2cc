"""
Timing metrics for the ingestion path.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from .logging import get_logger

logger = get_logger(__name__)


class MetricsService:
    """Accumulates wall-clock totals in milliseconds per metric key."""

    def __init__(self):
        self.logger = logger.bind(service="metrics")
        self._start_times: Dict[str, float] = {}
        self._totals: Dict[str, float] = {}

    def start_metric(self, key: str) -> None:
        self._start_times[key] = time.perf_counter()
        self._totals.setdefault(key, 0.0)

    def sum_metric(self, key: str) -> None:
        start = self._start_times.pop(key, None)
        if start is None:
            return
        elapsed = (time.perf_counter() - start) * 1000
        self._totals[key] = self._totals.get(key, 0.0) + elapsed

    @asynccontextmanager
    async def track(self, key: str) -> AsyncIterator[None]:
        """
        Time the enclosed block and add it to the running total.

        Usage:
            async with metrics.track("system_eventstore_save"):
                await event_store.save(models)
        """
        self.start_metric(key)
        try:
            yield
        finally:
            self.sum_metric(key)

    def get_metric(self, key: str) -> float:
        return self._totals.get(key, 0.0)

    def get_all_metrics(self) -> Dict[str, float]:
        return dict(self._totals)

    def log_metrics(self) -> None:
        """Log every accumulated total."""
        self.logger.info(
            "📊 Metrics totals",
            **{key: f"{value:.2f} ms" for key, value in self._totals.items()}
        )
