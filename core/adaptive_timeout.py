"""
Adaptive timeout estimation.

Keeps rolling latency/success statistics per operation category and derives
the wait budget for the next attempt of that category. The estimator is a
plain object owned by whoever runs the workflow; it is passed to every call
site that needs it. All callers share one event loop, so no locking is done.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Deque, Dict, Optional, TypeVar, Union

from config import AdaptiveTimeoutConfig
from core.errors import TimeoutFailure
from core.logger import get_structured_logger

T = TypeVar("T")


class OperationCategory(str, Enum):
    NAVIGATION = "navigation"
    ELEMENT = "element"
    POPUP = "popup"
    NETWORK = "network"


CategoryKey = Union[OperationCategory, str]


@dataclass
class TimeoutMetrics:
    """Rolling statistics for one operation category."""

    window: int
    recent_latencies: Deque[float] = field(default_factory=deque)
    success_rate: float = 1.0
    measurement_count: int = 0

    def __post_init__(self) -> None:
        self.recent_latencies = deque(self.recent_latencies, maxlen=self.window)

    @property
    def average_latency(self) -> float:
        if not self.recent_latencies:
            return 0.0
        return sum(self.recent_latencies) / len(self.recent_latencies)

    def reset(self) -> None:
        self.recent_latencies.clear()
        self.success_rate = 1.0
        self.measurement_count = 0


def _category_name(category: CategoryKey) -> str:
    return category.value if isinstance(category, OperationCategory) else str(category)


class AdaptiveTimeoutEstimator:
    """Derives per-category timeouts from recorded outcomes."""

    def __init__(self, timeout_config: Optional[AdaptiveTimeoutConfig] = None):
        self.config = timeout_config or AdaptiveTimeoutConfig()
        self.logger = get_structured_logger(__name__)
        self._metrics: Dict[str, TimeoutMetrics] = {}

    def metrics_for(self, category: CategoryKey) -> TimeoutMetrics:
        """Return the metrics of ``category``, creating them on first use."""
        name = _category_name(category)
        if name not in self._metrics:
            self._metrics[name] = TimeoutMetrics(window=self.config.measurement_window)
        return self._metrics[name]

    def record_outcome(self, category: CategoryKey, duration_ms: float, succeeded: bool) -> None:
        """
        Record one attempt of ``category``.

        Only successful attempts contribute a latency sample; every attempt
        counts towards the measurement count and the success rate.
        """
        metrics = self.metrics_for(category)
        if succeeded:
            metrics.recent_latencies.append(duration_ms)
        metrics.measurement_count += 1

        recent_window = min(self.config.measurement_window, metrics.measurement_count)
        metrics.success_rate = len(metrics.recent_latencies) / recent_window

        self.logger.debug(
            "timeout_measurement_recorded",
            category=_category_name(category),
            duration_ms=round(duration_ms),
            succeeded=succeeded,
            average_latency_ms=round(metrics.average_latency),
            success_rate=round(metrics.success_rate, 3),
        )

    def base_timeout(self, category: CategoryKey) -> int:
        return self.config.category_base_timeouts.get(
            _category_name(category), self.config.base_timeout
        )

    def estimate_timeout(self, category: CategoryKey) -> int:
        """Return the timeout in milliseconds for the next attempt of ``category``."""
        name = _category_name(category)
        base = self.base_timeout(category)
        metrics = self._metrics.get(name)

        # Too little data to adjust anything
        if metrics is None or metrics.measurement_count < self.config.min_measurements:
            return base

        timeout = float(base)
        if metrics.success_rate < self.config.success_threshold:
            timeout *= self.config.failure_multiplier
            self.logger.warning(
                "adaptive_timeout_widened",
                category=name,
                success_rate=round(metrics.success_rate, 3),
                timeout_ms=round(timeout),
            )
        elif metrics.success_rate > self.config.high_success_threshold:
            timeout *= self.config.success_multiplier
            self.logger.info(
                "adaptive_timeout_tightened",
                category=name,
                success_rate=round(metrics.success_rate, 3),
                timeout_ms=round(timeout),
            )

        if metrics.recent_latencies:
            latency_floor = metrics.average_latency * self.config.latency_safety_factor
            timeout = max(timeout, latency_floor)

        timeout = max(self.config.min_timeout, min(self.config.max_timeout, timeout))
        result = round(timeout)
        self.logger.info("adaptive_timeout_calculated", category=name, timeout_ms=result)
        return result

    async def measure(
        self,
        category: CategoryKey,
        operation: Callable[[int], Awaitable[T]],
        timeout_ms: Optional[int] = None,
    ) -> T:
        """
        Run ``operation(timeout_ms)`` bounded by the adaptive timeout and record its outcome.

        The timeout is handed to the operation as well so that Playwright calls
        can use the same budget. When the timer fires first the waiting stops and
        :class:`TimeoutFailure` is raised; the browser-side call is not aborted.

        Raises:
            TimeoutFailure: If the operation did not finish in time.
        """
        budget = timeout_ms if timeout_ms is not None else self.estimate_timeout(category)
        start = time.monotonic()
        succeeded = False
        try:
            result = await asyncio.wait_for(operation(budget), timeout=budget / 1000.0)
            succeeded = True
            return result
        except asyncio.TimeoutError as e:
            raise TimeoutFailure(
                f"Operation timeout after {budget}ms",
                timeout_ms=budget,
                category=_category_name(category),
            ) from e
        finally:
            self.record_outcome(category, (time.monotonic() - start) * 1000, succeeded)

    def reset(self, category: Optional[CategoryKey] = None) -> None:
        """Reset one category, or all of them when ``category`` is None."""
        if category is None:
            for metrics in self._metrics.values():
                metrics.reset()
        else:
            self.metrics_for(category).reset()
        self.logger.info("timeout_metrics_reset", category=_category_name(category) if category else "all")

    def snapshot(self, category: CategoryKey) -> Dict[str, object]:
        metrics = self.metrics_for(category)
        return {
            "recent_latencies": list(metrics.recent_latencies),
            "average_latency": metrics.average_latency,
            "success_rate": metrics.success_rate,
            "measurement_count": metrics.measurement_count,
        }
