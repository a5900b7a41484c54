from dataclasses import dataclass, field
from typing import Optional

from playwright.async_api import Page

from config import AppConfig
from core.adaptive_timeout import AdaptiveTimeoutEstimator
from core.resilience import OperationRetrier, RetryPolicy
from core.selectors import SelectorFallbackResolver


@dataclass
class ActionContext:
    """Everything a portal action needs: the page plus the shared resilience objects."""

    page: Page
    app_config: AppConfig
    estimator: AdaptiveTimeoutEstimator
    retrier: OperationRetrier = field(default_factory=OperationRetrier)
    resolver: Optional[SelectorFallbackResolver] = None

    def __post_init__(self) -> None:
        if self.resolver is None:
            self.resolver = SelectorFallbackResolver(self.estimator)

    def policy(self, label: str) -> RetryPolicy:
        return RetryPolicy.for_operation(self.app_config.retry, label)
