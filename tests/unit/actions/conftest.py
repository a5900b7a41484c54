from unittest.mock import AsyncMock, MagicMock

import pytest

from actions.context import ActionContext
from core.adaptive_timeout import AdaptiveTimeoutEstimator
from core.resilience import OperationRetrier


@pytest.fixture
def mock_resolver():
    """Resolver stand-in that always picks the primary candidate."""
    resolver = MagicMock()
    resolver.resolve_any = AsyncMock(side_effect=lambda surface, candidates, **kwargs: candidates[0])
    return resolver


@pytest.fixture
def action_context(mock_page, app_config, recording_sleep, mock_resolver):
    return ActionContext(
        page=mock_page,
        app_config=app_config,
        estimator=AdaptiveTimeoutEstimator(app_config.adaptive_timeout),
        retrier=OperationRetrier(sleep=recording_sleep),
        resolver=mock_resolver,
    )

