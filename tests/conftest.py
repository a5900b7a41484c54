import os
import sys
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config import AppConfig, CredentialsConfig, DiagnosticsConfig
from core.validation import Credentials

VALID_TOKEN = "123456789:AAExampleTokenValue_abc-123"


class RecordingSleep:
    """Stand-in for asyncio.sleep that returns immediately and remembers the delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def app_config(tmp_path):
    """Application config with screenshots written to a temporary directory."""
    return AppConfig(diagnostics=DiagnosticsConfig(enabled=True, output_dir=tmp_path))


@pytest.fixture
def credentials_config():
    return CredentialsConfig(
        JOBKOREA_ID="tester01",
        JOBKOREA_PWD="s3cret-pass",
        TELEGRAM_BOT_TOKEN=VALID_TOKEN,
        TELEGRAM_CHAT_ID="-100123456",
    )


@pytest.fixture
def credentials():
    return Credentials(
        jobkorea_id="tester01",
        jobkorea_pwd="s3cret-pass",
        telegram_token=VALID_TOKEN,
        telegram_chat_id="-100123456",
    )


@pytest.fixture
def mock_page():
    """Fixture to provide a mock Playwright page."""
    page = AsyncMock()
    page.is_closed = MagicMock(return_value=False)
    page.wait_for_selector = AsyncMock()
    page.goto = AsyncMock()
    page.fill = AsyncMock()
    page.click = AsyncMock()
    page.screenshot = AsyncMock()
    page.query_selector = AsyncMock(return_value=None)
    return page
