"""
Telegram notifications for the resume refresher.

Message bodies are HTML (``parse_mode=HTML``); anything interpolated from an
error is escaped before it is sent.
"""

import html
import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

import httpx

from config import NotificationConfig
from core.adaptive_timeout import AdaptiveTimeoutEstimator, OperationCategory
from core.errors import NetworkFailure, PortalError
from core.resilience import OperationRetrier, RetryPolicy

logger = logging.getLogger(__name__)

SEND_LABEL = "telegram_send"


def build_success_message(retry_count: int, now: datetime) -> str:
    """
    Build the success notification.

    Args:
        retry_count: Number of process retries that were needed (0 on a first-try success).
        now: Completion time, already in the display timezone.
    """
    lines = [
        "✅ Resume update completed!",
        f"Date: {now.strftime('%Y-%m-%d')}",
        f"Time: {now.strftime('%H:%M:%S')} (KST)",
    ]
    if retry_count > 0:
        lines.append(f"Retry count: {retry_count}")
    return "<blockquote>" + "\n".join(lines) + "</blockquote>"


def build_failure_message(error: BaseException, attempts: int) -> str:
    """Build the failure notification naming the error and how many attempts were made."""
    reason = html.escape(str(error) or type(error).__name__, quote=False)
    if isinstance(error, PortalError):
        reason = f"{reason} ({error.code.value})"
    lines = [
        "❌ Resume update failed!",
        f"Reason: {reason}",
        f"Retry count: {attempts} retries, all failed",
    ]
    return "<blockquote>" + "\n".join(lines) + "</blockquote>"


class TelegramNotifier:
    """Sends messages through the Telegram Bot API ``sendMessage`` method."""

    def __init__(
        self,
        token: str,
        chat_id: str,
        notification_config: Optional[NotificationConfig] = None,
        estimator: Optional[AdaptiveTimeoutEstimator] = None,
        retrier: Optional[OperationRetrier] = None,
        policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.chat_id = chat_id
        self.config = notification_config or NotificationConfig()
        self.estimator = estimator or AdaptiveTimeoutEstimator()
        self.retrier = retrier or OperationRetrier()
        self.policy = policy or RetryPolicy(label=SEND_LABEL)
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.config.api_base_url}/bot{self.token}/sendMessage"

    @property
    def redacted_endpoint(self) -> str:
        return f"{self.config.api_base_url}/bot***/sendMessage"

    def now(self) -> datetime:
        return datetime.now(ZoneInfo(self.config.timezone))

    async def send_message(self, text: str, parse_mode: Optional[str] = None) -> None:
        """
        Post ``text`` to the configured chat.

        Server errors and transport errors are retried; a 4xx answer is not.

        Raises:
            NetworkFailure: When the message could not be delivered.
        """
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": parse_mode or self.config.parse_mode}
        response = await self.retrier.with_retry(lambda: self._post(payload), self.policy)

        if response.status_code >= 400:
            raise NetworkFailure(
                f"Telegram rejected the message: HTTP {response.status_code}",
                status_code=response.status_code,
                url=self.redacted_endpoint,
                permanent=True,
            )
        logger.info("Telegram message sent.")

    async def _post(self, payload: dict) -> httpx.Response:
        timeout_ms = self.estimator.estimate_timeout(OperationCategory.NETWORK)

        async def post(budget: int) -> httpx.Response:
            async with httpx.AsyncClient(timeout=budget / 1000.0, transport=self._transport) as client:
                response = await client.post(self.endpoint, json=payload)
            # Server errors count as failed network attempts
            if response.status_code >= 500:
                raise NetworkFailure(
                    f"Telegram server error: HTTP {response.status_code}",
                    status_code=response.status_code,
                    url=self.redacted_endpoint,
                )
            return response

        try:
            return await self.estimator.measure(OperationCategory.NETWORK, post, timeout_ms)
        except httpx.TransportError as e:
            raise NetworkFailure(
                f"Telegram request failed: {type(e).__name__}",
                url=self.redacted_endpoint,
            ) from None

    async def notify_success(self, retry_count: int) -> None:
        await self.send_message(build_success_message(retry_count, self.now()))

    async def notify_failure(self, error: BaseException, attempts: int) -> None:
        await self.send_message(build_failure_message(error, attempts))
