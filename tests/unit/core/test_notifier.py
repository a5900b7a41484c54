import json
from datetime import datetime
from zoneinfo import ZoneInfo

import httpx
import pytest

from core.errors import ErrorCode, NetworkFailure, UpdateFailure
from core.notifier import TelegramNotifier, build_failure_message, build_success_message
from core.resilience import OperationRetrier

TOKEN = "123456789:AAExampleTokenValue_abc-123"
CHAT_ID = "-100123456"


def make_notifier(handler, recording_sleep):
    return TelegramNotifier(
        TOKEN,
        CHAT_ID,
        retrier=OperationRetrier(sleep=recording_sleep),
        transport=httpx.MockTransport(handler),
    )


class TestMessages:

    def test_success_message_without_retries(self):
        now = datetime(2024, 5, 1, 8, 50, 3, tzinfo=ZoneInfo("Asia/Seoul"))
        message = build_success_message(0, now)
        assert message.startswith("<blockquote>✅ Resume update completed!")
        assert "Date: 2024-05-01" in message
        assert "Time: 08:50:03 (KST)" in message
        assert "Retry count" not in message
        assert message.endswith("</blockquote>")

    def test_success_message_with_retries(self):
        now = datetime(2024, 5, 1, 12, 50, tzinfo=ZoneInfo("Asia/Seoul"))
        assert "Retry count: 2" in build_success_message(2, now)

    def test_failure_message_escapes_and_names_code(self):
        message = build_failure_message(UpdateFailure("Unexpected dialog message: <b>error</b> & more"), 3)
        assert "❌ Resume update failed!" in message
        assert "Reason: Unexpected dialog message: &lt;b&gt;error&lt;/b&gt; &amp; more (UPDATE_ERROR)" in message
        assert "Retry count: 3 retries, all failed" in message

    def test_failure_message_for_plain_exception(self):
        message = build_failure_message(RuntimeError(), 1)
        assert "Reason: RuntimeError" in message


class TestTelegramNotifier:

    @pytest.mark.asyncio
    async def test_posts_send_message_payload(self, recording_sleep):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"ok": True})

        await make_notifier(handler, recording_sleep).send_message("hello")

        assert len(requests) == 1
        assert str(requests[0].url) == f"https://api.telegram.org/bot{TOKEN}/sendMessage"
        assert json.loads(requests[0].content) == {"chat_id": CHAT_ID, "text": "hello", "parse_mode": "HTML"}
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, recording_sleep):
        responses = iter([httpx.Response(502), httpx.Response(200, json={"ok": True})])

        await make_notifier(lambda request: next(responses), recording_sleep).send_message("hello")

        assert recording_sleep.calls == [2.0]

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, recording_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, json={"ok": False, "description": "chat not found"})

        with pytest.raises(NetworkFailure) as exc_info:
            await make_notifier(handler, recording_sleep).send_message("hello")

        assert len(calls) == 1
        assert exc_info.value.permanent is True
        assert exc_info.value.status_code == 400
        assert TOKEN not in exc_info.value.url

    @pytest.mark.asyncio
    async def test_transport_error_exhausts_retries(self, recording_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkFailure) as exc_info:
            await make_notifier(handler, recording_sleep).send_message("hello")

        assert len(calls) == 3
        assert exc_info.value.code is ErrorCode.NETWORK_ERROR
        assert exc_info.value.permanent is False
        assert TOKEN not in str(exc_info.value)
        assert recording_sleep.calls == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_notify_failure_sends_failure_text(self, recording_sleep):
        texts = []

        def handler(request):
            texts.append(json.loads(request.content)["text"])
            return httpx.Response(200, json={"ok": True})

        await make_notifier(handler, recording_sleep).notify_failure(UpdateFailure("no dialog"), 3)

        assert "no dialog (UPDATE_ERROR)" in texts[0]

    @pytest.mark.asyncio
    async def test_server_errors_count_as_failed_network_attempts(self, recording_sleep):
        from core.adaptive_timeout import AdaptiveTimeoutEstimator, OperationCategory

        estimator = AdaptiveTimeoutEstimator()
        notifier = TelegramNotifier(
            TOKEN,
            CHAT_ID,
            estimator=estimator,
            retrier=OperationRetrier(sleep=recording_sleep),
            transport=httpx.MockTransport(lambda request: httpx.Response(502)),
        )

        with pytest.raises(NetworkFailure) as exc_info:
            await notifier.send_message("hello")

        assert exc_info.value.status_code == 502
        snapshot = estimator.snapshot(OperationCategory.NETWORK)
        assert snapshot["measurement_count"] == 3
        assert snapshot["success_rate"] == 0.0
        assert snapshot["recent_latencies"] == []

    @pytest.mark.asyncio
    async def test_client_error_counts_as_completed_network_attempt(self, recording_sleep):
        from core.adaptive_timeout import AdaptiveTimeoutEstimator, OperationCategory

        estimator = AdaptiveTimeoutEstimator()
        notifier = TelegramNotifier(
            TOKEN,
            CHAT_ID,
            estimator=estimator,
            retrier=OperationRetrier(sleep=recording_sleep),
            transport=httpx.MockTransport(lambda request: httpx.Response(403)),
        )

        with pytest.raises(NetworkFailure):
            await notifier.send_message("hello")

        assert estimator.snapshot(OperationCategory.NETWORK)["measurement_count"] == 1
