from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from actions.context import ActionContext
from actions.login import authenticate, dismiss_login_popup, navigate_to_login_page
from core.errors import AuthenticationFailure, ErrorCode, NavigationFailure, SelectorLookupFailure
from core.selectors import selectors


def make_dialog(message):
    dialog = MagicMock()
    dialog.message = message
    dialog.accept = AsyncMock()
    dialog.dismiss = AsyncMock()
    return dialog


def make_popup(dialog=None):
    popup = AsyncMock()
    popup.is_closed = MagicMock(return_value=False)
    popup.wait_for_event = AsyncMock(return_value=dialog)
    return popup


class TestNavigateToLoginPage:

    @pytest.mark.asyncio
    async def test_opens_login_url_and_waits_for_id_field(self, action_context, mock_page, mock_resolver):
        await navigate_to_login_page(action_context)

        mock_page.goto.assert_awaited_once_with(
            "https://www.jobkorea.co.kr/Login/", wait_until="domcontentloaded", timeout=20000
        )
        mock_resolver.resolve_any.assert_awaited_once_with(mock_page, selectors["login_id_input"])

    @pytest.mark.asyncio
    async def test_retries_then_raises_navigation_failure(self, action_context, mock_page, recording_sleep):
        mock_page.goto = AsyncMock(side_effect=PlaywrightTimeoutError("net::ERR_TIMED_OUT"))

        with pytest.raises(NavigationFailure) as exc_info:
            await navigate_to_login_page(action_context)

        assert exc_info.value.code is ErrorCode.NAVIGATION_ERROR
        assert mock_page.goto.await_count == 3
        assert recording_sleep.calls == [2.0, 4.0]


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_fills_form_and_waits_for_logged_in_marker(self, action_context, mock_page, mock_resolver):
        await authenticate(action_context, "tester01", "s3cret-pass")

        mock_page.fill.assert_any_await(selectors["login_id_input"][0], "tester01")
        mock_page.fill.assert_any_await(selectors["login_password_input"][0], "s3cret-pass")
        mock_page.click.assert_awaited_once_with(selectors["login_button"][0])
        mock_page.wait_for_load_state.assert_awaited_once_with("networkidle", timeout=20000)
        resolved_groups = [c.args[1] for c in mock_resolver.resolve_any.await_args_list]
        assert resolved_groups[-1] == selectors["mypage_status_link"]

    @pytest.mark.asyncio
    async def test_failure_takes_screenshot_and_raises(self, action_context, mock_page, mock_resolver, app_config):
        def resolve(surface, candidates, **kwargs):
            if candidates == selectors["mypage_status_link"]:
                raise SelectorLookupFailure(candidates, 15000, "visible")
            return candidates[0]

        mock_resolver.resolve_any = AsyncMock(side_effect=resolve)

        with pytest.raises(AuthenticationFailure) as exc_info:
            await authenticate(action_context, "tester01", "s3cret-pass")

        assert exc_info.value.context["cause"] == "ELEMENT_NOT_FOUND"
        assert mock_page.click.await_count == 3
        mock_page.screenshot.assert_awaited_once()
        screenshot_path = mock_page.screenshot.await_args.kwargs["path"]
        assert screenshot_path.startswith(str(app_config.diagnostics.output_dir / "error-login-"))

    @pytest.mark.asyncio
    async def test_no_screenshot_when_diagnostics_disabled(self, action_context, mock_page, mock_resolver):
        action_context.app_config.diagnostics.enabled = False
        mock_page.fill = AsyncMock(side_effect=RuntimeError("detached"))

        with pytest.raises(AuthenticationFailure):
            await authenticate(action_context, "tester01", "s3cret-pass")

        mock_page.screenshot.assert_not_awaited()


class TestDismissLoginPopup:

    @pytest.mark.asyncio
    async def test_dismisses_password_change_dialog(self, action_context, mock_page, mock_resolver):
        dialog = make_dialog("비밀번호를 나중에 변경하시겠습니까?")
        popup = make_popup(dialog)
        mock_page.wait_for_event = AsyncMock(return_value=popup)

        await dismiss_login_popup(action_context)

        mock_page.wait_for_event.assert_awaited_once_with("popup", timeout=10000)
        popup.click.assert_awaited_once_with(selectors["password_change_later"][0])
        dialog.dismiss.assert_awaited_once()
        mock_resolver.resolve_any.assert_awaited_once_with(
            popup, selectors["password_change_later"], timeout_budget=10000
        )

    @pytest.mark.asyncio
    async def test_missing_popup_is_not_an_error(self, action_context, mock_page):
        mock_page.wait_for_event = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 10000ms exceeded"))

        await dismiss_login_popup(action_context)

    @pytest.mark.asyncio
    async def test_popup_wait_is_not_recorded(self, action_context, mock_page):
        mock_page.wait_for_event = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout"))

        await dismiss_login_popup(action_context)

        assert action_context.estimator.snapshot("popup")["measurement_count"] == 0


def test_context_builds_default_resolver(mock_page, app_config):
    from core.adaptive_timeout import AdaptiveTimeoutEstimator

    estimator = AdaptiveTimeoutEstimator()
    ctx = ActionContext(page=mock_page, app_config=app_config, estimator=estimator)
    assert ctx.resolver.estimator is estimator
    assert ctx.policy("authenticate").label == "authenticate"
