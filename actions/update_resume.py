import logging
from typing import Any, Optional, Sequence

from actions.context import ActionContext
from core.adaptive_timeout import OperationCategory
from core.errors import NavigationFailure, PortalError, UpdateFailure
from core.selectors import selectors
from core.utils import wait_for_event_during
from diagnostics.capture import capture_failure_screenshot

logger = logging.getLogger(__name__)


async def navigate_to_mypage(ctx: ActionContext) -> None:
    """Open My page and wait for the network to settle.

    Raises:
        NavigationFailure: If My page could not be opened after all retries.
    """
    page = ctx.page
    url = ctx.app_config.urls.mypage

    async def attempt() -> None:
        logger.debug(f"Navigating to My page: {url}")
        await ctx.estimator.measure(
            OperationCategory.NAVIGATION,
            lambda budget: page.goto(url, wait_until="networkidle", timeout=budget),
        )

    try:
        await ctx.retrier.with_retry(attempt, ctx.policy("navigate_mypage"))
    except Exception as e:
        raise NavigationFailure(f"Failed to open My page: {e}", {"url": url}) from e
    logger.info("My page loaded.")


async def confirm_update_dialog(dialog: Any, success_patterns: Sequence[str]) -> None:
    """Accept the confirmation dialog when it contains a success text, otherwise dismiss it.

    Patterns are matched as literal substrings of the dialog message.

    Raises:
        UpdateFailure: If the dialog text matches none of ``success_patterns``.
    """
    message = dialog.message
    if any(pattern in message for pattern in success_patterns):
        await dialog.accept()
        logger.info(f"Update confirmed by dialog: {message}")
        return

    await dialog.dismiss()
    raise UpdateFailure(f"Unexpected dialog message: {message}", {"dialog_message": message})


async def _remove_ad_overlay(ctx: ActionContext) -> None:
    for selector in selectors["ad_overlay"]:
        overlay = await ctx.page.query_selector(selector)
        if overlay is not None:
            await overlay.evaluate("node => node.remove()")
            logger.debug(f"Removed overlay '{selector}'.")


async def update_career_info(ctx: ActionContext) -> None:
    """Open the resume status popup, press update and confirm the resulting dialog.

    Each attempt starts again from My page; the popup opened by a failed
    attempt is closed before the next one.

    Raises:
        UpdateFailure: If no attempt got a success confirmation.
    """
    page = ctx.page
    patterns = ctx.app_config.update.success_patterns
    popup: Optional[Any] = None

    async def attempt() -> None:
        nonlocal popup
        if popup is not None and not popup.is_closed():
            await popup.close()
        popup = None

        status_selector = await ctx.resolver.resolve_any(page, selectors["mypage_status_link"])
        await _remove_ad_overlay(ctx)

        popup = await ctx.estimator.measure(
            OperationCategory.POPUP,
            lambda budget: wait_for_event_during(
                page, "popup", lambda: page.click(status_selector), timeout=budget
            ),
        )
        await popup.wait_for_load_state()
        logger.debug("Resume status popup opened.")

        update_selector = await ctx.resolver.resolve_any(popup, selectors["update_button"])
        dialog = await wait_for_event_during(
            popup,
            "dialog",
            lambda: popup.click(update_selector),
            timeout=ctx.estimator.estimate_timeout(OperationCategory.POPUP),
        )
        await confirm_update_dialog(dialog, patterns)

    try:
        await ctx.retrier.with_retry(attempt, ctx.policy("trigger_update"))
    except Exception as e:
        if ctx.app_config.diagnostics.enabled:
            await capture_failure_screenshot([popup, page], "update", ctx.app_config.diagnostics.output_dir)
        if isinstance(e, UpdateFailure):
            raise
        code = e.code.value if isinstance(e, PortalError) else type(e).__name__
        raise UpdateFailure(f"Resume update failed: {e}", {"cause": code}) from e
    logger.info("Resume updated.")
