import logging

from playwright.async_api import Page

from actions.context import ActionContext
from core.adaptive_timeout import OperationCategory
from core.errors import AuthenticationFailure, NavigationFailure, PortalError
from core.selectors import selectors
from core.utils import wait_for_event_during
from diagnostics.capture import capture_failure_screenshot

logger = logging.getLogger(__name__)


async def navigate_to_login_page(ctx: ActionContext) -> None:
    """Open the login page and wait until the ID field is visible.

    Raises:
        NavigationFailure: If the page could not be opened after all retries.
    """
    page = ctx.page
    url = ctx.app_config.urls.login

    async def attempt() -> None:
        logger.debug(f"Navigating to login page: {url}")
        await ctx.estimator.measure(
            OperationCategory.NAVIGATION,
            lambda budget: page.goto(url, wait_until="domcontentloaded", timeout=budget),
        )
        await ctx.resolver.resolve_any(page, selectors["login_id_input"])

    try:
        await ctx.retrier.with_retry(attempt, ctx.policy("navigate_login"))
    except Exception as e:
        raise NavigationFailure(f"Failed to open the login page: {e}", {"url": url}) from e
    logger.info("Login page loaded.")


async def authenticate(ctx: ActionContext, user_id: str, password: str) -> None:
    """Fill in the login form, submit it and wait for the logged-in My page marker.

    Raises:
        AuthenticationFailure: If no attempt reached the logged-in state.
    """
    page = ctx.page

    async def attempt() -> None:
        id_selector = await ctx.resolver.resolve_any(page, selectors["login_id_input"])
        await page.fill(id_selector, user_id)

        password_selector = await ctx.resolver.resolve_any(page, selectors["login_password_input"])
        await page.fill(password_selector, password)

        button_selector = await ctx.resolver.resolve_any(page, selectors["login_button"])
        logger.debug("Submitting login form.")
        await page.click(button_selector)

        await ctx.estimator.measure(
            OperationCategory.NAVIGATION,
            lambda budget: page.wait_for_load_state("networkidle", timeout=budget),
        )
        await ctx.resolver.resolve_any(page, selectors["mypage_status_link"])

    try:
        await ctx.retrier.with_retry(attempt, ctx.policy("authenticate"))
    except Exception as e:
        if ctx.app_config.diagnostics.enabled:
            await capture_failure_screenshot([page], "login", ctx.app_config.diagnostics.output_dir)
        if isinstance(e, AuthenticationFailure):
            raise
        code = e.code.value if isinstance(e, PortalError) else type(e).__name__
        raise AuthenticationFailure(f"Login failed: {e}", {"cause": code}) from e
    logger.info("Logged in to JobKorea.")


async def dismiss_login_popup(ctx: ActionContext) -> None:
    """Close the "change your password later" interstitial if it shows up.

    The interstitial opens as a popup window; clicking its "later" link raises a
    confirmation dialog that is dismissed. This step is best-effort: every
    problem is logged and the workflow carries on.
    """
    page: Page = ctx.page
    timeout = ctx.estimator.estimate_timeout(OperationCategory.POPUP)
    try:
        popup = await page.wait_for_event("popup", timeout=timeout)
        await popup.wait_for_load_state()

        later_selector = await ctx.resolver.resolve_any(
            popup, selectors["password_change_later"], timeout_budget=timeout
        )
        dialog = await wait_for_event_during(
            popup, "dialog", lambda: popup.click(later_selector), timeout=timeout
        )
        logger.debug(f"Dismissing password change dialog: {dialog.message}")
        await dialog.dismiss()
        logger.info("Password change interstitial dismissed.")
    except Exception as e:
        logger.warning(f"Password change interstitial not handled, continuing: {e}")
