import logging
from typing import Any, Callable, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route, async_playwright

from config import BrowserConfig, ResourceBlockingConfig

logger = logging.getLogger(__name__)

AD_MARKERS = ("ads", "doubleclick")
ANALYTICS_MARKERS = ("google-analytics", "googletagmanager")
SOCIAL_MEDIA_MARKERS = ("facebook.com", "twitter.com", "instagram.com")


def should_block_request(
    url: str,
    resource_type: str,
    blocking: ResourceBlockingConfig,
    site_keyword: str = "jobkorea",
) -> bool:
    """Decide whether a request is aborted by the context router.

    Args:
        url: Request URL.
        resource_type: Playwright resource type ("image", "media", "script", ...).
        blocking: Which request classes are blocked.
        site_keyword: Images whose URL contains this keyword are always kept.
    """
    if blocking.ads and any(marker in url for marker in AD_MARKERS):
        return True
    if blocking.analytics and any(marker in url for marker in ANALYTICS_MARKERS):
        return True
    if blocking.social_media and any(marker in url for marker in SOCIAL_MEDIA_MARKERS):
        return True
    if blocking.unnecessary_images:
        if resource_type == "media":
            return True
        if resource_type == "image" and site_keyword not in url:
            return True
    return False


class BrowserSession:
    """
    Owns one chromium browser, context and page.

    ``start`` can be called again after ``close`` to get a fresh session, which
    is what the process-level retry relies on.
    """

    def __init__(self, browser_config: BrowserConfig, playwright_factory: Callable[[], Any] = async_playwright):
        self.browser_config = browser_config
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser session has not been started.")
        return self._page

    @property
    def is_started(self) -> bool:
        return self._page is not None

    async def start(self) -> Page:
        """Launch the browser and open a page, closing any previous session first."""
        if self.is_started:
            await self.close()

        cfg = self.browser_config
        try:
            self._playwright = await self._playwright_factory().start()
            self._browser = await self._playwright.chromium.launch(
                headless=cfg.headless,
                args=list(cfg.args),
            )
            self._context = await self._browser.new_context(
                viewport={"width": cfg.viewport_width, "height": cfg.viewport_height},
                ignore_https_errors=True,
                java_script_enabled=True,
                extra_http_headers={"Accept-Language": cfg.accept_language},
            )
            if cfg.block_resources.any_enabled():
                await self._context.route("**/*", self._handle_route)
            self._page = await self._context.new_page()
        except Exception as e:
            logger.error(f"Browser initialization failed: {e}")
            await self.close()
            raise

        logger.info(f"Browser initialized (headless={cfg.headless}, resource blocking={cfg.block_resources.any_enabled()}).")
        return self._page

    async def _handle_route(self, route: Route) -> None:
        request = route.request
        if should_block_request(
            request.url,
            request.resource_type,
            self.browser_config.block_resources,
            self.browser_config.site_keyword,
        ):
            await route.abort()
        else:
            await route.continue_()

    async def close(self) -> None:
        """Release page, context, browser and playwright; never raises."""
        try:
            if self._page is not None and not self._page.is_closed():
                await self._page.close()
            if self._context is not None:
                await self._context.close()
            if self._browser is not None:
                await self._browser.close()
            if self._playwright is not None:
                await self._playwright.stop()
            logger.info("Browser closed and resources released.")
        except Exception as e:
            logger.error(f"Error while closing the browser: {e}")
        finally:
            self._page = None
            self._context = None
            self._browser = None
            self._playwright = None
