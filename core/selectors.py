import time
from typing import Any, Dict, List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError

from core.adaptive_timeout import AdaptiveTimeoutEstimator, OperationCategory
from core.errors import SelectorLookupFailure
from core.logger import get_structured_logger

# Ordered candidate lists: primary selector first, fallbacks after.
selectors: Dict[str, List[str]] = {
    # Login page
    "login_id_input": [".input-id", "#user_id", 'input[name="user_id"]', 'input[type="text"]'],
    "login_password_input": [".input-password", "#user_pwd", 'input[name="user_pwd"]', 'input[type="password"]'],
    "login_button": [".login-button", "#login_btn", 'button[type="submit"]', ".btn-login"],

    # Post-login "change your password later" interstitial (opens as a popup window)
    "password_change_later": ['a[href*="나중에 변경"]', 'a:has-text("나중에 변경")'],

    # My page
    "mypage_status_link": [".status a", ".my-status a", 'a[href*="status"]', ".resume-status a"],
    "update_button": [".button-update", ".btn-update", 'button[onclick*="update"]', ".update-btn"],

    # Marketing overlay that intercepts clicks on My page
    "ad_overlay": [".ab-iam-root"],
}


class SelectorFallbackResolver:
    """
    Resolves the first of several equivalent selectors within a shared budget.

    The budget is split evenly (floor division) across the candidates and each
    candidate only gets its own slice. With many candidates a later, valid
    selector can therefore run out of time even though it would resolve with
    the full budget; this is a known limitation of the even split.
    """

    def __init__(self, estimator: Optional[AdaptiveTimeoutEstimator] = None):
        self.estimator = estimator
        self.logger = get_structured_logger(__name__)

    async def resolve_any(
        self,
        surface: Any,
        candidates: Sequence[str],
        state: str = "visible",
        timeout_budget: Optional[int] = None,
    ) -> str:
        """
        Return the first candidate that reaches ``state`` on ``surface``.

        Args:
            surface: Playwright page (or popup page) to query.
            candidates: Non-empty ordered selector list.
            state: Element state to wait for ("visible", "attached", ...).
            timeout_budget: Total budget in milliseconds. Defaults to the
                estimator's element timeout.

        Raises:
            ValueError: If ``candidates`` is empty.
            SelectorLookupFailure: If no candidate resolved within its slice.
        """
        if not candidates:
            raise ValueError("resolve_any requires at least one candidate selector")

        if timeout_budget is None:
            if self.estimator is None:
                raise ValueError("timeout_budget is required when no estimator is configured")
            timeout_budget = self.estimator.estimate_timeout(OperationCategory.ELEMENT)

        # Playwright treats a timeout of 0 as "no timeout"
        per_candidate = max(timeout_budget // len(candidates), 1)
        start = time.monotonic()
        attempted: List[str] = []
        for candidate in candidates:
            attempted.append(candidate)
            try:
                await surface.wait_for_selector(candidate, state=state, timeout=per_candidate)
            except PlaywrightError as e:
                self.logger.debug(
                    "selector_candidate_unresolved",
                    selector=candidate,
                    timeout_ms=per_candidate,
                    error=str(e).splitlines()[0] if str(e) else type(e).__name__,
                )
                continue

            self._record(start, succeeded=True)
            if len(attempted) > 1:
                self.logger.info("selector_fallback_used", selector=candidate, skipped=attempted[:-1])
            return candidate

        self._record(start, succeeded=False)
        raise SelectorLookupFailure(attempted, timeout_budget, state)

    def _record(self, start: float, succeeded: bool) -> None:
        if self.estimator is not None:
            self.estimator.record_outcome(
                OperationCategory.ELEMENT, (time.monotonic() - start) * 1000, succeeded
            )
