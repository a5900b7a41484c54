"""
Failure taxonomy for the resume refresher.

Every domain error carries a stable code, a timestamp and optional structured
context so that the top level can report it (log + Telegram) uniformly.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    AUTH_ERROR = "AUTH_ERROR"
    NAVIGATION_ERROR = "NAVIGATION_ERROR"
    UPDATE_ERROR = "UPDATE_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    ELEMENT_NOT_FOUND = "ELEMENT_NOT_FOUND"


class PortalError(Exception):
    """Base class for all domain errors raised while driving the portal."""

    code: ErrorCode = ErrorCode.UPDATE_ERROR

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.timestamp = time.time()
        self.context: Dict[str, Any] = dict(context or {})
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code.value,
            "timestamp": self.timestamp,
            "context": self.context,
        }


class AuthenticationFailure(PortalError):
    """Login did not reach an authenticated page."""

    code = ErrorCode.AUTH_ERROR


class NavigationFailure(PortalError):
    """A page could not be opened or did not show its expected content."""

    code = ErrorCode.NAVIGATION_ERROR


class UpdateFailure(PortalError):
    """The resume refresh action failed or was not confirmed."""

    code = ErrorCode.UPDATE_ERROR


class TimeoutFailure(PortalError):
    """An operation exceeded its (adaptive) timeout."""

    code = ErrorCode.TIMEOUT_ERROR

    def __init__(self, message: str, timeout_ms: int, category: str):
        self.timeout_ms = timeout_ms
        self.category = category
        super().__init__(message, {"timeout_ms": timeout_ms, "category": category})


class NetworkFailure(PortalError):
    """An outbound HTTP call failed.

    ``permanent`` marks client-side (4xx) rejections that are not worth retrying.
    """

    code = ErrorCode.NETWORK_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        permanent: bool = False,
    ):
        self.status_code = status_code
        self.url = url
        self.permanent = permanent
        super().__init__(message, {"status_code": status_code, "url": url, "permanent": permanent})


class ValidationFailure(PortalError):
    """Startup configuration is missing or malformed."""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[str]] = None,
    ):
        self.field = field
        self.errors: List[str] = list(errors or [])
        super().__init__(message, {"field": field, "errors": self.errors})


class SelectorLookupFailure(PortalError):
    """None of the candidate selectors resolved within its share of the budget."""

    code = ErrorCode.ELEMENT_NOT_FOUND

    def __init__(self, candidates: List[str], timeout_budget: int, state: str):
        self.candidates = list(candidates)
        self.timeout_budget = timeout_budget
        message = (
            f"No selector reached state '{state}' within {timeout_budget}ms: "
            + ", ".join(self.candidates)
        )
        super().__init__(
            message,
            {"candidates": self.candidates, "timeout_budget": timeout_budget, "state": state},
        )
