from core.errors import (
    AuthenticationFailure,
    ErrorCode,
    NavigationFailure,
    NetworkFailure,
    PortalError,
    SelectorLookupFailure,
    TimeoutFailure,
    UpdateFailure,
    ValidationFailure,
)


def test_each_failure_carries_its_code():
    assert AuthenticationFailure("x").code is ErrorCode.AUTH_ERROR
    assert NavigationFailure("x").code is ErrorCode.NAVIGATION_ERROR
    assert UpdateFailure("x").code is ErrorCode.UPDATE_ERROR
    assert TimeoutFailure("x", timeout_ms=10, category="popup").code is ErrorCode.TIMEOUT_ERROR
    assert NetworkFailure("x").code is ErrorCode.NETWORK_ERROR
    assert ValidationFailure("x").code is ErrorCode.VALIDATION_ERROR
    assert SelectorLookupFailure(["#a"], 100, "visible").code is ErrorCode.ELEMENT_NOT_FOUND


def test_failures_are_portal_errors():
    assert isinstance(UpdateFailure("x"), PortalError)
    assert isinstance(UpdateFailure("x"), Exception)


def test_to_dict_contains_context():
    error = NetworkFailure("rejected", status_code=403, url="https://api.telegram.org/bot***/sendMessage", permanent=True)
    data = error.to_dict()
    assert data["name"] == "NetworkFailure"
    assert data["code"] == "NETWORK_ERROR"
    assert data["message"] == "rejected"
    assert data["context"]["status_code"] == 403
    assert data["context"]["permanent"] is True
    assert isinstance(data["timestamp"], float)


def test_validation_failure_keeps_error_list():
    error = ValidationFailure("missing", field="JOBKOREA_ID", errors=["a", "b"])
    assert error.errors == ["a", "b"]
    assert error.field == "JOBKOREA_ID"


def test_selector_lookup_failure_message_lists_candidates():
    error = SelectorLookupFailure([".a", ".b"], 300, "visible")
    assert str(error) == "No selector reached state 'visible' within 300ms: .a, .b"
