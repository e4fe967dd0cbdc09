from __future__ import annotations

from services.libs.login_service_libs.logging_utils import REDACTED, redact_sensitive_fields


def test_credentials_are_masked_at_top_level_and_in_extra() -> None:
    event = {
        "event": "Login form received",
        "pwd": "hunter2",
        "extra": {"log": "ada@example.com", "rp_key": "abc", "nested": {"pass1": "x"}},
    }

    redacted = redact_sensitive_fields(None, "info", event)

    assert redacted["pwd"] == REDACTED
    assert redacted["extra"]["log"] == "ada@example.com"
    assert redacted["extra"]["rp_key"] == REDACTED
    assert redacted["extra"]["nested"]["pass1"] == REDACTED
    assert redacted["event"] == "Login form received"


def test_key_matching_is_case_insensitive() -> None:
    redacted = redact_sensitive_fields(None, "info", {"Password": "p", "SECRET": "s"})

    assert redacted == {"Password": REDACTED, "SECRET": REDACTED}
