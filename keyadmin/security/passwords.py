"""Shared-secret checks: the admin password and the cron secret."""

from typing import Any, Optional

from keyadmin.security.token_codec import constant_time_equals


def secrets_match(candidate: Any, expected: Optional[str]) -> bool:
    """Constant-time check; an unset expected secret never matches."""
    if not isinstance(candidate, str) or not expected:
        return False
    return constant_time_equals(candidate.encode("utf-8"), expected.encode("utf-8"))


def verify_admin_password(candidate: Any, expected: Optional[str]) -> bool:
    return secrets_match(candidate, expected)


def verify_cron_secret(header_value: Optional[str], expected: Optional[str]) -> bool:
    return secrets_match(header_value, expected)
