"""Security: session tokens, password check, session cookie. No FastAPI."""

from keyadmin.security.exceptions import AuthError, SecurityError
from keyadmin.security.passwords import secrets_match, verify_admin_password, verify_cron_secret
from keyadmin.security.session_cookie import (
    COOKIE_NAME,
    clear_session_cookie,
    read_session_token,
    set_session_cookie,
)
from keyadmin.security.token_codec import (
    SessionPayload,
    constant_time_equals,
    issue_session_token,
    verify_session_token,
)

__all__ = [
    "AuthError",
    "COOKIE_NAME",
    "SecurityError",
    "SessionPayload",
    "clear_session_cookie",
    "constant_time_equals",
    "issue_session_token",
    "read_session_token",
    "secrets_match",
    "set_session_cookie",
    "verify_admin_password",
    "verify_cron_secret",
    "verify_session_token",
]
