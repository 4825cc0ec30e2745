"""Session cookie adapter: where the token lives on the wire."""

from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from keyadmin.security.token_codec import SESSION_DAYS

COOKIE_NAME = "outline_admin_session"
SESSION_MAX_AGE_SECONDS = SESSION_DAYS * 24 * 60 * 60


def set_session_cookie(response: Response, token: str, secure: bool) -> None:
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=SESSION_MAX_AGE_SECONDS,
        path="/",
        secure=secure,
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response, secure: bool) -> None:
    response.set_cookie(
        COOKIE_NAME,
        "",
        max_age=0,
        path="/",
        secure=secure,
        httponly=True,
        samesite="lax",
    )


def read_session_token(request: Request) -> Optional[str]:
    return request.cookies.get(COOKIE_NAME)
