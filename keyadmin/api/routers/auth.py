"""Auth API router: POST /api/auth/login, POST /api/auth/logout."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from keyadmin.application.exceptions import ConfigurationError
from keyadmin.config.settings import AppSettings, get_settings
from keyadmin.domain.schemas import LoginRequest, OkResponse
from keyadmin.security import (
    AuthError,
    clear_session_cookie,
    issue_session_token,
    set_session_cookie,
    verify_admin_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=OkResponse)
async def login(
    body: LoginRequest,
    settings: Annotated[AppSettings, Depends(get_settings)],
):
    if not settings.admin_password:
        raise ConfigurationError("ADMIN_PASSWORD is not set")
    if not settings.session_secret:
        raise ConfigurationError("SESSION_SECRET is not set")

    if not verify_admin_password(body.password, settings.admin_password):
        logger.warning("admin_login_failed")
        raise AuthError("Invalid password")

    response = JSONResponse(content=OkResponse().model_dump())
    set_session_cookie(response, issue_session_token(settings.session_secret), settings.secure_cookies)
    logger.info("admin_login")
    return response


@router.post("/logout", response_model=OkResponse)
async def logout(settings: Annotated[AppSettings, Depends(get_settings)]):
    response = JSONResponse(content=OkResponse().model_dump())
    clear_session_cookie(response, settings.secure_cookies)
    return response
