# keyadmin/api/routers/health.py

from typing import Annotated

from fastapi import APIRouter, Depends

from keyadmin.api.dependencies import get_correlation_id
from keyadmin.config.settings import get_settings

router = APIRouter()


@router.get("/health")
async def health(correlation_id: Annotated[str, Depends(get_correlation_id)]):
    """Liveness only; outside the session gate and touches no backing service."""
    settings = get_settings()
    return {
        "status": "ok",
        "correlation_id": correlation_id,
        "environment": settings.environment,
        "version": settings.version,
    }
