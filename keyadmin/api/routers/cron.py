"""Cron API router: POST /api/cron/expire runs the expiry sweep."""

from typing import Annotated

from fastapi import APIRouter, Depends

from keyadmin.api.dependencies import get_customer_service, require_cron_or_session
from keyadmin.application.customer_service import CustomerService
from keyadmin.domain.schemas import SweepResponse

router = APIRouter()


@router.post(
    "/expire",
    response_model=SweepResponse,
    dependencies=[Depends(require_cron_or_session)],
)
async def expire(service: Annotated[CustomerService, Depends(get_customer_service)]) -> SweepResponse:
    """Expire every ACTIVE customer whose plan has ended. Safe to call repeatedly."""
    result = await service.expire_overdue()
    return SweepResponse(
        checked=result.checked,
        revoked=result.revoked,
        failed=result.failed,
        skipped=result.skipped,
    )
