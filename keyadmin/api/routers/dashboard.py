"""Dashboard entry point: GET /dashboard returns customer counts per status."""

from typing import Annotated

from fastapi import APIRouter, Depends

from keyadmin.api.dependencies import get_customer_service, require_session
from keyadmin.application.customer_service import CustomerService
from keyadmin.domain.schemas import DashboardSummary

router = APIRouter(dependencies=[Depends(require_session)])


@router.get("/dashboard", response_model=DashboardSummary)
async def dashboard(service: Annotated[CustomerService, Depends(get_customer_service)]):
    return DashboardSummary(**await service.summarize())
