"""First-time setup endpoint."""

from fastapi import APIRouter, Depends

from shopdesk.api.v1.schemas.responses import FirstTimeSetupResponse
from shopdesk.services.setup_service import SetupService, get_setup_service

router = APIRouter(prefix="/setup", tags=["setup"])


@router.get("/first-time", response_model=FirstTimeSetupResponse)
async def first_time_setup(
    service: SetupService = Depends(get_setup_service),
) -> FirstTimeSetupResponse:
    return FirstTimeSetupResponse(is_first_time=await service.is_first_time())


__all__ = ["router"]
