import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_crm.api.deps import get_clock, get_session
from booking_crm.api.schemas.business import (
    BusinessCreateRequest,
    BusinessUpdateRequest,
    DashboardStatsResponse,
    ServiceCreateRequest,
    ServiceUpdateRequest,
    WorkingHours,
)
from booking_crm.models.business import (
    BusinessCreate,
    BusinessPublic,
    ServiceCreate,
    ServicePublic,
)
from booking_crm.scheduling.engine import Clock
from booking_crm.services.business_service import (
    create_business,
    create_service,
    deactivate_service,
    get_business,
    list_services,
    update_business,
    update_service,
    update_working_hours,
)
from booking_crm.services.dashboard_service import dashboard_stats

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/businesses", tags=["businesses"])

_NOT_FOUND = "Business not found"
_SERVICE_NOT_FOUND = "Service not found"


@router.post("", response_model=BusinessPublic, status_code=status.HTTP_201_CREATED)
async def register_business(
    body: BusinessCreateRequest,
    session: AsyncSession = Depends(get_session),
) -> BusinessPublic:
    data = BusinessCreate(
        **body.model_dump(exclude={"working_hours"}),
        working_hours=body.working_hours.to_storage() if body.working_hours else None,
    )
    business = await create_business(session, data)
    return BusinessPublic.model_validate(business, from_attributes=True)


@router.get("/{business_id}", response_model=BusinessPublic)
async def read_business(
    business_id: int,
    session: AsyncSession = Depends(get_session),
) -> BusinessPublic:
    business = await get_business(session, business_id)
    if not business:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return BusinessPublic.model_validate(business, from_attributes=True)


@router.patch("/{business_id}", response_model=BusinessPublic)
async def edit_business_profile(
    business_id: int,
    body: BusinessUpdateRequest,
    session: AsyncSession = Depends(get_session),
) -> BusinessPublic:
    business = await update_business(session, business_id, body.changes())
    if not business:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    logger.info("Business %s profile updated", business_id)
    return BusinessPublic.model_validate(business, from_attributes=True)


@router.put("/{business_id}/working-hours", response_model=BusinessPublic)
async def replace_working_hours(
    business_id: int,
    body: WorkingHours,
    session: AsyncSession = Depends(get_session),
) -> BusinessPublic:
    business = await update_working_hours(session, business_id, body.to_storage())
    if not business:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return BusinessPublic.model_validate(business, from_attributes=True)


@router.get("/{business_id}/dashboard/stats", response_model=DashboardStatsResponse)
async def read_dashboard_stats(
    business_id: int,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> DashboardStatsResponse:
    if not await get_business(session, business_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    stats = await dashboard_stats(session, business_id, clock().date())
    return DashboardStatsResponse(**stats)


@router.get("/{business_id}/services", response_model=list[ServicePublic])
async def read_services(
    business_id: int,
    session: AsyncSession = Depends(get_session),
) -> list[ServicePublic]:
    if not await get_business(session, business_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    services = await list_services(session, business_id)
    return [ServicePublic.model_validate(s, from_attributes=True) for s in services]


@router.post("/{business_id}/services", response_model=ServicePublic, status_code=status.HTTP_201_CREATED)
async def add_service(
    business_id: int,
    body: ServiceCreateRequest,
    session: AsyncSession = Depends(get_session),
) -> ServicePublic:
    service = await create_service(session, business_id, ServiceCreate(**body.model_dump()))
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return ServicePublic.model_validate(service, from_attributes=True)


@router.patch("/{business_id}/services/{service_id}", response_model=ServicePublic)
async def edit_service(
    business_id: int,
    service_id: int,
    body: ServiceUpdateRequest,
    session: AsyncSession = Depends(get_session),
) -> ServicePublic:
    service = await update_service(session, business_id, service_id, body.changes())
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_SERVICE_NOT_FOUND)
    return ServicePublic.model_validate(service, from_attributes=True)


@router.delete("/{business_id}/services/{service_id}", response_model=ServicePublic)
async def remove_service(
    business_id: int,
    service_id: int,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> ServicePublic:
    """Soft delete: the service disappears from the catalogue and cannot be booked.
    409 while scheduled appointments still use it."""
    service = await deactivate_service(session, business_id, service_id, now=clock())
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_SERVICE_NOT_FOUND)
    logger.info("Service %s of business %s deactivated", service_id, business_id)
    return ServicePublic.model_validate(service, from_attributes=True)
