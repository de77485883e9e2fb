from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_crm.api.deps import get_clock, get_session
from booking_crm.api.schemas.appointment import AvailableSlotsResponse, TimeSlotInfo
from booking_crm.core.config import settings
from booking_crm.scheduling.engine import Clock
from booking_crm.services.business_service import get_active_business
from booking_crm.services.slot_service import get_available_slots_for_date

router = APIRouter(prefix="/appointments", tags=["slots"])


@router.get("/available-slots", response_model=AvailableSlotsResponse)
async def available_slots(
    business_id: int = Query(..., alias="businessId"),
    date_param: date = Query(..., alias="date"),
    duration: int | None = Query(None),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> AvailableSlotsResponse:
    """All slots for the given date on a 15-minute grid, each flagged available or not."""
    business = await get_active_business(session, business_id)
    if not business:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found")
    slots = await get_available_slots_for_date(
        session,
        business,
        date_param,
        duration or settings.default_service_duration_minutes,
        now=clock,
    )
    return AvailableSlotsResponse(
        slots=[TimeSlotInfo(time=s.time, timestamp=s.timestamp, available=s.available) for s in slots]
    )
