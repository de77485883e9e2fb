import logging
from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_crm.api.deps import get_clock, get_session
from booking_crm.api.schemas.appointment import (
    BookAppointmentRequest,
    CancelAppointmentRequest,
    UpdateAppointmentRequest,
)
from booking_crm.core.config import settings
from booking_crm.models.appointment import Appointment, AppointmentPublic, AppointmentStatus
from booking_crm.scheduling.engine import Clock
from booking_crm.services.appointment_service import (
    cancel_appointment,
    create_appointment,
    get_appointment,
    list_appointments,
    update_appointment,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])


def _to_public(a: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(a, from_attributes=True)


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: BookAppointmentRequest,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> AppointmentPublic:
    # Past starts are allowed (staff catch-up bookings); only the next few minutes are blocked
    now = clock()
    if now < body.start_time < now + timedelta(minutes=settings.min_booking_lead_minutes):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Appointment must be at least {settings.min_booking_lead_minutes} minutes in the future",
        )
    # SlotConflict propagates to the app-level handler (409)
    appointment = await create_appointment(
        session,
        business_id=body.business_id,
        service_id=body.service_id,
        start_time=body.start_time,
        client_name=body.client_name,
        client_phone=body.client_phone,
        client_email=body.client_email,
        notes=body.notes,
    )
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return _to_public(appointment)


@router.get("", response_model=list[AppointmentPublic])
async def list_business_appointments(
    business_id: int = Query(..., alias="businessId"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    session: AsyncSession = Depends(get_session),
) -> list[AppointmentPublic]:
    appointments = await list_appointments(
        session,
        business_id,
        start_date=start_date,
        end_date=end_date,
        status=status_filter.value if status_filter else None,
    )
    return [_to_public(a) for a in appointments]


@router.get("/{appointment_id}", response_model=AppointmentPublic)
async def read_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
) -> AppointmentPublic:
    appointment = await get_appointment(session, appointment_id)
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return _to_public(appointment)


@router.patch("/{appointment_id}", response_model=AppointmentPublic)
async def update_business_appointment(
    appointment_id: int,
    body: UpdateAppointmentRequest,
    session: AsyncSession = Depends(get_session),
) -> AppointmentPublic:
    appointment = await update_appointment(
        session,
        appointment_id,
        status=body.status,
        payment_status=body.payment_status,
        notes=body.notes,
        cancellation_reason=body.cancellation_reason,
        cancelled_by=body.cancelled_by,
    )
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return _to_public(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentPublic)
async def cancel_business_appointment(
    appointment_id: int,
    body: CancelAppointmentRequest | None = None,
    session: AsyncSession = Depends(get_session),
) -> AppointmentPublic:
    appointment = await cancel_appointment(
        session,
        appointment_id,
        cancellation_reason=body.cancellation_reason if body else None,
        cancelled_by=body.cancelled_by if body else None,
    )
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    logger.info("Appointment %s cancelled by %s", appointment_id, appointment.cancelled_by or "unknown")
    return _to_public(appointment)
