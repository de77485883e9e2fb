from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_crm.models.appointment import Appointment, AppointmentStatus
from booking_crm.models.business import Business
from booking_crm.scheduling.engine import (
    BookedInterval,
    Clock,
    TimeSlot,
    day_bounds,
    generate_slots,
)


async def get_booked_intervals(
    session: AsyncSession,
    business_id: int,
    start_inclusive: datetime,
    end_exclusive: datetime,
    exclude_appointment_id: int | None = None,
) -> list[BookedInterval]:
    """Non-cancelled appointments of the business overlapping [start_inclusive, end_exclusive)."""
    q = select(Appointment.start_time, Appointment.end_time).where(
        Appointment.business_id == business_id,
        Appointment.status != AppointmentStatus.CANCELLED.value,
        Appointment.start_time < end_exclusive,
        Appointment.end_time > start_inclusive,
    )
    if exclude_appointment_id is not None:
        q = q.where(Appointment.id != exclude_appointment_id)
    result = await session.execute(q.order_by(Appointment.start_time))
    return [BookedInterval(start, end) for start, end in result.all()]


async def get_available_slots_for_date(
    session: AsyncSession,
    business: Business,
    d: date,
    duration_minutes: int | None,
    now: datetime | Clock | None = None,
) -> list[TimeSlot]:
    """All grid slots for the business on `d`, each flagged available or not."""
    if not business.working_hours:
        return []
    start_inclusive, end_exclusive = day_bounds(d)
    booked = await get_booked_intervals(session, business.id, start_inclusive, end_exclusive)
    return generate_slots(d, business.working_hours, duration_minutes, booked, now=now)
