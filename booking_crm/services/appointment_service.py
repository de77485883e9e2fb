import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_crm.core.exceptions import AppointmentClosed, InvalidStatusTransition, SlotConflict
from booking_crm.models.appointment import (
    STATUS_TRANSITIONS,
    Appointment,
    AppointmentStatus,
    PaymentStatus,
)
from booking_crm.models.client import Client
from booking_crm.scheduling.engine import day_bounds, has_conflict
from booking_crm.services.business_service import get_service
from booking_crm.services.client_service import get_or_create_client
from booking_crm.services.slot_service import get_booked_intervals

logger = logging.getLogger(__name__)

EXCLUSION_CONSTRAINT_NAME = "ex_appointments_no_overlap"

# asyncio locks are bound to the loop they are first awaited on. An entry lives
# only while someone holds or waits on it, so closed loops are never kept alive.
_booking_locks: dict[tuple[asyncio.AbstractEventLoop, int], asyncio.Lock] = {}
_booking_lock_users: dict[tuple[asyncio.AbstractEventLoop, int], int] = {}


@asynccontextmanager
async def _booking_lock(business_id: int) -> AsyncIterator[None]:
    key = (asyncio.get_running_loop(), business_id)
    lock = _booking_locks.setdefault(key, asyncio.Lock())
    _booking_lock_users[key] = _booking_lock_users.get(key, 0) + 1
    try:
        async with lock:
            yield
    finally:
        _booking_lock_users[key] -= 1
        if not _booking_lock_users[key]:
            del _booking_lock_users[key]
            del _booking_locks[key]


def _utc_naive_now() -> datetime:
    """Naive UTC for comparison with TIMESTAMP WITHOUT TIME ZONE."""
    return datetime.now(UTC).replace(tzinfo=None)


def _is_overlap_violation(exc: IntegrityError) -> bool:
    return EXCLUSION_CONSTRAINT_NAME in str(exc.orig)


async def check_time_conflicts(
    session: AsyncSession,
    business_id: int,
    start: datetime,
    end: datetime,
    exclude_appointment_id: int | None = None,
) -> bool:
    existing = await get_booked_intervals(
        session, business_id, start, end, exclude_appointment_id=exclude_appointment_id
    )
    return has_conflict(business_id, start, end, existing)


async def create_appointment(
    session: AsyncSession,
    business_id: int,
    service_id: int,
    start_time: datetime,
    client_name: str,
    client_phone: str,
    client_email: str | None = None,
    notes: str | None = None,
) -> Appointment | None:
    """Book a service. Returns None when the service is unknown or inactive for the business.

    Raises SlotConflict when the interval overlaps a non-cancelled appointment,
    whether found by the pre-check or by the storage exclusion constraint.
    Commits before returning so the booking lock covers check and insert.
    """
    service = await get_service(session, service_id, business_id=business_id)
    if not service or not service.is_active:
        return None
    end_time = start_time + timedelta(minutes=service.duration)

    async with _booking_lock(business_id):
        if await check_time_conflicts(session, business_id, start_time, end_time):
            logger.warning(
                "Booking rejected: business=%s service=%s slot %s-%s already booked",
                business_id, service_id, start_time, end_time,
            )
            raise SlotConflict(business_id, start_time, end_time)
        client = await get_or_create_client(
            session, business_id, name=client_name, phone=client_phone, email=client_email
        )
        appointment = Appointment(
            business_id=business_id,
            client_id=client.id,
            service_id=service.id,
            start_time=start_time,
            end_time=end_time,
            status=AppointmentStatus.SCHEDULED.value,
            payment_status=PaymentStatus.PENDING.value,
            total_amount=service.price,
            notes=notes or "",
        )
        session.add(appointment)
        try:
            await session.flush()
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            if _is_overlap_violation(e):
                logger.warning(
                    "Booking rejected by exclusion constraint: business=%s slot %s-%s",
                    business_id, start_time, end_time,
                )
                raise SlotConflict(business_id, start_time, end_time) from e
            raise
    logger.info(
        "Appointment %s booked: business=%s client=%s %s-%s",
        appointment.id, business_id, client.id, start_time, end_time,
    )
    return appointment


async def get_appointment(session: AsyncSession, appointment_id: int) -> Appointment | None:
    result = await session.execute(select(Appointment).where(Appointment.id == appointment_id))
    return result.scalar_one_or_none()


async def list_appointments(
    session: AsyncSession,
    business_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    status: str | None = None,
) -> list[Appointment]:
    """Appointments of a business by start time; date filters include whole calendar days."""
    q = select(Appointment).where(Appointment.business_id == business_id).order_by(Appointment.start_time)
    if start_date:
        q = q.where(Appointment.start_time >= day_bounds(start_date)[0])
    if end_date:
        q = q.where(Appointment.start_time < day_bounds(end_date)[1])
    if status:
        q = q.where(Appointment.status == status)
    result = await session.execute(q)
    return list(result.scalars().all())


async def update_appointment(
    session: AsyncSession,
    appointment_id: int,
    status: AppointmentStatus | None = None,
    payment_status: PaymentStatus | None = None,
    notes: str | None = None,
    cancellation_reason: str | None = None,
    cancelled_by: str | None = None,
) -> Appointment | None:
    """Staff update.

    Status moves only from scheduled to completed, cancelled or no-show; any
    other change raises InvalidStatusTransition. Cancelled appointments only
    accept payment status changes (refunds) and raise AppointmentClosed otherwise.
    """
    appointment = await get_appointment(session, appointment_id)
    if not appointment:
        return None
    if appointment.status == AppointmentStatus.CANCELLED.value and (
        (status is not None and status != AppointmentStatus.CANCELLED)
        or notes is not None
        or cancellation_reason is not None
        or cancelled_by is not None
    ):
        raise AppointmentClosed(appointment_id)
    if status is not None and status.value != appointment.status:
        if status.value not in STATUS_TRANSITIONS[appointment.status]:
            raise InvalidStatusTransition("Appointment", appointment_id, appointment.status, status.value)

    now = _utc_naive_now()
    if status is not None and status.value != appointment.status:
        previous = appointment.status
        appointment.status = status.value
        if status == AppointmentStatus.CANCELLED:
            appointment.cancelled_at = now
            appointment.cancellation_reason = cancellation_reason
            appointment.cancelled_by = cancelled_by
        elif status == AppointmentStatus.COMPLETED:
            await _record_visit(session, appointment.client_id)
        logger.info("Appointment %s status %s -> %s", appointment_id, previous, status.value)
    if payment_status is not None:
        appointment.payment_status = payment_status.value
    if notes is not None:
        appointment.notes = notes
    appointment.updated_at = now
    session.add(appointment)
    await session.flush()
    return appointment


async def cancel_appointment(
    session: AsyncSession,
    appointment_id: int,
    cancellation_reason: str | None = None,
    cancelled_by: str | None = None,
) -> Appointment | None:
    """Soft-cancel; the row stays and its slot becomes bookable again."""
    appointment = await get_appointment(session, appointment_id)
    if not appointment:
        return None
    if appointment.status == AppointmentStatus.CANCELLED.value:
        return appointment
    return await update_appointment(
        session,
        appointment_id,
        status=AppointmentStatus.CANCELLED,
        cancellation_reason=cancellation_reason,
        cancelled_by=cancelled_by,
    )


async def _record_visit(session: AsyncSession, client_id: int) -> None:
    result = await session.execute(select(Client).where(Client.id == client_id))
    client = result.scalar_one_or_none()
    if client:
        client.total_visits += 1
        client.updated_at = _utc_naive_now()
        session.add(client)
