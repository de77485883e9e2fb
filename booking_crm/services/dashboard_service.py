from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_crm.models.appointment import Appointment, AppointmentStatus, PaymentStatus
from booking_crm.models.client import Client
from booking_crm.scheduling.engine import day_bounds


def week_bounds(day: date) -> tuple[datetime, datetime]:
    """Monday 00:00 to the following Monday 00:00."""
    start, _ = day_bounds(day - timedelta(days=day.weekday()))
    return start, start + timedelta(days=7)


def month_bounds(day: date) -> tuple[datetime, datetime]:
    first = date(day.year, day.month, 1)
    following = date(day.year + 1, 1, 1) if day.month == 12 else date(day.year, day.month + 1, 1)
    return day_bounds(first)[0], day_bounds(following)[0]


async def _count_booked(session: AsyncSession, business_id: int, start: datetime, end: datetime) -> int:
    count = await session.scalar(
        select(func.count())
        .select_from(Appointment)
        .where(
            Appointment.business_id == business_id,
            Appointment.status != AppointmentStatus.CANCELLED.value,
            Appointment.start_time >= start,
            Appointment.start_time < end,
        )
    )
    return count or 0


async def dashboard_stats(session: AsyncSession, business_id: int, today: date) -> dict[str, Any]:
    """Front-page numbers for a business.

    Appointments today and this week exclude cancelled ones. Revenue is the
    total of this month's completed and paid appointments. `today` is the local
    calendar day; appointment times are naive local too.
    """
    appointments_today = await _count_booked(session, business_id, *day_bounds(today))
    appointments_week = await _count_booked(session, business_id, *week_bounds(today))
    clients_total = await session.scalar(
        select(func.count()).select_from(Client).where(Client.business_id == business_id)
    )
    month_start, month_end = month_bounds(today)
    revenue = await session.scalar(
        select(func.coalesce(func.sum(Appointment.total_amount), 0)).where(
            Appointment.business_id == business_id,
            Appointment.status == AppointmentStatus.COMPLETED.value,
            Appointment.payment_status == PaymentStatus.PAID.value,
            Appointment.start_time >= month_start,
            Appointment.start_time < month_end,
        )
    )
    return {
        "appointments_today": appointments_today,
        "appointments_week": appointments_week,
        "clients_total": clients_total or 0,
        "revenue": float(revenue or 0),
    }
