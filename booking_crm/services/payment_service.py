import logging
import math
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_crm.core.exceptions import InvalidStatusTransition
from booking_crm.models.appointment import Appointment, PaymentStatus
from booking_crm.models.payment import (
    PAYMENT_TRANSITIONS,
    Payment,
    PaymentMethod,
    PaymentRecordStatus,
)

logger = logging.getLogger(__name__)

STATS_PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
DEFAULT_STATS_PERIOD = "30d"


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def _new_reference_id() -> str:
    return f"PAY-{uuid.uuid4().hex[:12].upper()}"


async def _sync_appointment_payment(session: AsyncSession, payment: Payment) -> None:
    """Mirror a settled or refunded payment on the appointment's payment status."""
    if payment.status == PaymentRecordStatus.COMPLETED.value:
        target = PaymentStatus.PAID.value
    elif payment.status == PaymentRecordStatus.REFUNDED.value:
        target = PaymentStatus.REFUNDED.value
    else:
        return
    appointment = await session.get(Appointment, payment.appointment_id)
    if appointment and appointment.payment_status != target:
        appointment.payment_status = target
        appointment.updated_at = _utc_naive_now()
        session.add(appointment)


async def create_payment(
    session: AsyncSession,
    business_id: int,
    appointment_id: int,
    amount: float,
    method: PaymentMethod,
    currency: str = "KZT",
    status: PaymentRecordStatus = PaymentRecordStatus.PENDING,
    transaction_id: str | None = None,
    notes: str | None = None,
) -> Payment | None:
    """Record a payment for an appointment of the business. Returns None when the
    appointment does not exist or belongs to another business."""
    appointment = await session.get(Appointment, appointment_id)
    if not appointment or appointment.business_id != business_id:
        return None
    now = _utc_naive_now()
    payment = Payment(
        business_id=business_id,
        appointment_id=appointment_id,
        client_id=appointment.client_id,
        amount=amount,
        currency=currency,
        method=method.value,
        status=status.value,
        reference_id=_new_reference_id(),
        transaction_id=transaction_id,
        notes=notes,
        paid_at=now if status == PaymentRecordStatus.COMPLETED else None,
    )
    session.add(payment)
    await _sync_appointment_payment(session, payment)
    await session.flush()
    await session.refresh(payment)
    logger.info(
        "Payment %s recorded: business=%s appointment=%s %.2f %s (%s, %s)",
        payment.reference_id, business_id, appointment_id, amount, currency, method.value, status.value,
    )
    return payment


async def get_payment(session: AsyncSession, business_id: int, payment_id: int) -> Payment | None:
    result = await session.execute(
        select(Payment).where(Payment.id == payment_id, Payment.business_id == business_id)
    )
    return result.scalar_one_or_none()


async def list_payments(
    session: AsyncSession,
    business_id: int,
    status: str | None = None,
    appointment_id: int | None = None,
    client_id: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Payment], int]:
    """Newest first. Returns one page and the total number of matching payments."""
    filters = [Payment.business_id == business_id]
    if status:
        filters.append(Payment.status == status)
    if appointment_id is not None:
        filters.append(Payment.appointment_id == appointment_id)
    if client_id is not None:
        filters.append(Payment.client_id == client_id)

    total = await session.scalar(select(func.count()).select_from(Payment).where(*filters))
    result = await session.execute(
        select(Payment)
        .where(*filters)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


async def update_payment(
    session: AsyncSession,
    business_id: int,
    payment_id: int,
    status: PaymentRecordStatus | None = None,
    transaction_id: str | None = None,
    refund_reason: str | None = None,
    notes: str | None = None,
) -> Payment | None:
    """pending -> completed | failed, completed -> refunded; anything else raises
    InvalidStatusTransition. paid_at is set the first time a payment completes."""
    payment = await get_payment(session, business_id, payment_id)
    if not payment:
        return None
    if status is not None and status.value != payment.status:
        if status.value not in PAYMENT_TRANSITIONS[payment.status]:
            raise InvalidStatusTransition("Payment", payment_id, payment.status, status.value)
        logger.info("Payment %s status %s -> %s", payment.reference_id, payment.status, status.value)
        payment.status = status.value
        if status == PaymentRecordStatus.COMPLETED and payment.paid_at is None:
            payment.paid_at = _utc_naive_now()
        await _sync_appointment_payment(session, payment)
    if transaction_id is not None:
        payment.transaction_id = transaction_id
    if refund_reason is not None:
        payment.refund_reason = refund_reason
    if notes is not None:
        payment.notes = notes
    payment.updated_at = _utc_naive_now()
    session.add(payment)
    await session.flush()
    return payment


def _empty_totals() -> dict[str, Any]:
    return {"amount": 0.0, "count": 0}


async def payment_stats(
    session: AsyncSession,
    business_id: int,
    period: str = DEFAULT_STATS_PERIOD,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Totals per status and per method for payments created within the period.

    Unknown periods fall back to 30 days. `now` is naive UTC like created_at.
    """
    days = STATS_PERIOD_DAYS.get(period, STATS_PERIOD_DAYS[DEFAULT_STATS_PERIOD])
    now = now or _utc_naive_now()
    since = now - timedelta(days=days)

    result = await session.execute(
        select(Payment.status, Payment.method, func.count(), func.coalesce(func.sum(Payment.amount), 0))
        .where(
            Payment.business_id == business_id,
            Payment.created_at >= since,
            Payment.created_at <= now,
        )
        .group_by(Payment.status, Payment.method)
    )

    by_status = {s.value: _empty_totals() for s in PaymentRecordStatus}
    by_method = {m.value: _empty_totals() for m in PaymentMethod}
    total = _empty_totals()
    for status, method, count, amount in result.all():
        status_totals = by_status.setdefault(status, _empty_totals())
        method_totals = by_method.setdefault(method, _empty_totals())
        for bucket in (status_totals, method_totals, total):
            bucket["count"] += count
            bucket["amount"] += float(amount)
    return {
        "period": period if period in STATS_PERIOD_DAYS else DEFAULT_STATS_PERIOD,
        "since": since,
        "total": total,
        "by_status": by_status,
        "by_method": by_method,
    }
