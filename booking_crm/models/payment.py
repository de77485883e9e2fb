from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from booking_crm.models.base import PUBLIC_CONFIG


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class PaymentMethod(str, Enum):
    KASPI = "kaspi"
    CASH = "cash"
    OTHER = "other"


class PaymentRecordStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


PAYMENT_TRANSITIONS: dict[str, frozenset[str]] = {
    PaymentRecordStatus.PENDING.value: frozenset(
        {PaymentRecordStatus.COMPLETED.value, PaymentRecordStatus.FAILED.value}
    ),
    PaymentRecordStatus.COMPLETED.value: frozenset({PaymentRecordStatus.REFUNDED.value}),
    PaymentRecordStatus.FAILED.value: frozenset(),
    PaymentRecordStatus.REFUNDED.value: frozenset(),
}


class Payment(SQLModel, table=True):
    """Money received (or expected) for an appointment. Recorded by staff; no provider calls."""

    __tablename__ = "payments"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_payments_amount_positive"),)
    id: int | None = Field(default=None, primary_key=True)
    business_id: int = Field(foreign_key="businesses.id", index=True, ondelete="CASCADE")
    appointment_id: int = Field(foreign_key="appointments.id", index=True)
    client_id: int | None = Field(default=None, foreign_key="clients.id", index=True)
    amount: float
    currency: str = "KZT"
    method: str
    status: str = Field(default=PaymentRecordStatus.PENDING.value, index=True)
    reference_id: str = Field(index=True)
    transaction_id: str | None = None
    refund_reason: str | None = None
    notes: str | None = None
    paid_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now, index=True)
    updated_at: datetime = Field(default_factory=_utc_naive_now)


class PaymentPublic(SQLModel):
    model_config = PUBLIC_CONFIG

    id: int
    business_id: int
    appointment_id: int
    client_id: int | None = None
    amount: float
    currency: str
    method: str
    status: str
    reference_id: str
    transaction_id: str | None = None
    refund_reason: str | None = None
    notes: str | None = None
    paid_at: datetime | None = None
    created_at: datetime
