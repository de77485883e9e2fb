from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import DDL, CheckConstraint, event
from sqlmodel import Field, SQLModel

from booking_crm.models.base import PUBLIC_CONFIG


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


# Only a scheduled appointment changes status; the rest are final
STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    AppointmentStatus.SCHEDULED.value: frozenset(
        {AppointmentStatus.COMPLETED.value, AppointmentStatus.CANCELLED.value, AppointmentStatus.NO_SHOW.value}
    ),
    AppointmentStatus.COMPLETED.value: frozenset(),
    AppointmentStatus.CANCELLED.value: frozenset(),
    AppointmentStatus.NO_SHOW.value: frozenset(),
}


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (CheckConstraint("start_time < end_time", name="ck_appointments_interval"),)
    id: int | None = Field(default=None, primary_key=True)
    business_id: int = Field(foreign_key="businesses.id", index=True, ondelete="CASCADE")
    client_id: int = Field(foreign_key="clients.id", index=True)
    service_id: int = Field(foreign_key="services.id", index=True)
    # Naive local time, half-open [start_time, end_time)
    start_time: datetime = Field(index=True)
    end_time: datetime
    status: str = Field(default=AppointmentStatus.SCHEDULED.value, index=True)
    payment_status: str = Field(default=PaymentStatus.PENDING.value)
    total_amount: float = 0
    notes: str = ""
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now)
    updated_at: datetime = Field(default_factory=_utc_naive_now)


class AppointmentPublic(SQLModel):
    model_config = PUBLIC_CONFIG

    id: int
    business_id: int
    client_id: int
    service_id: int
    start_time: datetime
    end_time: datetime
    status: str
    payment_status: str
    total_amount: float
    notes: str = ""
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime


# No two non-cancelled appointments of one business may overlap. Only PostgreSQL
# can express this; other backends rely on the booking lock in appointment_service.
# Keep in sync with migrations/versions/001_initial_schema.py.
BTREE_GIST_EXTENSION = DDL("CREATE EXTENSION IF NOT EXISTS btree_gist")
EXCLUDE_OVERLAPPING_APPOINTMENTS = DDL(
    "ALTER TABLE appointments ADD CONSTRAINT ex_appointments_no_overlap "
    "EXCLUDE USING gist (business_id WITH =, tsrange(start_time, end_time, '[)') WITH &&) "
    "WHERE (status <> 'cancelled')"
)

event.listen(Appointment.__table__, "after_create", BTREE_GIST_EXTENSION.execute_if(dialect="postgresql"))
event.listen(Appointment.__table__, "after_create", EXCLUDE_OVERLAPPING_APPOINTMENTS.execute_if(dialect="postgresql"))
