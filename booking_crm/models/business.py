from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, Column
from sqlmodel import Field, SQLModel

from booking_crm.models.base import PUBLIC_CONFIG


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class BusinessBase(SQLModel):
    name: str
    description: str | None = None
    category: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    is_active: bool = True


class Business(BusinessBase, table=True):
    __tablename__ = "businesses"
    id: int | None = Field(default=None, primary_key=True)
    # {"monday": {"isOpen": true, "from": "09:00", "to": "18:00"}, ...}
    working_hours: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=_utc_naive_now)
    updated_at: datetime = Field(default_factory=_utc_naive_now)


class BusinessPublic(BusinessBase):
    model_config = PUBLIC_CONFIG

    id: int
    working_hours: dict[str, Any] | None = None
    updated_at: datetime | None = None


class ServiceBase(SQLModel):
    name: str
    description: str | None = None
    duration: int  # minutes
    price: float = 0
    category: str | None = None
    is_active: bool = True


class Service(ServiceBase, table=True):
    __tablename__ = "services"
    __table_args__ = (CheckConstraint("duration > 0", name="ck_services_duration_positive"),)
    id: int | None = Field(default=None, primary_key=True)
    business_id: int = Field(foreign_key="businesses.id", index=True, ondelete="CASCADE")
    created_at: datetime = Field(default_factory=_utc_naive_now)
    updated_at: datetime = Field(default_factory=_utc_naive_now)


class ServicePublic(ServiceBase):
    model_config = PUBLIC_CONFIG

    id: int
    business_id: int


class BusinessCreate(BusinessBase):
    working_hours: dict[str, Any] | None = None


class ServiceCreate(ServiceBase):
    pass
