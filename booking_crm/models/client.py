from datetime import UTC, datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from booking_crm.models.base import PUBLIC_CONFIG


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class Client(SQLModel, table=True):
    __tablename__ = "clients"
    __table_args__ = (UniqueConstraint("business_id", "phone", name="uq_clients_business_phone"),)
    id: int | None = Field(default=None, primary_key=True)
    business_id: int = Field(foreign_key="businesses.id", index=True, ondelete="CASCADE")
    name: str
    phone: str
    email: str | None = None
    notes: str = ""
    total_visits: int = 0
    created_at: datetime = Field(default_factory=_utc_naive_now)
    updated_at: datetime = Field(default_factory=_utc_naive_now)


class ClientPublic(SQLModel):
    model_config = PUBLIC_CONFIG

    id: int
    business_id: int
    name: str
    phone: str
    email: str | None = None
    notes: str = ""
    total_visits: int = 0
    created_at: datetime | None = None


class ClientNote(SQLModel, table=True):
    """Staff note in a client's history (preferences, allergies, ...)."""

    __tablename__ = "client_notes"
    id: int | None = Field(default=None, primary_key=True)
    client_id: int = Field(foreign_key="clients.id", index=True, ondelete="CASCADE")
    business_id: int = Field(foreign_key="businesses.id", index=True, ondelete="CASCADE")
    content: str
    type: str = "general"
    author_name: str | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now)


class ClientNotePublic(SQLModel):
    model_config = PUBLIC_CONFIG

    id: int
    client_id: int
    content: str
    type: str
    author_name: str | None = None
    created_at: datetime
