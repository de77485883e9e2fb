import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from booking_crm.models.appointment import AppointmentStatus, PaymentStatus

# Kazakhstan format: +7XXXXXXXXXX or 8XXXXXXXXXX
PHONE_REGEX = re.compile(r"^(\+7|8)\d{10}$")
_PHONE_NOISE = re.compile(r"[\s\-()]")


def normalize_phone(value: str) -> str:
    return _PHONE_NOISE.sub("", value)


def to_local_naive(dt: datetime) -> datetime:
    """Bookings are stored in naive local time; drop any offset after converting."""
    if dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)
    return dt


class TimeSlotInfo(BaseModel):
    time: str  # HH:MM
    timestamp: int  # epoch ms
    available: bool


class AvailableSlotsResponse(BaseModel):
    slots: list[TimeSlotInfo]


class BookAppointmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    business_id: int = Field(alias="businessId")
    service_id: int = Field(alias="serviceId")
    start_time: datetime = Field(alias="startTime")
    client_name: str = Field(alias="clientName", min_length=1)
    client_phone: str = Field(alias="clientPhone")
    client_email: EmailStr | None = Field(default=None, alias="clientEmail")
    notes: str | None = None

    @field_validator("client_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Client name is required")
        return v

    @field_validator("client_phone")
    @classmethod
    def check_phone(cls, v: str) -> str:
        phone = normalize_phone(v)
        if not PHONE_REGEX.match(phone):
            raise ValueError("Invalid client phone number format")
        return phone

    @field_validator("client_email", mode="before")
    @classmethod
    def blank_email_is_none(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("start_time")
    @classmethod
    def local_start(cls, v: datetime) -> datetime:
        return to_local_naive(v)


class UpdateAppointmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: AppointmentStatus | None = None
    payment_status: PaymentStatus | None = Field(default=None, alias="paymentStatus")
    notes: str | None = None
    cancellation_reason: str | None = Field(default=None, alias="cancellationReason")
    cancelled_by: Literal["client", "business"] | None = Field(default=None, alias="cancelledBy")


class CancelAppointmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cancellation_reason: str | None = Field(default=None, alias="cancellationReason")
    cancelled_by: Literal["client", "business"] | None = Field(default=None, alias="cancelledBy")
