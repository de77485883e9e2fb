from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from booking_crm.api.schemas.appointment import PHONE_REGEX, normalize_phone
from booking_crm.models.appointment import AppointmentPublic
from booking_crm.models.client import ClientNotePublic, ClientPublic


class ClientUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(default=None, min_length=1)
    phone: str | None = None
    email: EmailStr | None = None
    notes: str | None = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        phone = normalize_phone(v)
        if not PHONE_REGEX.match(phone):
            raise ValueError("Invalid client phone number format")
        return phone


class ClientNoteCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(min_length=1)
    type: str = "general"
    author_name: str | None = Field(default=None, alias="authorName")

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Note content is required")
        return v


class ClientDetailResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    client: ClientPublic
    appointments: list[AppointmentPublic]
    notes: list[ClientNotePublic]
