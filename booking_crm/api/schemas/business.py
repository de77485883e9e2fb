from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from booking_crm.scheduling.engine import parse_hhmm


class WorkingHoursDay(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_open: bool = Field(default=False, alias="isOpen")
    from_: str = Field(default="09:00", alias="from")
    to: str = "18:00"

    @model_validator(mode="after")
    def check_times(self) -> "WorkingHoursDay":
        start = parse_hhmm(self.from_)
        end = parse_hhmm(self.to)
        if start is None or end is None:
            raise ValueError("Working hours must use HH:MM format")
        if self.is_open and start >= end:
            raise ValueError("Opening time must be before closing time")
        return self


class WorkingHours(BaseModel):
    """All seven days, Monday first. Stored with aliases: {"monday": {"isOpen", "from", "to"}}."""

    monday: WorkingHoursDay
    tuesday: WorkingHoursDay
    wednesday: WorkingHoursDay
    thursday: WorkingHoursDay
    friday: WorkingHoursDay
    saturday: WorkingHoursDay
    sunday: WorkingHoursDay

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True)


class BusinessCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    description: str | None = None
    category: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    working_hours: WorkingHours | None = Field(default=None, alias="workingHours")


class ServiceCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    duration: int = Field(gt=0)  # minutes
    price: float = Field(default=0, ge=0)
    category: str | None = None


class BusinessUpdateRequest(BaseModel):
    """Profile edit; only the fields sent are changed."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    category: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    is_active: bool | None = Field(default=None, alias="isActive")
    working_hours: WorkingHours | None = Field(default=None, alias="workingHours")

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True, exclude={"working_hours"})
        # name/is_active are required columns; an explicit null means "leave as is"
        data = {k: v for k, v in data.items() if v is not None or k not in ("name", "is_active")}
        if self.working_hours is not None:
            data["working_hours"] = self.working_hours.to_storage()
        return data


class ServiceUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    duration: int | None = Field(default=None, gt=0)
    price: float | None = Field(default=None, ge=0)
    category: str | None = None
    is_active: bool | None = Field(default=None, alias="isActive")

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k in ("description", "category")}


class DashboardStatsResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    appointments_today: int
    appointments_week: int
    clients_total: int
    revenue: float
