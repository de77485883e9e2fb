from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from booking_crm.models.payment import PaymentMethod, PaymentPublic, PaymentRecordStatus


class PaymentCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    appointment_id: int = Field(alias="appointmentId")
    amount: float = Field(gt=0)
    currency: str = Field(default="KZT", min_length=3, max_length=3)
    method: PaymentMethod
    status: PaymentRecordStatus = PaymentRecordStatus.PENDING
    transaction_id: str | None = Field(default=None, alias="transactionId")
    notes: str | None = None


class PaymentUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: PaymentRecordStatus | None = None
    transaction_id: str | None = Field(default=None, alias="transactionId")
    refund_reason: str | None = Field(default=None, alias="refundReason")
    notes: str | None = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Pagination(_CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class PaymentListResponse(_CamelModel):
    payments: list[PaymentPublic]
    pagination: Pagination


class PaymentTotals(_CamelModel):
    amount: float
    count: int


class PaymentStatsResponse(_CamelModel):
    period: str
    since: datetime
    total: PaymentTotals
    by_status: dict[str, PaymentTotals]
    by_method: dict[str, PaymentTotals]
