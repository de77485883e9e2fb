from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_crm.api.deps import get_session
from booking_crm.api.schemas.payment import (
    Pagination,
    PaymentCreateRequest,
    PaymentListResponse,
    PaymentStatsResponse,
    PaymentUpdateRequest,
)
from booking_crm.models.payment import PaymentPublic, PaymentRecordStatus
from booking_crm.services.business_service import get_business
from booking_crm.services.payment_service import (
    DEFAULT_STATS_PERIOD,
    create_payment,
    get_payment,
    list_payments,
    page_count,
    payment_stats,
    update_payment,
)

router = APIRouter(prefix="/businesses/{business_id}/payments", tags=["payments"])

_PAYMENT_NOT_FOUND = "Payment not found"


async def _require_business(session: AsyncSession, business_id: int) -> None:
    if not await get_business(session, business_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found")


@router.get("", response_model=PaymentListResponse)
async def read_payments(
    business_id: int,
    status_filter: PaymentRecordStatus | None = Query(None, alias="status"),
    appointment_id: int | None = Query(None, alias="appointmentId"),
    client_id: int | None = Query(None, alias="clientId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
) -> PaymentListResponse:
    await _require_business(session, business_id)
    payments, total = await list_payments(
        session,
        business_id,
        status=status_filter.value if status_filter else None,
        appointment_id=appointment_id,
        client_id=client_id,
        page=page,
        limit=limit,
    )
    return PaymentListResponse(
        payments=[PaymentPublic.model_validate(p, from_attributes=True) for p in payments],
        pagination=Pagination(page=page, limit=limit, total=total, pages=page_count(total, limit)),
    )


@router.post("", response_model=PaymentPublic, status_code=status.HTTP_201_CREATED)
async def record_payment(
    business_id: int,
    body: PaymentCreateRequest,
    session: AsyncSession = Depends(get_session),
) -> PaymentPublic:
    await _require_business(session, business_id)
    payment = await create_payment(
        session,
        business_id,
        appointment_id=body.appointment_id,
        amount=body.amount,
        method=body.method,
        currency=body.currency.upper(),
        status=body.status,
        transaction_id=body.transaction_id,
        notes=body.notes,
    )
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return PaymentPublic.model_validate(payment, from_attributes=True)


@router.get("/stats", response_model=PaymentStatsResponse)
async def read_payment_stats(
    business_id: int,
    period: str = Query(DEFAULT_STATS_PERIOD, pattern=r"^(7d|30d|90d|1y)$"),
    session: AsyncSession = Depends(get_session),
) -> PaymentStatsResponse:
    await _require_business(session, business_id)
    return PaymentStatsResponse(**await payment_stats(session, business_id, period=period))


@router.get("/{payment_id}", response_model=PaymentPublic)
async def read_payment(
    business_id: int,
    payment_id: int,
    session: AsyncSession = Depends(get_session),
) -> PaymentPublic:
    payment = await get_payment(session, business_id, payment_id)
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_PAYMENT_NOT_FOUND)
    return PaymentPublic.model_validate(payment, from_attributes=True)


@router.patch("/{payment_id}", response_model=PaymentPublic)
async def edit_payment(
    business_id: int,
    payment_id: int,
    body: PaymentUpdateRequest,
    session: AsyncSession = Depends(get_session),
) -> PaymentPublic:
    payment = await update_payment(
        session,
        business_id,
        payment_id,
        status=body.status,
        transaction_id=body.transaction_id,
        refund_reason=body.refund_reason,
        notes=body.notes,
    )
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_PAYMENT_NOT_FOUND)
    return PaymentPublic.model_validate(payment, from_attributes=True)
