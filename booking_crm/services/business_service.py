from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_crm.core.exceptions import ServiceInUse
from booking_crm.models.appointment import Appointment, AppointmentStatus
from booking_crm.models.business import Business, BusinessCreate, Service, ServiceCreate


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


async def get_business(session: AsyncSession, business_id: int) -> Business | None:
    result = await session.execute(select(Business).where(Business.id == business_id))
    return result.scalar_one_or_none()


async def get_active_business(session: AsyncSession, business_id: int) -> Business | None:
    """Business directory lookup for public booking: inactive businesses are hidden."""
    business = await get_business(session, business_id)
    if not business or not business.is_active:
        return None
    return business


async def create_business(session: AsyncSession, data: BusinessCreate) -> Business:
    business = Business(**data.model_dump())
    session.add(business)
    await session.flush()
    await session.refresh(business)
    return business


async def update_working_hours(
    session: AsyncSession, business_id: int, working_hours: dict[str, Any]
) -> Business | None:
    business = await get_business(session, business_id)
    if not business:
        return None
    business.working_hours = working_hours
    business.updated_at = _utc_naive_now()
    session.add(business)
    await session.flush()
    return business


async def get_service(
    session: AsyncSession, service_id: int, business_id: int | None = None
) -> Service | None:
    q = select(Service).where(Service.id == service_id)
    if business_id is not None:
        q = q.where(Service.business_id == business_id)
    result = await session.execute(q)
    return result.scalar_one_or_none()


async def list_services(
    session: AsyncSession, business_id: int, active_only: bool = True
) -> list[Service]:
    q = select(Service).where(Service.business_id == business_id).order_by(Service.name)
    if active_only:
        q = q.where(Service.is_active == True)  # noqa: E712
    result = await session.execute(q)
    return list(result.scalars().all())


async def create_service(
    session: AsyncSession, business_id: int, data: ServiceCreate
) -> Service | None:
    if not await get_business(session, business_id):
        return None
    service = Service(business_id=business_id, **data.model_dump())
    session.add(service)
    await session.flush()
    await session.refresh(service)
    return service


_PROFILE_FIELDS = ("name", "description", "category", "phone", "email", "address", "is_active", "working_hours")
_SERVICE_FIELDS = ("name", "description", "duration", "price", "category", "is_active")


async def update_business(
    session: AsyncSession, business_id: int, changes: dict[str, Any]
) -> Business | None:
    """Partial profile update; keys outside the profile are ignored."""
    business = await get_business(session, business_id)
    if not business:
        return None
    for field in _PROFILE_FIELDS:
        if field in changes:
            setattr(business, field, changes[field])
    business.updated_at = _utc_naive_now()
    session.add(business)
    await session.flush()
    return business


async def update_service(
    session: AsyncSession, business_id: int, service_id: int, changes: dict[str, Any]
) -> Service | None:
    service = await get_service(session, service_id, business_id=business_id)
    if not service:
        return None
    for field in _SERVICE_FIELDS:
        if field in changes:
            setattr(service, field, changes[field])
    service.updated_at = _utc_naive_now()
    session.add(service)
    await session.flush()
    return service


async def deactivate_service(
    session: AsyncSession, business_id: int, service_id: int, now: datetime
) -> Service | None:
    """Remove a service from the catalogue. Past appointments keep referencing it,
    so the row stays with is_active = False. Raises ServiceInUse while scheduled
    appointments at or after `now` still use it."""
    service = await get_service(session, service_id, business_id=business_id)
    if not service:
        return None
    upcoming = await session.scalar(
        select(func.count())
        .select_from(Appointment)
        .where(
            Appointment.service_id == service_id,
            Appointment.status == AppointmentStatus.SCHEDULED.value,
            Appointment.start_time >= now,
        )
    )
    if upcoming:
        raise ServiceInUse(service_id)
    service.is_active = False
    service.updated_at = _utc_naive_now()
    session.add(service)
    await session.flush()
    return service
