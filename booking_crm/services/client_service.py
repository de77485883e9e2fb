from datetime import UTC, datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_crm.core.exceptions import ClientPhoneTaken
from booking_crm.models.appointment import Appointment
from booking_crm.models.client import Client, ClientNote


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


async def get_client_by_phone(session: AsyncSession, business_id: int, phone: str) -> Client | None:
    result = await session.execute(
        select(Client).where(Client.business_id == business_id, Client.phone == phone)
    )
    return result.scalar_one_or_none()


async def get_or_create_client(
    session: AsyncSession,
    business_id: int,
    name: str,
    phone: str,
    email: str | None = None,
) -> Client:
    """Clients are identified by phone within a business; a known phone refreshes name/email."""
    client = await get_client_by_phone(session, business_id, phone)
    if client:
        client.name = name
        if email:
            client.email = email
        client.updated_at = _utc_naive_now()
        session.add(client)
        await session.flush()
        return client
    client = Client(business_id=business_id, name=name, phone=phone, email=email)
    session.add(client)
    await session.flush()
    await session.refresh(client)
    return client


async def get_client(session: AsyncSession, business_id: int, client_id: int) -> Client | None:
    result = await session.execute(
        select(Client).where(Client.id == client_id, Client.business_id == business_id)
    )
    return result.scalar_one_or_none()


async def list_clients(session: AsyncSession, business_id: int, search: str | None = None) -> list[Client]:
    q = select(Client).where(Client.business_id == business_id).order_by(Client.name)
    if search:
        pattern = f"%{search}%"
        q = q.where(or_(Client.name.ilike(pattern), Client.phone.ilike(pattern)))
    result = await session.execute(q)
    return list(result.scalars().all())


async def update_client(
    session: AsyncSession,
    business_id: int,
    client_id: int,
    name: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    notes: str | None = None,
) -> Client | None:
    """Edit contact details or the free-form notes. Raises ClientPhoneTaken when
    the new phone already belongs to another client of the business."""
    client = await get_client(session, business_id, client_id)
    if not client:
        return None
    if phone is not None and phone != client.phone:
        other = await get_client_by_phone(session, business_id, phone)
        if other and other.id != client.id:
            raise ClientPhoneTaken(phone)
        client.phone = phone
    if name is not None:
        client.name = name
    if email is not None:
        client.email = email
    if notes is not None:
        client.notes = notes
    client.updated_at = _utc_naive_now()
    session.add(client)
    await session.flush()
    return client


async def list_client_appointments(session: AsyncSession, client_id: int) -> list[Appointment]:
    """Visit history, newest first."""
    result = await session.execute(
        select(Appointment).where(Appointment.client_id == client_id).order_by(Appointment.start_time.desc())
    )
    return list(result.scalars().all())


async def add_client_note(
    session: AsyncSession,
    client: Client,
    content: str,
    note_type: str = "general",
    author_name: str | None = None,
) -> ClientNote:
    note = ClientNote(
        client_id=client.id,
        business_id=client.business_id,
        content=content,
        type=note_type,
        author_name=author_name,
    )
    session.add(note)
    await session.flush()
    await session.refresh(note)
    return note


async def list_client_notes(session: AsyncSession, client_id: int) -> list[ClientNote]:
    result = await session.execute(
        select(ClientNote)
        .where(ClientNote.client_id == client_id)
        .order_by(ClientNote.created_at.desc(), ClientNote.id.desc())
    )
    return list(result.scalars().all())
