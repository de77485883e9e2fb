from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_crm.api.deps import get_session
from booking_crm.api.schemas.client import (
    ClientDetailResponse,
    ClientNoteCreateRequest,
    ClientUpdateRequest,
)
from booking_crm.models.appointment import AppointmentPublic
from booking_crm.models.client import ClientNotePublic, ClientPublic
from booking_crm.services.business_service import get_business
from booking_crm.services.client_service import (
    add_client_note,
    get_client,
    list_client_appointments,
    list_client_notes,
    list_clients,
    update_client,
)

router = APIRouter(prefix="/businesses/{business_id}/clients", tags=["clients"])

_CLIENT_NOT_FOUND = "Client not found"


@router.get("", response_model=list[ClientPublic])
async def read_clients(
    business_id: int,
    search: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> list[ClientPublic]:
    """Clients ordered by name; `search` matches part of the name or phone."""
    if not await get_business(session, business_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found")
    clients = await list_clients(session, business_id, search=search)
    return [ClientPublic.model_validate(c, from_attributes=True) for c in clients]


@router.get("/{client_id}", response_model=ClientDetailResponse)
async def read_client(
    business_id: int,
    client_id: int,
    session: AsyncSession = Depends(get_session),
) -> ClientDetailResponse:
    client = await get_client(session, business_id, client_id)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_CLIENT_NOT_FOUND)
    appointments = await list_client_appointments(session, client.id)
    notes = await list_client_notes(session, client.id)
    return ClientDetailResponse(
        client=ClientPublic.model_validate(client, from_attributes=True),
        appointments=[AppointmentPublic.model_validate(a, from_attributes=True) for a in appointments],
        notes=[ClientNotePublic.model_validate(n, from_attributes=True) for n in notes],
    )


@router.patch("/{client_id}", response_model=ClientPublic)
async def edit_client(
    business_id: int,
    client_id: int,
    body: ClientUpdateRequest,
    session: AsyncSession = Depends(get_session),
) -> ClientPublic:
    # ClientPhoneTaken -> 409 via the app-level handler
    client = await update_client(
        session,
        business_id,
        client_id,
        name=body.name,
        phone=body.phone,
        email=body.email,
        notes=body.notes,
    )
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_CLIENT_NOT_FOUND)
    return ClientPublic.model_validate(client, from_attributes=True)


@router.get("/{client_id}/notes", response_model=list[ClientNotePublic])
async def read_client_notes(
    business_id: int,
    client_id: int,
    session: AsyncSession = Depends(get_session),
) -> list[ClientNotePublic]:
    client = await get_client(session, business_id, client_id)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_CLIENT_NOT_FOUND)
    notes = await list_client_notes(session, client.id)
    return [ClientNotePublic.model_validate(n, from_attributes=True) for n in notes]


@router.post("/{client_id}/notes", response_model=ClientNotePublic, status_code=status.HTTP_201_CREATED)
async def add_note(
    business_id: int,
    client_id: int,
    body: ClientNoteCreateRequest,
    session: AsyncSession = Depends(get_session),
) -> ClientNotePublic:
    client = await get_client(session, business_id, client_id)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_CLIENT_NOT_FOUND)
    note = await add_client_note(
        session, client, body.content, note_type=body.type, author_name=body.author_name
    )
    return ClientNotePublic.model_validate(note, from_attributes=True)
