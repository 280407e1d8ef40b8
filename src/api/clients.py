"""Clients API endpoints."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.accounts.access_codes import access_code_expiry, generate_access_code
from src.api.assessments import AssessmentSummary, _to_assessment_summary
from src.api.deps import get_current_user, get_db
from src.core.logging import client_id_ctx, get_logger
from src.models.assessment import Assessment
from src.models.client import Client
from src.models.user import User

logger = get_logger(__name__)

router = APIRouter(prefix="/api/clients", tags=["clients"])


class ClientFields(BaseModel):
    """Optional client fields shared by create and update payloads."""

    preferred_name: str | None = Field(default=None, max_length=100)
    date_of_birth: date | None = None
    gender: str | None = Field(default=None, max_length=50)
    marital_status: str | None = Field(default=None, max_length=50)
    primary_language: str | None = Field(default=None, max_length=50)
    veteran_status: bool | None = None
    living_arrangement: str | None = Field(default=None, max_length=100)
    mobility_status: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    cell_phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    address_line1: str | None = Field(default=None, max_length=255)
    address_line2: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=50)
    zip_code: str | None = Field(default=None, max_length=20)
    poc_full_name: str | None = Field(default=None, max_length=255)
    poc_relationship: str | None = Field(default=None, max_length=100)
    poc_phone: str | None = Field(default=None, max_length=50)
    poc_email: str | None = Field(default=None, max_length=255)
    notes: str | None = None
    has_portal_access: bool | None = None


class ClientCreateRequest(ClientFields):
    """Payload for creating a client."""

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class ClientUpdateRequest(ClientFields):
    """Payload for updating a client."""

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)


class ClientResponse(BaseModel):
    """Client response model."""

    id: int
    first_name: str
    last_name: str
    preferred_name: str | None
    date_of_birth: date | None
    gender: str | None
    marital_status: str | None
    primary_language: str | None
    veteran_status: bool
    living_arrangement: str | None
    mobility_status: str | None
    phone: str | None
    cell_phone: str | None
    email: str | None
    address_line1: str | None
    address_line2: str | None
    city: str | None
    state: str | None
    zip_code: str | None
    poc_full_name: str | None
    poc_relationship: str | None
    poc_phone: str | None
    poc_email: str | None
    notes: str | None
    created_by: int | None
    has_portal_access: bool
    access_code: str | None
    access_code_expires: datetime | None
    created_at: datetime
    updated_at: datetime | None


class ClientListResponse(BaseModel):
    """Paginated client list response."""

    items: list[ClientResponse]
    total: int
    limit: int
    offset: int


class AccessCodeResponse(BaseModel):
    """Newly issued portal access code."""

    client_id: int
    access_code: str
    access_code_expires: datetime


def _to_client_response(client: Client) -> ClientResponse:
    """Map SQLAlchemy client model to response model."""
    return ClientResponse.model_validate(client, from_attributes=True)


def _issue_access_code(client: Client) -> None:
    client.access_code = generate_access_code()
    client.access_code_expires = access_code_expiry()


async def _get_client_or_404(db: AsyncSession, client_id: int) -> Client:
    client = await db.get(Client, client_id)
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    client_id_ctx.set(str(client.id))
    return client


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ClientResponse:
    """Create a new client and issue their first portal access code."""
    values = payload.model_dump(exclude_none=True)
    values["first_name"] = payload.first_name.strip()
    values["last_name"] = payload.last_name.strip()
    client = Client(**values, created_by=user.id)
    _issue_access_code(client)
    db.add(client)
    await db.flush()
    logger.info("client_created", client_id=client.id)
    return _to_client_response(client)


@router.get("", response_model=ClientListResponse)
async def list_clients(
    search: str | None = Query(default=None, min_length=1),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ClientListResponse:
    """List clients with optional name/email search and pagination."""
    filters = []
    if search:
        search_pattern = f"%{search.strip().lower()}%"
        filters.append(
            or_(
                func.lower(Client.first_name).like(search_pattern),
                func.lower(Client.last_name).like(search_pattern),
                func.lower(func.coalesce(Client.preferred_name, "")).like(search_pattern),
                func.lower(func.coalesce(Client.email, "")).like(search_pattern),
            )
        )

    count_stmt = select(func.count(Client.id))
    list_stmt = select(Client).order_by(Client.last_name, Client.first_name, Client.id)
    if filters:
        count_stmt = count_stmt.where(*filters)
        list_stmt = list_stmt.where(*filters)

    total_result = await db.execute(count_stmt)
    total = int(total_result.scalar() or 0)

    clients_result = await db.execute(list_stmt.limit(limit).offset(offset))
    clients = clients_result.scalars().all()

    return ClientListResponse(
        items=[_to_client_response(client) for client in clients],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ClientResponse:
    """Get client by ID."""
    client = await _get_client_or_404(db, client_id)
    return _to_client_response(client)


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    payload: ClientUpdateRequest,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ClientResponse:
    """Partially update client fields."""
    client = await _get_client_or_404(db, client_id)

    updates = payload.model_dump(exclude_unset=True)
    for field_name in ("first_name", "last_name"):
        if field_name in updates:
            if updates[field_name] is None:
                raise HTTPException(status_code=400, detail=f"{field_name} cannot be empty")
            updates[field_name] = updates[field_name].strip()
    if updates.get("veteran_status") is None:
        updates.pop("veteran_status", None)
    if updates.get("has_portal_access") is None:
        updates.pop("has_portal_access", None)

    for field_name, value in updates.items():
        setattr(client, field_name, value)

    await db.flush()
    return _to_client_response(client)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> Response:
    """Delete a client that has no assessments."""
    client = await _get_client_or_404(db, client_id)
    assessment_count = await db.scalar(
        select(func.count(Assessment.id)).where(Assessment.client_id == client.id)
    )
    if assessment_count:
        raise HTTPException(
            status_code=409,
            detail="Client has assessments and cannot be deleted",
        )
    await db.delete(client)
    logger.info("client_deleted", client_id=client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{client_id}/access-code", response_model=AccessCodeResponse)
async def regenerate_access_code(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> AccessCodeResponse:
    """Issue a new portal access code, invalidating the previous one."""
    client = await _get_client_or_404(db, client_id)
    _issue_access_code(client)
    await db.flush()
    logger.info("client_access_code_regenerated", client_id=client.id)
    return AccessCodeResponse(
        client_id=client.id,
        access_code=client.access_code,
        access_code_expires=client.access_code_expires,
    )


@router.get("/{client_id}/assessments", response_model=list[AssessmentSummary])
async def list_client_assessments(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> list[AssessmentSummary]:
    """List a client's assessments, newest first."""
    client = await _get_client_or_404(db, client_id)
    result = await db.execute(
        select(Assessment)
        .where(Assessment.client_id == client.id)
        .order_by(Assessment.created_at.desc(), Assessment.id.desc())
    )
    return [_to_assessment_summary(assessment) for assessment in result.scalars().all()]
