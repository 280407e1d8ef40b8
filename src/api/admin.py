"""Admin endpoints for staff accounts and client portal users."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.accounts.verification import (
    generate_verification_token,
    is_staff_email_allowed,
    send_verification_email,
)
from src.api.deps import get_db, require_admin
from src.core.config import settings
from src.core.logging import get_logger
from src.models.client import Client
from src.models.user import ClientUser, User, UserRole

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])
verification_router = APIRouter(prefix="/api/accounts", tags=["accounts"])

STAFF_ACCOUNT = "staff"
CLIENT_ACCOUNT = "client"


class StaffUserCreateRequest(BaseModel):
    """Payload for adding a staff member."""

    email: str = Field(min_length=3, max_length=255, pattern=r"^\S+@\S+$")
    full_name: str = Field(min_length=1, max_length=255)
    role: UserRole = UserRole.CARE_MANAGER
    title: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)


class StaffUserUpdateRequest(BaseModel):
    """Payload for editing a staff member."""

    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    role: UserRole | None = None
    title: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    is_active: bool | None = None


class StaffUserResponse(BaseModel):
    """Staff user response model."""

    id: int
    email: str
    full_name: str
    role: UserRole
    title: str | None
    phone: str | None
    is_active: bool
    email_verified: bool
    verification_sent_at: datetime | None
    created_by: int | None
    created_at: datetime
    updated_at: datetime | None


class ClientUserCreateRequest(BaseModel):
    """Payload for adding a client portal user."""

    email: str = Field(min_length=3, max_length=255, pattern=r"^\S+@\S+$")
    full_name: str = Field(min_length=1, max_length=255)
    client_id: int


class ClientUserUpdateRequest(BaseModel):
    """Payload for editing a client portal user."""

    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    is_active: bool | None = None


class ClientUserResponse(BaseModel):
    """Client portal user response model."""

    id: int
    email: str
    full_name: str
    client_id: int
    is_active: bool
    email_verified: bool
    verification_sent_at: datetime | None
    last_login: datetime | None
    created_by: int | None
    created_at: datetime
    updated_at: datetime | None


class VerifyEmailRequest(BaseModel):
    """Token from a verification link."""

    token: str = Field(min_length=1, max_length=64)


class VerifyEmailResponse(BaseModel):
    """Which account a token verified."""

    account_type: str
    email: str
    email_verified: bool


def _to_staff_response(user: User) -> StaffUserResponse:
    return StaffUserResponse.model_validate(user, from_attributes=True)


def _to_client_user_response(account: ClientUser) -> ClientUserResponse:
    return ClientUserResponse.model_validate(account, from_attributes=True)


def _issue_verification(account: User | ClientUser, account_type: str) -> None:
    """Attach a fresh token and log the verification message."""
    account.verification_token = generate_verification_token()
    account.verification_sent_at = send_verification_email(
        account.email, account.full_name, account.verification_token, account_type
    )


async def _email_in_use(db: AsyncSession, model: type[User] | type[ClientUser], email: str) -> bool:
    count = await db.scalar(
        select(func.count(model.id)).where(func.lower(model.email) == email.lower())
    )
    return bool(count)


async def _get_staff_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def _get_client_user_or_404(db: AsyncSession, client_user_id: int) -> ClientUser:
    account = await db.get(ClientUser, client_user_id)
    if account is None:
        raise HTTPException(status_code=404, detail="Client user not found")
    return account


@router.get("/users", response_model=list[StaffUserResponse])
async def list_staff_users(
    include_inactive: bool = Query(default=True),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[StaffUserResponse]:
    """List staff accounts."""
    stmt = select(User).order_by(User.full_name, User.id)
    if not include_inactive:
        stmt = stmt.where(User.is_active.is_(True))
    result = await db.execute(stmt)
    return [_to_staff_response(user) for user in result.scalars().all()]


@router.post("/users", response_model=StaffUserResponse, status_code=status.HTTP_201_CREATED)
async def create_staff_user(
    payload: StaffUserCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> StaffUserResponse:
    """Create a staff account and send it a verification message."""
    email = payload.email.strip().lower()
    if not is_staff_email_allowed(email):
        raise HTTPException(
            status_code=400,
            detail=f"Staff email must use the @{settings.staff_email_domain} domain",
        )
    if await _email_in_use(db, User, email):
        raise HTTPException(status_code=409, detail="A user with this email already exists")

    user = User(
        email=email,
        full_name=payload.full_name.strip(),
        role=payload.role,
        title=payload.title,
        phone=payload.phone,
        created_by=admin.id,
    )
    _issue_verification(user, STAFF_ACCOUNT)
    db.add(user)
    await db.flush()
    logger.info("staff_user_created", created_user_id=user.id, role=user.role.value)
    return _to_staff_response(user)


@router.get("/users/{user_id}", response_model=StaffUserResponse)
async def get_staff_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> StaffUserResponse:
    """Get staff account by ID."""
    return _to_staff_response(await _get_staff_or_404(db, user_id))


@router.patch("/users/{user_id}", response_model=StaffUserResponse)
async def update_staff_user(
    user_id: int,
    payload: StaffUserUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> StaffUserResponse:
    """Partially update a staff account."""
    user = await _get_staff_or_404(db, user_id)
    updates = payload.model_dump(exclude_unset=True)

    for field_name in ("full_name", "role", "is_active"):
        if field_name in updates and updates[field_name] is None:
            raise HTTPException(status_code=400, detail=f"{field_name} cannot be empty")
    if user.id == admin.id and (
        updates.get("is_active") is False or updates.get("role", UserRole.ADMIN) != UserRole.ADMIN
    ):
        raise HTTPException(status_code=400, detail="Admins cannot demote or deactivate themselves")
    if "full_name" in updates:
        updates["full_name"] = updates["full_name"].strip()

    for field_name, value in updates.items():
        setattr(user, field_name, value)
    await db.flush()
    return _to_staff_response(user)


@router.post("/users/{user_id}/deactivate", response_model=StaffUserResponse)
async def deactivate_staff_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> StaffUserResponse:
    """Block a staff account from signing in."""
    user = await _get_staff_or_404(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="Admins cannot demote or deactivate themselves")
    user.is_active = False
    await db.flush()
    logger.info("staff_user_deactivated", deactivated_user_id=user.id)
    return _to_staff_response(user)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_staff_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> Response:
    """Delete a staff account."""
    user = await _get_staff_or_404(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="Admins cannot delete themselves")
    await db.delete(user)
    logger.info("staff_user_deleted", deleted_user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/users/{user_id}/resend-verification", response_model=StaffUserResponse)
async def resend_staff_verification(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> StaffUserResponse:
    """Issue a new verification token to an unverified staff account."""
    user = await _get_staff_or_404(db, user_id)
    if user.email_verified:
        raise HTTPException(status_code=400, detail="Email is already verified")
    _issue_verification(user, STAFF_ACCOUNT)
    await db.flush()
    return _to_staff_response(user)


@router.get("/client-users", response_model=list[ClientUserResponse])
async def list_client_users(
    client_id: int | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[ClientUserResponse]:
    """List portal users, optionally for one client."""
    stmt = select(ClientUser).order_by(ClientUser.full_name, ClientUser.id)
    if client_id is not None:
        stmt = stmt.where(ClientUser.client_id == client_id)
    result = await db.execute(stmt)
    return [_to_client_user_response(account) for account in result.scalars().all()]


@router.post(
    "/client-users",
    response_model=ClientUserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_client_user(
    payload: ClientUserCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ClientUserResponse:
    """Create a portal user for a client and send a verification message."""
    client = await db.get(Client, payload.client_id)
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    email = payload.email.strip().lower()
    if await _email_in_use(db, ClientUser, email):
        raise HTTPException(
            status_code=409, detail="A client user with this email already exists"
        )

    account = ClientUser(
        email=email,
        full_name=payload.full_name.strip(),
        client_id=client.id,
        created_by=admin.id,
    )
    _issue_verification(account, CLIENT_ACCOUNT)
    client.has_portal_access = True
    db.add(account)
    await db.flush()
    logger.info("client_user_created", client_user_id=account.id, client_id=client.id)
    return _to_client_user_response(account)


@router.get("/client-users/{client_user_id}", response_model=ClientUserResponse)
async def get_client_user(
    client_user_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> ClientUserResponse:
    """Get portal user by ID."""
    return _to_client_user_response(await _get_client_user_or_404(db, client_user_id))


@router.patch("/client-users/{client_user_id}", response_model=ClientUserResponse)
async def update_client_user(
    client_user_id: int,
    payload: ClientUserUpdateRequest,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> ClientUserResponse:
    """Rename or (de)activate a portal user."""
    account = await _get_client_user_or_404(db, client_user_id)
    updates = payload.model_dump(exclude_unset=True)
    for field_name in ("full_name", "is_active"):
        if field_name in updates and updates[field_name] is None:
            raise HTTPException(status_code=400, detail=f"{field_name} cannot be empty")
    if "full_name" in updates:
        updates["full_name"] = updates["full_name"].strip()

    for field_name, value in updates.items():
        setattr(account, field_name, value)
    await db.flush()
    return _to_client_user_response(account)


@router.delete("/client-users/{client_user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client_user(
    client_user_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Response:
    """Delete a portal user."""
    account = await _get_client_user_or_404(db, client_user_id)
    await db.delete(account)
    logger.info("client_user_deleted", client_user_id=client_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/client-users/{client_user_id}/resend-verification",
    response_model=ClientUserResponse,
)
async def resend_client_verification(
    client_user_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> ClientUserResponse:
    """Issue a new verification token to an unverified portal user."""
    account = await _get_client_user_or_404(db, client_user_id)
    if account.email_verified:
        raise HTTPException(status_code=400, detail="Email is already verified")
    _issue_verification(account, CLIENT_ACCOUNT)
    await db.flush()
    return _to_client_user_response(account)


@verification_router.post("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(
    payload: VerifyEmailRequest,
    db: AsyncSession = Depends(get_db),
) -> VerifyEmailResponse:
    """Confirm an email address from a verification link.

    Tokens are single use. Staff accounts are checked before portal users.
    """
    for model, account_type in ((User, STAFF_ACCOUNT), (ClientUser, CLIENT_ACCOUNT)):
        result = await db.execute(
            select(model).where(model.verification_token == payload.token)
        )
        account = result.scalars().first()
        if account is None:
            continue
        account.email_verified = True
        account.verification_token = None
        await db.flush()
        logger.info("email_verified", account_type=account_type, account_id=account.id)
        return VerifyEmailResponse(
            account_type=account_type,
            email=account.email,
            email_verified=True,
        )

    raise HTTPException(status_code=400, detail="Invalid or expired verification token")
