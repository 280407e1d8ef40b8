"""Client portal login."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.accounts.access_codes import identity_matches, is_code_valid, normalize_code
from src.api.assessments import AssessmentSummary, _to_assessment_summary
from src.api.deps import get_db
from src.core.logging import client_id_ctx, get_logger
from src.models.assessment import Assessment, AssessmentStatus
from src.models.client import Client

logger = get_logger(__name__)

router = APIRouter(prefix="/api/portal", tags=["portal"])

_INVALID_CREDENTIALS = "Invalid name, date of birth or access code"


class PortalLoginRequest(BaseModel):
    """Identity and access code presented by a client."""

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    date_of_birth: date
    access_code: str = Field(min_length=1, max_length=16)


class PortalSessionResponse(BaseModel):
    """What a logged-in client may see."""

    client_id: int
    first_name: str
    last_name: str
    preferred_name: str | None
    access_code_expires: datetime | None
    assessments: list[AssessmentSummary]


@router.post("/login", response_model=PortalSessionResponse)
async def portal_login(
    payload: PortalLoginRequest,
    db: AsyncSession = Depends(get_db),
) -> PortalSessionResponse:
    """Authenticate a client with name, date of birth and access code.

    Raises:
        HTTPException: 401 when nothing matches or the code has expired.
    """
    code = normalize_code(payload.access_code)
    result = await db.execute(select(Client).where(Client.access_code == code))

    now = datetime.utcnow()
    client = next(
        (
            candidate
            for candidate in result.scalars().all()
            if identity_matches(
                candidate.first_name,
                candidate.last_name,
                candidate.date_of_birth,
                payload.first_name,
                payload.last_name,
                payload.date_of_birth,
            )
            and is_code_valid(
                candidate.access_code, candidate.access_code_expires, code, now=now
            )
        ),
        None,
    )
    if client is None:
        logger.warning("portal_login_failed", last_name=payload.last_name.strip())
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_INVALID_CREDENTIALS,
        )

    client_id_ctx.set(str(client.id))
    assessments = await db.execute(
        select(Assessment)
        .where(
            Assessment.client_id == client.id,
            Assessment.status == AssessmentStatus.COMPLETE,
        )
        .order_by(Assessment.completed_at.desc(), Assessment.id.desc())
    )
    logger.info("portal_login_succeeded", client_id=client.id)

    return PortalSessionResponse(
        client_id=client.id,
        first_name=client.first_name,
        last_name=client.last_name,
        preferred_name=client.preferred_name,
        access_code_expires=client.access_code_expires,
        assessments=[_to_assessment_summary(item) for item in assessments.scalars().all()],
    )
