"""Assessments API endpoints.

Edits are applied to the in-memory form, buffered in Redis and flushed to
the database by the autosave scheduler or an explicit save.
"""

import math
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from statemachine.exceptions import TransitionNotAllowed

from src.api.deps import get_autosave, get_current_user, get_db, get_drafts
from src.assessments import gds, home_safety
from src.assessments.autosave import AutosaveScheduler
from src.assessments.drafts import DraftStore
from src.assessments.form import (
    AssessmentForm,
    FormMode,
    MissingClientError,
    ReadOnlyFormError,
    SectionState,
)
from src.assessments.sections import SECTION_ORDER, SECTION_TITLES, UnknownSectionError
from src.assessments.service import (
    AssessmentNotFoundError,
    create_assessment,
    finalize_assessment,
    load_form,
    persist_form,
    reopen_assessment,
)
from src.assessments.slums import score_slums
from src.core.logging import client_id_ctx, get_logger
from src.library.care_plans import (
    PLANS_FIELD,
    UnknownRecommendationError,
    build_plan_entry,
    merge_plan,
)
from src.models.assessment import Assessment, AssessmentAuditEntry, AssessmentStatus
from src.models.client import Client
from src.models.library import CarePlanTemplate
from src.models.user import User

logger = get_logger(__name__)

router = APIRouter(prefix="/api/assessments", tags=["assessments"])


def _require_finite(value: Any) -> None:
    """Reject NaN and infinity anywhere in a submitted value.

    Section data is stored as JSON, which has no representation for them.

    Raises:
        ValueError: On the first non-finite number found.
    """
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("Numbers must be finite")
    if isinstance(value, dict):
        for item in value.values():
            _require_finite(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _require_finite(item)


class AssessmentCreateRequest(BaseModel):
    """Payload for starting an assessment."""

    client_id: int | None = None


class FieldUpdateRequest(BaseModel):
    """Set a single field. ``null`` clears it."""

    value: Any = None


class SectionUpdateRequest(BaseModel):
    """Set several fields of one section at once."""

    fields: dict[str, Any] = Field(min_length=1)


class ApplyCarePlanRequest(BaseModel):
    """Copy a care-plan template into the care_plan section."""

    template_id: int
    recommendation_ids: list[str] | None = None


class CurrentSectionRequest(BaseModel):
    """Move the form to another section."""

    section: str


class SectionResponse(BaseModel):
    """One section's data and completion."""

    key: str
    title: str
    data: dict[str, Any]
    completion_percentage: int
    is_complete: bool
    last_updated: datetime | None


class AssessmentSummary(BaseModel):
    """Assessment list entry."""

    id: int
    client_id: int | None
    status: str
    version: int
    completion_percentage: int
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime | None


class AssessmentListResponse(BaseModel):
    """Paginated assessment list response."""

    items: list[AssessmentSummary]
    total: int
    limit: int
    offset: int


class AssessmentResponse(AssessmentSummary):
    """Full assessment including every section."""

    created_by: int | None
    current_section: str
    mode: str
    has_unsaved_changes: bool
    last_autosave: datetime | None
    sections: list[SectionResponse]


class SectionEditResponse(BaseModel):
    """Result of an edit: the section plus the new overall completion."""

    assessment_id: int
    client_id: int | None
    section: SectionResponse
    completion_percentage: int
    has_unsaved_changes: bool
    autosave_pending: bool


class SectionProgress(BaseModel):
    """Progress entry for one section."""

    key: str
    title: str
    completion_percentage: int
    is_complete: bool


class ProgressResponse(BaseModel):
    """Per-section and overall completion."""

    assessment_id: int
    completion_percentage: int
    completed_sections: int
    total_sections: int
    sections: list[SectionProgress]


class ValidationResponse(BaseModel):
    """Unfilled required fields keyed by section then field."""

    assessment_id: int
    is_valid: bool
    errors: dict[str, dict[str, str]]


class AuditEntryResponse(BaseModel):
    """Audit trail entry."""

    id: int
    user_id: int | None
    action: str
    description: str | None
    created_at: datetime


class SlumsScoreResponse(BaseModel):
    """SLUMS scoring result."""

    question_scores: dict[int, int]
    total: int
    max_score: int = 30
    interpretation: str
    education_level: str | None


class GdsScoreResponse(BaseModel):
    """GDS-15 scoring result."""

    total: int
    answered: int
    is_complete: bool
    interpretation: str | None


class HomeSafetyResponse(BaseModel):
    """Flagged home safety checklist items."""

    flagged_items: list[str]
    flagged_labels: list[str]


class ScoresResponse(BaseModel):
    """All instrument scores for an assessment."""

    assessment_id: int
    slums: SlumsScoreResponse | None
    gds: GdsScoreResponse | None
    home_safety: HomeSafetyResponse


class SlumsScoreRequest(BaseModel):
    """Score SLUMS answers without an assessment."""

    data: dict[str, Any]
    assessment_date: date | None = None


def _to_assessment_summary(assessment: Assessment) -> AssessmentSummary:
    """Map SQLAlchemy assessment model to summary response."""
    return AssessmentSummary(
        id=assessment.id,
        client_id=assessment.client_id,
        status=assessment.status.value,
        version=assessment.version,
        completion_percentage=assessment.completion_percentage,
        completed_at=assessment.completed_at,
        created_at=assessment.created_at,
        updated_at=assessment.updated_at,
    )


def _to_section_response(key: str, state: SectionState) -> SectionResponse:
    return SectionResponse(
        key=key,
        title=SECTION_TITLES[key],
        data=state.data,
        completion_percentage=state.completion_percentage,
        is_complete=state.is_complete,
        last_updated=state.last_updated,
    )


def _to_assessment_response(
    assessment: Assessment, form: AssessmentForm
) -> AssessmentResponse:
    return AssessmentResponse(
        id=assessment.id,
        client_id=form.client_id,
        status=assessment.status.value,
        version=assessment.version,
        completion_percentage=form.completion_percentage,
        completed_at=assessment.completed_at,
        created_at=assessment.created_at,
        updated_at=assessment.updated_at,
        created_by=assessment.created_by,
        current_section=form.current_section,
        mode=form.mode.value,
        has_unsaved_changes=form.has_unsaved_changes,
        last_autosave=form.last_autosave,
        sections=[_to_section_response(key, form.sections[key]) for key in SECTION_ORDER],
    )


async def _load_or_404(
    db: AsyncSession,
    drafts: DraftStore,
    assessment_id: int,
    mode: FormMode = FormMode.EDIT,
) -> tuple[Assessment, AssessmentForm]:
    try:
        assessment, form = await load_form(db, drafts, assessment_id, mode=mode)
    except AssessmentNotFoundError:
        raise HTTPException(status_code=404, detail="Assessment not found") from None
    if assessment.client_id is not None:
        client_id_ctx.set(str(assessment.client_id))
    return assessment, form


async def _ensure_client_exists(db: AsyncSession, client_id: Any) -> None:
    if client_id is None or client_id == "":
        return
    try:
        client = await db.get(Client, int(client_id))
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="clientId must be an integer") from None
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")


async def _buffer_edit(
    db: AsyncSession,
    drafts: DraftStore,
    autosave: AutosaveScheduler,
    assessment: Assessment,
    form: AssessmentForm,
    user: User,
) -> bool:
    """Store the edited form in Redis and restart its autosave timer.

    If Redis is unavailable the edit is written straight to the database.

    Returns:
        True when an autosave is pending.
    """
    try:
        await drafts.save(form)
    except Exception as e:
        logger.exception(
            "assessment_draft_buffer_failed",
            assessment_id=assessment.id,
            error=str(e),
        )
        if form.client_id is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Draft storage unavailable; select a client and retry",
            ) from e
        await persist_form(db, assessment, form, user_id=user.id)
        return False

    autosave.schedule(assessment.id)
    return True


async def _drop_draft(
    drafts: DraftStore, autosave: AutosaveScheduler, assessment_id: int
) -> None:
    """Stop the autosave timer and forget the buffered draft."""
    autosave.cancel(assessment_id)
    try:
        await drafts.discard(assessment_id)
    except Exception as e:
        # The draft expires on its own TTL
        logger.warning(
            "assessment_draft_discard_failed", assessment_id=assessment_id, error=str(e)
        )


async def _apply_edit(
    assessment_id: int,
    section: str,
    values: dict[str, Any],
    db: AsyncSession,
    drafts: DraftStore,
    autosave: AutosaveScheduler,
    user: User,
) -> SectionEditResponse:
    assessment, form = await _load_or_404(db, drafts, assessment_id)
    return await _edit_loaded(assessment, form, section, values, db, drafts, autosave, user)


async def _edit_loaded(
    assessment: Assessment,
    form: AssessmentForm,
    section: str,
    values: dict[str, Any],
    db: AsyncSession,
    drafts: DraftStore,
    autosave: AutosaveScheduler,
    user: User,
) -> SectionEditResponse:
    if assessment.status is AssessmentStatus.COMPLETE:
        form.mode = FormMode.VIEW
    if section == "basic" and "clientId" in values:
        await _ensure_client_exists(db, values["clientId"])

    try:
        _require_finite(values)
        state = form.update_section(section, values)
    except UnknownSectionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from None
    except ReadOnlyFormError:
        raise HTTPException(
            status_code=409,
            detail="Assessment is complete; reopen it before editing",
        ) from None
    except (ValueError, home_safety.SafetyPhotoError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None

    pending = await _buffer_edit(db, drafts, autosave, assessment, form, user)
    return SectionEditResponse(
        assessment_id=assessment.id,
        client_id=form.client_id,
        section=_to_section_response(section, state),
        completion_percentage=form.completion_percentage,
        has_unsaved_changes=form.has_unsaved_changes,
        autosave_pending=pending,
    )


@router.post("", response_model=AssessmentResponse, status_code=status.HTTP_201_CREATED)
async def start_assessment(
    payload: AssessmentCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> AssessmentResponse:
    """Start a new draft assessment, optionally for a known client."""
    await _ensure_client_exists(db, payload.client_id)
    assessment, form = await create_assessment(db, payload.client_id, user.id)
    return _to_assessment_response(assessment, form)


@router.get("", response_model=AssessmentListResponse)
async def list_assessments(
    client_id: int | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> AssessmentListResponse:
    """List assessments, optionally filtered by client and status."""
    filters = []
    if client_id is not None:
        filters.append(Assessment.client_id == client_id)
    if status_filter:
        try:
            filters.append(Assessment.status == AssessmentStatus(status_filter))
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid status filter") from None

    count_stmt = select(func.count(Assessment.id))
    list_stmt = select(Assessment).order_by(
        Assessment.created_at.desc(), Assessment.id.desc()
    )
    if filters:
        count_stmt = count_stmt.where(*filters)
        list_stmt = list_stmt.where(*filters)

    total = int((await db.execute(count_stmt)).scalar() or 0)
    result = await db.execute(list_stmt.limit(limit).offset(offset))

    return AssessmentListResponse(
        items=[_to_assessment_summary(item) for item in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{assessment_id}", response_model=AssessmentResponse)
async def get_assessment(
    assessment_id: int,
    mode: FormMode = Query(default=FormMode.EDIT),
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    _user: User = Depends(get_current_user),
) -> AssessmentResponse:
    """Get an assessment with unsaved edits applied."""
    assessment, form = await _load_or_404(db, drafts, assessment_id, mode=mode)
    return _to_assessment_response(assessment, form)


@router.delete("/{assessment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assessment(
    assessment_id: int,
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    autosave: AutosaveScheduler = Depends(get_autosave),
    _user: User = Depends(get_current_user),
) -> Response:
    """Delete an assessment together with its draft and audit trail."""
    assessment = await db.get(Assessment, assessment_id)
    if assessment is None:
        raise HTTPException(status_code=404, detail="Assessment not found")
    await _drop_draft(drafts, autosave, assessment_id)
    await db.delete(assessment)
    logger.info("assessment_deleted", assessment_id=assessment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{assessment_id}/sections/{section}/fields/{field_name}",
    response_model=SectionEditResponse,
)
async def update_field(
    assessment_id: int,
    section: str,
    field_name: str,
    payload: FieldUpdateRequest,
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    autosave: AutosaveScheduler = Depends(get_autosave),
    user: User = Depends(get_current_user),
) -> SectionEditResponse:
    """Set one field of a section."""
    return await _apply_edit(
        assessment_id, section, {field_name: payload.value}, db, drafts, autosave, user
    )


@router.patch("/{assessment_id}/sections/{section}", response_model=SectionEditResponse)
async def update_section(
    assessment_id: int,
    section: str,
    payload: SectionUpdateRequest,
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    autosave: AutosaveScheduler = Depends(get_autosave),
    user: User = Depends(get_current_user),
) -> SectionEditResponse:
    """Merge several fields into a section."""
    return await _apply_edit(
        assessment_id, section, payload.fields, db, drafts, autosave, user
    )


@router.post(
    "/{assessment_id}/care-plan/templates",
    response_model=SectionEditResponse,
)
async def apply_care_plan_template(
    assessment_id: int,
    payload: ApplyCarePlanRequest,
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    autosave: AutosaveScheduler = Depends(get_autosave),
    user: User = Depends(get_current_user),
) -> SectionEditResponse:
    """Add a template's goal, barrier and picked recommendations to the care plan.

    Applying a template again replaces its earlier copy.
    """
    template = await db.get(CarePlanTemplate, payload.template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Care plan template not found")
    try:
        entry = build_plan_entry(
            template.id,
            {
                "category": template.category,
                "concern": template.concern,
                "goal": template.goal,
                "barrier": template.barrier,
                "target_date": template.target_date,
                "is_ongoing": template.is_ongoing,
                "recommendations": template.recommendations,
            },
            payload.recommendation_ids,
        )
    except UnknownRecommendationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None

    assessment, form = await _load_or_404(db, drafts, assessment_id)
    plans = merge_plan(form.sections["care_plan"].data.get(PLANS_FIELD), entry)
    response = await _edit_loaded(
        assessment, form, "care_plan", {PLANS_FIELD: plans}, db, drafts, autosave, user
    )
    logger.info(
        "care_plan_template_applied",
        assessment_id=assessment_id,
        template_id=template.id,
        recommendations=len(entry["recommendations"]),
    )
    return response


@router.put("/{assessment_id}/current-section", response_model=AssessmentSummary)
async def set_current_section(
    assessment_id: int,
    payload: CurrentSectionRequest,
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    _user: User = Depends(get_current_user),
) -> AssessmentSummary:
    """Remember which section the care manager is on."""
    assessment, form = await _load_or_404(db, drafts, assessment_id)
    try:
        form.set_current_section(payload.section)
    except UnknownSectionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from None
    assessment.current_section = form.current_section
    if form.has_unsaved_changes:
        await drafts.save(form)
    await db.flush()
    return _to_assessment_summary(assessment)


@router.post("/{assessment_id}/save", response_model=AssessmentResponse)
async def save_assessment(
    assessment_id: int,
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    autosave: AutosaveScheduler = Depends(get_autosave),
    user: User = Depends(get_current_user),
) -> AssessmentResponse:
    """Save the assessment as a draft now."""
    assessment, form = await _load_or_404(db, drafts, assessment_id)
    try:
        await persist_form(db, assessment, form, user_id=user.id)
    except MissingClientError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None
    await _drop_draft(drafts, autosave, assessment_id)
    return _to_assessment_response(assessment, form)


@router.post("/{assessment_id}/complete", response_model=AssessmentResponse)
async def complete_assessment(
    assessment_id: int,
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    autosave: AutosaveScheduler = Depends(get_autosave),
    user: User = Depends(get_current_user),
) -> AssessmentResponse:
    """Save and mark the assessment complete."""
    assessment, form = await _load_or_404(db, drafts, assessment_id)
    try:
        await finalize_assessment(db, assessment, form, user_id=user.id)
    except MissingClientError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None
    except TransitionNotAllowed:
        raise HTTPException(
            status_code=409, detail="Assessment is already complete"
        ) from None
    await _drop_draft(drafts, autosave, assessment_id)
    form.mode = FormMode.VIEW
    return _to_assessment_response(assessment, form)


@router.post("/{assessment_id}/reopen", response_model=AssessmentResponse)
async def reopen(
    assessment_id: int,
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    user: User = Depends(get_current_user),
) -> AssessmentResponse:
    """Return a completed assessment to draft for further edits."""
    assessment, form = await _load_or_404(db, drafts, assessment_id)
    try:
        await reopen_assessment(db, assessment, form, user_id=user.id)
    except TransitionNotAllowed:
        raise HTTPException(
            status_code=409, detail="Only completed assessments can be reopened"
        ) from None
    return _to_assessment_response(assessment, form)


@router.get("/{assessment_id}/progress", response_model=ProgressResponse)
async def get_progress(
    assessment_id: int,
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    _user: User = Depends(get_current_user),
) -> ProgressResponse:
    """Completion percentage per section and overall."""
    _, form = await _load_or_404(db, drafts, assessment_id, mode=FormMode.VIEW)
    sections = [
        SectionProgress(
            key=key,
            title=SECTION_TITLES[key],
            completion_percentage=form.sections[key].completion_percentage,
            is_complete=form.sections[key].is_complete,
        )
        for key in SECTION_ORDER
    ]
    return ProgressResponse(
        assessment_id=assessment_id,
        completion_percentage=form.completion_percentage,
        completed_sections=sum(1 for entry in sections if entry.is_complete),
        total_sections=len(sections),
        sections=sections,
    )


@router.get("/{assessment_id}/validation", response_model=ValidationResponse)
async def validate_assessment(
    assessment_id: int,
    section: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    _user: User = Depends(get_current_user),
) -> ValidationResponse:
    """List unfilled required fields for one section or all of them."""
    _, form = await _load_or_404(db, drafts, assessment_id, mode=FormMode.VIEW)
    try:
        if section:
            section_errors = form.validate_section(section)
            errors = {section: section_errors} if section_errors else {}
        else:
            errors = form.validate_all()
    except UnknownSectionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from None
    return ValidationResponse(
        assessment_id=assessment_id,
        is_valid=not errors,
        errors=errors,
    )


@router.get("/{assessment_id}/audit", response_model=list[AuditEntryResponse])
async def get_audit_trail(
    assessment_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> list[AuditEntryResponse]:
    """Saved audit trail, oldest first."""
    if await db.get(Assessment, assessment_id) is None:
        raise HTTPException(status_code=404, detail="Assessment not found")
    result = await db.execute(
        select(AssessmentAuditEntry)
        .where(AssessmentAuditEntry.assessment_id == assessment_id)
        .order_by(AssessmentAuditEntry.id)
    )
    return [
        AuditEntryResponse(
            id=entry.id,
            user_id=entry.user_id,
            action=entry.action,
            description=entry.description,
            created_at=entry.created_at,
        )
        for entry in result.scalars().all()
    ]


def _slums_response(result) -> SlumsScoreResponse:
    return SlumsScoreResponse(
        question_scores=result.question_scores,
        total=result.total,
        interpretation=result.interpretation,
        education_level=result.education_level,
    )


@router.get("/{assessment_id}/scores", response_model=ScoresResponse)
async def get_scores(
    assessment_id: int,
    db: AsyncSession = Depends(get_db),
    drafts: DraftStore = Depends(get_drafts),
    _user: User = Depends(get_current_user),
) -> ScoresResponse:
    """SLUMS, GDS-15 and home safety results for an assessment."""
    _, form = await _load_or_404(db, drafts, assessment_id, mode=FormMode.VIEW)

    slums_data = form.sections["slums"].data
    slums_result = (
        score_slums(slums_data, assessment_date=form.assessment_date)
        if slums_data
        else None
    )
    gds_result = gds.score_gds(form.sections["mental"].data)
    flagged = home_safety.flagged_items(form.sections["safety"].data)

    return ScoresResponse(
        assessment_id=assessment_id,
        slums=_slums_response(slums_result) if slums_result else None,
        gds=GdsScoreResponse(
            total=gds_result.total,
            answered=gds_result.answered,
            is_complete=gds_result.is_complete,
            interpretation=gds_result.interpretation,
        )
        if gds_result.answered
        else None,
        home_safety=HomeSafetyResponse(
            flagged_items=flagged,
            flagged_labels=[home_safety.SAFETY_ITEMS[key] for key in flagged],
        ),
    )


@router.post("/scoring/slums", response_model=SlumsScoreResponse)
async def score_slums_answers(
    payload: SlumsScoreRequest,
    _user: User = Depends(get_current_user),
) -> SlumsScoreResponse:
    """Score SLUMS answers without storing them."""
    return _slums_response(score_slums(payload.data, assessment_date=payload.assessment_date))
