"""Loading and persisting assessments.

An assessment being edited lives in two places: the ``assessments`` row
and, while there are unsaved edits, a draft in Redis. Reads prefer the
draft; saves write the form to the row, append audit entries and drop the
draft.
"""

from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.assessments.drafts import DraftStore
from src.assessments.form import AssessmentForm, FormMode
from src.assessments.lifecycle import AssessmentLifecycle
from src.core.logging import get_logger
from src.models.assessment import Assessment, AssessmentAuditEntry, AssessmentStatus

logger = get_logger(__name__)


class AssessmentNotFoundError(LookupError):
    """Raised when an assessment id does not exist."""


async def get_assessment(db: AsyncSession, assessment_id: int) -> Assessment:
    assessment = await db.get(Assessment, assessment_id)
    if assessment is None:
        raise AssessmentNotFoundError(assessment_id)
    return assessment


async def load_form(
    db: AsyncSession,
    drafts: DraftStore,
    assessment_id: int,
    mode: FormMode = FormMode.EDIT,
) -> tuple[Assessment, AssessmentForm]:
    """Load the assessment row and its freshest form state.

    Raises:
        AssessmentNotFoundError: If the assessment does not exist.
    """
    assessment = await get_assessment(db, assessment_id)
    try:
        form = await drafts.load(assessment_id)
    except Exception as e:
        # Redis outage: fall back to the last saved state
        logger.warning(
            "assessment_draft_unavailable", assessment_id=assessment_id, error=str(e)
        )
        form = None
    if form is None:
        form = AssessmentForm.from_record(assessment, mode=mode)
    else:
        form.mode = mode
    return assessment, form


async def create_assessment(
    db: AsyncSession,
    client_id: int | None,
    created_by: int | None,
) -> tuple[Assessment, AssessmentForm]:
    """Insert an empty draft assessment, optionally tied to a client."""
    form = AssessmentForm(client_id=client_id, created_by=created_by)
    if client_id is not None:
        form.update_field("basic", "clientId", client_id)

    assessment = Assessment(
        created_by=created_by,
        status=AssessmentStatus.DRAFT,
        **form.to_record_fields(),
    )
    db.add(assessment)
    await db.flush()
    form.assessment_id = assessment.id
    form.add_audit_entry("created", "Assessment created", user_id=created_by)
    _write_audit(db, assessment, form)
    form.mark_saved()
    logger.info("assessment_created", assessment_id=assessment.id, client_id=client_id)
    return assessment, form


def _write_audit(db: AsyncSession, assessment: Assessment, form: AssessmentForm) -> int:
    entries = form.drain_audit_entries()
    for entry in entries:
        db.add(
            AssessmentAuditEntry(
                assessment_id=assessment.id,
                user_id=entry.user_id,
                action=entry.action,
                description=entry.description,
                created_at=entry.created_at,
            )
        )
    return len(entries)


async def persist_form(
    db: AsyncSession,
    assessment: Assessment,
    form: AssessmentForm,
    user_id: int | None = None,
    autosave: bool = False,
) -> Assessment:
    """Write the form onto its row as a draft save.

    Raises:
        MissingClientError: If no client has been selected.
    """
    form.require_client()
    if autosave:
        form.add_audit_entry("autosaved", "Assessment draft autosaved", user_id=user_id)
    else:
        form.add_audit_entry("saved", "Assessment draft saved", user_id=user_id)

    for column, value in form.to_record_fields().items():
        setattr(assessment, column, value)
    _write_audit(db, assessment, form)
    await db.flush()

    form.mark_saved(autosave=autosave)
    logger.info(
        "assessment_saved",
        assessment_id=assessment.id,
        client_id=assessment.client_id,
        completion=assessment.completion_percentage,
        autosave=autosave,
    )
    return assessment


async def finalize_assessment(
    db: AsyncSession,
    assessment: Assessment,
    form: AssessmentForm,
    user_id: int | None = None,
) -> Assessment:
    """Save the form and move the assessment to complete.

    Raises:
        MissingClientError: If no client has been selected.
        TransitionNotAllowed: If the assessment is already complete.
    """
    form.require_client()
    assessment.client_id = form.client_id
    AssessmentLifecycle(assessment).finalize()
    await persist_form(db, assessment, form, user_id=user_id)
    form.status = assessment.status
    form.add_audit_entry("completed", "Assessment completed", user_id=user_id)
    _write_audit(db, assessment, form)
    await db.flush()
    return assessment


async def reopen_assessment(
    db: AsyncSession,
    assessment: Assessment,
    form: AssessmentForm,
    user_id: int | None = None,
) -> Assessment:
    """Return a completed assessment to draft.

    Raises:
        TransitionNotAllowed: If the assessment is not complete.
    """
    AssessmentLifecycle(assessment).reopen()
    form.status = assessment.status
    form.version = assessment.version
    form.add_audit_entry("reopened", "Assessment reopened for editing", user_id=user_id)
    _write_audit(db, assessment, form)
    await db.flush()
    return assessment


def make_flush_callback(
    get_session_maker: Callable[[], async_sessionmaker[AsyncSession]],
    drafts: DraftStore,
) -> Callable[[int], Awaitable[None]]:
    """Build the autosave flush callback.

    ``get_session_maker`` is called on every flush so the session maker
    on app.state can be replaced after startup.
    """

    async def flush(assessment_id: int) -> None:
        form, snapshot = await drafts.load_snapshot(assessment_id)
        if form is None or not form.has_unsaved_changes:
            return
        if form.client_id is None:
            logger.warning("autosave_skipped_no_client", assessment_id=assessment_id)
            return

        session_maker = get_session_maker()
        async with session_maker() as session:
            try:
                assessment = await get_assessment(session, assessment_id)
                await persist_form(session, assessment, form, autosave=True)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        await drafts.discard_if_unchanged(assessment_id, snapshot)

    return flush
