"""Tests for loading and persisting assessments."""

import pytest
from sqlalchemy import select

from src.assessments.drafts import draft_key
from src.assessments.form import FormMode, MissingClientError
from src.assessments.lifecycle import TransitionNotAllowed
from src.assessments.service import (
    AssessmentNotFoundError,
    create_assessment,
    finalize_assessment,
    load_form,
    make_flush_callback,
    persist_form,
    reopen_assessment,
)
from src.models.assessment import Assessment, AssessmentAuditEntry, AssessmentStatus
from src.models.client import Client


async def _client(db_session) -> Client:
    client = Client(first_name="Rose", last_name="Hill")
    db_session.add(client)
    await db_session.flush()
    return client


async def _actions(db_session, assessment_id: int) -> list[str]:
    result = await db_session.execute(
        select(AssessmentAuditEntry.action)
        .where(AssessmentAuditEntry.assessment_id == assessment_id)
        .order_by(AssessmentAuditEntry.id)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_create_assessment_for_client(db_session) -> None:
    client = await _client(db_session)
    assessment, form = await create_assessment(db_session, client.id, created_by=1)

    assert assessment.id is not None
    assert assessment.status is AssessmentStatus.DRAFT
    assert assessment.client_id == client.id
    assert form.assessment_id == assessment.id
    assert form.sections["basic"].data["clientId"] == client.id
    assert await _actions(db_session, assessment.id) == ["created"]


@pytest.mark.asyncio
async def test_persist_requires_client(db_session) -> None:
    assessment, form = await create_assessment(db_session, None, created_by=1)
    form.update_field("medical", "allergies", "None")

    with pytest.raises(MissingClientError):
        await persist_form(db_session, assessment, form)


@pytest.mark.asyncio
async def test_persist_writes_sections_and_audit(db_session) -> None:
    client = await _client(db_session)
    assessment, form = await create_assessment(db_session, client.id, created_by=1)
    form.update_field("directives", "has_poa", True)

    await persist_form(db_session, assessment, form, user_id=1)

    assert assessment.sections["directives"]["data"] == {"has_poa": True}
    assert assessment.completion_percentage == form.completion_percentage
    assert form.has_unsaved_changes is False
    assert await _actions(db_session, assessment.id) == ["created", "saved"]


@pytest.mark.asyncio
async def test_load_form_prefers_draft(db_session, drafts) -> None:
    client = await _client(db_session)
    assessment, form = await create_assessment(db_session, client.id, created_by=1)
    form.update_field("medical", "allergies", "Shellfish")
    await drafts.save(form)

    _, loaded = await load_form(db_session, drafts, assessment.id, mode=FormMode.VIEW)

    assert loaded.sections["medical"].data == {"allergies": "Shellfish"}
    assert loaded.mode is FormMode.VIEW


@pytest.mark.asyncio
async def test_load_form_missing(db_session, drafts) -> None:
    with pytest.raises(AssessmentNotFoundError):
        await load_form(db_session, drafts, 999)


@pytest.mark.asyncio
async def test_finalize_and_reopen(db_session) -> None:
    client = await _client(db_session)
    assessment, form = await create_assessment(db_session, client.id, created_by=1)

    await finalize_assessment(db_session, assessment, form, user_id=1)
    assert assessment.status is AssessmentStatus.COMPLETE
    assert assessment.completed_at is not None

    with pytest.raises(TransitionNotAllowed):
        await finalize_assessment(db_session, assessment, form, user_id=1)

    await reopen_assessment(db_session, assessment, form, user_id=1)
    assert assessment.status is AssessmentStatus.DRAFT
    assert assessment.version == 2
    assert await _actions(db_session, assessment.id) == [
        "created",
        "saved",
        "completed",
        "reopened",
    ]


@pytest.mark.asyncio
async def test_finalize_without_client(db_session) -> None:
    assessment, form = await create_assessment(db_session, None, created_by=1)
    with pytest.raises(MissingClientError):
        await finalize_assessment(db_session, assessment, form)
    assert assessment.status is AssessmentStatus.DRAFT


@pytest.mark.asyncio
async def test_flush_callback_persists_and_discards_draft(
    session_factory, drafts, fake_redis
) -> None:
    async with session_factory() as session:
        client = await _client(session)
        assessment, form = await create_assessment(session, client.id, created_by=1)
        await session.commit()

    form.update_field("medical", "allergies", "Aspirin")
    await drafts.save(form)

    flush = make_flush_callback(lambda: session_factory, drafts)
    await flush(assessment.id)

    assert draft_key(assessment.id) not in fake_redis.store
    async with session_factory() as session:
        stored = await session.get(Assessment, assessment.id)
        assert stored.sections["medical"]["data"] == {"allergies": "Aspirin"}
        assert await _actions(session, assessment.id) == ["created", "autosaved"]


@pytest.mark.asyncio
async def test_flush_callback_skips_without_client(
    session_factory, drafts, fake_redis
) -> None:
    async with session_factory() as session:
        assessment, form = await create_assessment(session, None, created_by=1)
        await session.commit()

    form.update_field("medical", "allergies", "Aspirin")
    await drafts.save(form)

    await make_flush_callback(lambda: session_factory, drafts)(assessment.id)

    # Still buffered until a client is chosen
    assert draft_key(assessment.id) in fake_redis.store
