"""Redis buffer for assessments that are being edited.

Edits land here first and reach the database when the autosave timer
fires or the user saves explicitly. If a database write fails the draft
stays in Redis so the next save can retry.
"""

from typing import TYPE_CHECKING

import orjson

from src.assessments.form import AssessmentForm
from src.core.config import settings
from src.core.logging import get_logger

if TYPE_CHECKING:
    import redis.asyncio as redis

logger = get_logger(__name__)

DRAFT_KEY_PREFIX = "assessment_draft:"

# Compare and delete in one step so an edit saved in between is never lost
DISCARD_IF_UNCHANGED_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


def draft_key(assessment_id: int) -> str:
    return f"{DRAFT_KEY_PREFIX}{assessment_id}"


class DraftStore:
    """Stores AssessmentForm payloads in Redis as orjson bytes."""

    def __init__(self, redis_client: "redis.Redis", ttl_seconds: int | None = None) -> None:
        """Wrap a Redis client.

        Args:
            redis_client: Async Redis client.
            ttl_seconds: Draft lifetime. ``None`` uses the configured default;
                ``0`` keeps drafts until they are discarded.
        """
        self.redis = redis_client
        self.ttl_seconds = settings.draft_ttl_seconds if ttl_seconds is None else ttl_seconds

    async def save(self, form: AssessmentForm) -> None:
        """Write the form's current state.

        Raises:
            ValueError: If the form has not been persisted yet.
        """
        if form.assessment_id is None:
            raise ValueError("Only persisted assessments can be buffered")
        await self.redis.set(
            draft_key(form.assessment_id),
            orjson.dumps(form.to_payload()),
            ex=self.ttl_seconds or None,
        )

    async def load(self, assessment_id: int) -> AssessmentForm | None:
        form, _ = await self.load_snapshot(assessment_id)
        return form

    async def load_snapshot(
        self, assessment_id: int
    ) -> tuple[AssessmentForm | None, bytes | None]:
        """Return the buffered form together with the raw bytes it came from."""
        raw = await self.redis.get(draft_key(assessment_id))
        if raw is None:
            return None, None
        try:
            payload = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning("assessment_draft_corrupt", assessment_id=assessment_id)
            await self.discard(assessment_id)
            return None, None
        return AssessmentForm.from_payload(payload), raw

    async def discard(self, assessment_id: int) -> None:
        await self.redis.delete(draft_key(assessment_id))

    async def discard_if_unchanged(self, assessment_id: int, snapshot: bytes) -> bool:
        """Drop the draft unless it was edited after ``snapshot`` was read."""
        removed = await self.redis.eval(
            DISCARD_IF_UNCHANGED_SCRIPT, 1, draft_key(assessment_id), snapshot
        )
        return bool(removed)
