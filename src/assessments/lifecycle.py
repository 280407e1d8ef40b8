"""Assessment status lifecycle.

Declarative draft/complete transitions with callbacks that stamp the
assessment row and log the change.
"""

from datetime import datetime

import structlog
from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from src.assessments.form import MissingClientError
from src.models.assessment import Assessment, AssessmentStatus

logger = structlog.get_logger()


class AssessmentLifecycle(StateMachine):
    """State machine for an assessment's status.

    States match AssessmentStatus:
    - draft: being filled in, autosaved
    - complete: signed off by the care manager

    Transitions:
    - finalize: draft -> complete (requires a client)
    - reopen: complete -> draft
    """

    draft = State(initial=True, value=AssessmentStatus.DRAFT)
    complete = State(value=AssessmentStatus.COMPLETE)

    finalize = draft.to(complete, validators="require_client")
    reopen = complete.to(draft)

    def __init__(self, assessment: Assessment) -> None:
        """Bind the machine to an assessment, starting from its stored status.

        Args:
            assessment: Assessment model instance to manage
        """
        self.assessment = assessment
        super().__init__(start_value=assessment.status or AssessmentStatus.DRAFT)

    def require_client(self) -> None:
        if self.assessment.client_id is None:
            raise MissingClientError()

    def on_finalize(self) -> None:
        """Called when the assessment is marked complete."""
        self.assessment.status = AssessmentStatus.COMPLETE
        self.assessment.completed_at = datetime.utcnow()
        logger.info(
            "assessment_completed",
            assessment_id=self.assessment.id,
            client_id=self.assessment.client_id,
        )

    def on_reopen(self) -> None:
        """Called when a completed assessment goes back to draft."""
        self.assessment.status = AssessmentStatus.DRAFT
        self.assessment.completed_at = None
        self.assessment.version = (self.assessment.version or 1) + 1
        logger.info(
            "assessment_reopened",
            assessment_id=self.assessment.id,
            version=self.assessment.version,
        )


__all__ = [
    "AssessmentLifecycle",
    "TransitionNotAllowed",
]
