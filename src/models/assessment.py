"""Assessment-related SQLAlchemy models."""

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from src.models.client import Client


class AssessmentStatus(enum.Enum):
    """Enumeration of assessment statuses."""

    DRAFT = "draft"
    COMPLETE = "complete"


class Assessment(Base, TimestampMixin):
    """A multi-section clinical assessment of one client.

    ``sections`` maps a section key to its state::

        {"medical": {"data": {...}, "completion_percentage": 67,
                     "is_complete": False, "last_updated": "..."}}
    """

    __tablename__ = "assessments"

    id: Mapped[int] = mapped_column(primary_key=True)
    # Nullable until a client is picked in the basic section
    client_id: Mapped[int | None] = mapped_column(ForeignKey("clients.id"), index=True)
    created_by: Mapped[int | None] = mapped_column()
    status: Mapped[AssessmentStatus] = mapped_column(
        Enum(AssessmentStatus), default=AssessmentStatus.DRAFT, nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    current_section: Mapped[str] = mapped_column(
        String(50), default="basic", nullable=False
    )
    sections: Mapped[dict[str, Any]] = mapped_column(
        JSONType, default=dict, nullable=False
    )
    completion_percentage: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    client: Mapped["Client | None"] = relationship(back_populates="assessments")
    audit_entries: Mapped[list["AssessmentAuditEntry"]] = relationship(
        back_populates="assessment",
        order_by="AssessmentAuditEntry.id",
        cascade="all, delete-orphan",
    )


class AssessmentAuditEntry(Base):
    """Append-only record of who saved or changed an assessment."""

    __tablename__ = "assessment_audit_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("assessments.id"), nullable=False, index=True
    )
    user_id: Mapped[int | None] = mapped_column()
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    # Relationships
    assessment: Mapped["Assessment"] = relationship(back_populates="audit_entries")
