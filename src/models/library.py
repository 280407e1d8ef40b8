"""Clinical library and care-plan template SQLAlchemy models."""

from datetime import date
from typing import Any

from sqlalchemy import Boolean, Date, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, JSONType, TimestampMixin


class Medication(Base, TimestampMixin):
    """A medication care managers pick from when recording current medications."""

    __tablename__ = "medications"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    doses: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    frequencies: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    used_for: Mapped[str | None] = mapped_column(Text)
    potential_side_effects: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[int | None] = mapped_column()


class MedicalDiagnosis(Base, TimestampMixin):
    """A coded diagnosis (ICD-10 style) grouped by body system."""

    __tablename__ = "medical_diagnoses"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    common_symptoms: Mapped[list[str]] = mapped_column(
        JSONType, default=list, nullable=False
    )
    risk_factors: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[int | None] = mapped_column()


class CarePlanTemplate(Base, TimestampMixin):
    """Reusable goal, barrier and recommendations for one care concern.

    ``recommendations`` is a list of ``{"id", "text", "priority"}`` dicts.
    """

    __tablename__ = "care_plan_templates"

    id: Mapped[int] = mapped_column(primary_key=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    concern: Mapped[str] = mapped_column(String(255), nullable=False)
    goal: Mapped[str] = mapped_column(Text, nullable=False)
    barrier: Mapped[str] = mapped_column(Text, nullable=False)
    target_date: Mapped[date | None] = mapped_column(Date)
    is_ongoing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recommendations: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, default=list, nullable=False
    )
    created_by: Mapped[int | None] = mapped_column()
