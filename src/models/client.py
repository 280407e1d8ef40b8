"""Client-related SQLAlchemy models."""

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.assessment import Assessment


class Client(Base, TimestampMixin):
    """Represents an older adult receiving care management."""

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    preferred_name: Mapped[str | None] = mapped_column(String(100))
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    gender: Mapped[str | None] = mapped_column(String(50))
    marital_status: Mapped[str | None] = mapped_column(String(50))
    primary_language: Mapped[str | None] = mapped_column(String(50))
    veteran_status: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    living_arrangement: Mapped[str | None] = mapped_column(String(100))
    mobility_status: Mapped[str | None] = mapped_column(String(100))

    # Contact
    phone: Mapped[str | None] = mapped_column(String(50))
    cell_phone: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(255))
    address_line1: Mapped[str | None] = mapped_column(String(255))
    address_line2: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(50))
    zip_code: Mapped[str | None] = mapped_column(String(20))

    # Point of contact (family member or representative)
    poc_full_name: Mapped[str | None] = mapped_column(String(255))
    poc_relationship: Mapped[str | None] = mapped_column(String(100))
    poc_phone: Mapped[str | None] = mapped_column(String(50))
    poc_email: Mapped[str | None] = mapped_column(String(255))

    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[int | None] = mapped_column()

    # Portal access
    has_portal_access: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    access_code: Mapped[str | None] = mapped_column(String(16), index=True)
    access_code_expires: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    assessments: Mapped[list["Assessment"]] = relationship(back_populates="client")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
