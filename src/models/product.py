"""Product catalog SQLAlchemy models."""

import enum
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, JSONType, TimestampMixin


class ReviewerRole(enum.Enum):
    """Who wrote a product review."""

    CARE_MANAGER = "care_manager"
    CLIENT = "client"
    FAMILY_MEMBER = "family_member"
    HEALTHCARE_PROVIDER = "healthcare_provider"


class Product(Base, TimestampMixin):
    """An assistive device or home product reviewed by care managers."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    brand: Mapped[str | None] = mapped_column(String(255))
    model: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    features: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    price_range: Mapped[str | None] = mapped_column(String(100))
    where_to_buy: Mapped[list[str]] = mapped_column(
        JSONType, default=list, nullable=False
    )
    website: Mapped[str | None] = mapped_column(String(500))
    image_url: Mapped[str | None] = mapped_column(String(1000))

    # Aggregates refreshed from reviews
    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Coverage
    medicaid_covered: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    medicare_covered: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    insurance_notes: Mapped[str | None] = mapped_column(Text)

    user_guide_url: Mapped[str | None] = mapped_column(String(1000))
    video_demo_url: Mapped[str | None] = mapped_column(String(1000))
    tags: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    recommended_for: Mapped[list[str]] = mapped_column(
        JSONType, default=list, nullable=False
    )
    safety_features: Mapped[list[str]] = mapped_column(
        JSONType, default=list, nullable=False
    )

    # Staff ratings (1-5)
    ease_of_use_rating: Mapped[int | None] = mapped_column(Integer)
    durability_rating: Mapped[int | None] = mapped_column(Integer)
    value_rating: Mapped[int | None] = mapped_column(Integer)
    ecc_notes: Mapped[str | None] = mapped_column(Text)
    date_reviewed: Mapped[date | None] = mapped_column(Date)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    reviews: Mapped[list["ProductReview"]] = relationship(
        back_populates="product", cascade="all, delete-orphan"
    )


class ProductReview(Base, TimestampMixin):
    """A user review of a product with per-dimension ratings."""

    __tablename__ = "product_reviews"

    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id"), nullable=False, index=True
    )
    user_id: Mapped[int | None] = mapped_column()
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_role: Mapped[ReviewerRole] = mapped_column(
        Enum(ReviewerRole), default=ReviewerRole.CARE_MANAGER, nullable=False
    )

    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    ease_of_use_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    durability_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    value_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    safety_rating: Mapped[int] = mapped_column(Integer, nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    review_text: Mapped[str] = mapped_column(Text, nullable=False)
    pros: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    cons: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    recommended_for: Mapped[list[str]] = mapped_column(
        JSONType, default=list, nullable=False
    )

    helpful_votes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    verified_purchase: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    client_condition: Mapped[str | None] = mapped_column(String(255))
    usage_duration: Mapped[str | None] = mapped_column(String(100))
    would_recommend: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    admin_response: Mapped[str | None] = mapped_column(Text)
    admin_response_by: Mapped[str | None] = mapped_column(String(255))
    admin_response_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="reviews")
