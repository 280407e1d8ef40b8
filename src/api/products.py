"""Product catalog and review API endpoints."""

from datetime import date, datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_current_user, get_db, require_admin
from src.core.logging import get_logger
from src.models.product import Product, ProductReview, ReviewerRole
from src.models.user import User
from src.resources.categories import PRODUCT_CATEGORIES

logger = get_logger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])

Rating = Annotated[int, Field(ge=1, le=5)]

ReviewSort = Literal["newest", "oldest", "highest", "lowest", "helpful"]

_REVIEW_ORDER = {
    "newest": (ProductReview.created_at.desc(), ProductReview.id.desc()),
    "oldest": (ProductReview.created_at.asc(), ProductReview.id.asc()),
    "highest": (ProductReview.overall_rating.desc(), ProductReview.id.desc()),
    "lowest": (ProductReview.overall_rating.asc(), ProductReview.id.desc()),
    "helpful": (ProductReview.helpful_votes.desc(), ProductReview.id.desc()),
}


class ProductFields(BaseModel):
    """Optional product fields shared by create and update payloads."""

    brand: str | None = Field(default=None, max_length=255)
    model: str | None = Field(default=None, max_length=255)
    description: str | None = None
    features: list[str] | None = None
    price_range: str | None = Field(default=None, max_length=100)
    where_to_buy: list[str] | None = None
    website: str | None = Field(default=None, max_length=500)
    image_url: str | None = Field(default=None, max_length=1000)
    medicaid_covered: bool | None = None
    medicare_covered: bool | None = None
    insurance_notes: str | None = None
    user_guide_url: str | None = Field(default=None, max_length=1000)
    video_demo_url: str | None = Field(default=None, max_length=1000)
    tags: list[str] | None = None
    recommended_for: list[str] | None = None
    safety_features: list[str] | None = None
    ease_of_use_rating: int | None = Field(default=None, ge=1, le=5)
    durability_rating: int | None = Field(default=None, ge=1, le=5)
    value_rating: int | None = Field(default=None, ge=1, le=5)
    ecc_notes: str | None = None
    date_reviewed: date | None = None


class ProductCreateRequest(ProductFields):
    """Payload for adding a product."""

    name: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=100)


class ProductUpdateRequest(ProductFields):
    """Payload for editing a product."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, min_length=1, max_length=100)


class ProductResponse(BaseModel):
    """Product response model."""

    id: int
    name: str
    category: str
    brand: str | None
    model: str | None
    description: str | None
    features: list[str]
    price_range: str | None
    where_to_buy: list[str]
    website: str | None
    image_url: str | None
    rating: float
    review_count: int
    medicaid_covered: bool
    medicare_covered: bool
    insurance_notes: str | None
    user_guide_url: str | None
    video_demo_url: str | None
    tags: list[str]
    recommended_for: list[str]
    safety_features: list[str]
    ease_of_use_rating: int | None
    durability_rating: int | None
    value_rating: int | None
    ecc_notes: str | None
    date_reviewed: date | None
    is_active: bool
    created_at: datetime
    updated_at: datetime | None


class ProductListResponse(BaseModel):
    """Paginated product list response."""

    items: list[ProductResponse]
    total: int
    limit: int
    offset: int


class ReviewCreateRequest(BaseModel):
    """Payload for reviewing a product."""

    user_name: str | None = Field(default=None, max_length=255)
    user_role: ReviewerRole = ReviewerRole.CARE_MANAGER
    overall_rating: Rating
    ease_of_use_rating: Rating
    durability_rating: Rating
    value_rating: Rating
    safety_rating: Rating
    title: str = Field(min_length=1, max_length=255)
    review_text: str = Field(min_length=1)
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    recommended_for: list[str] = Field(default_factory=list)
    verified_purchase: bool = False
    client_condition: str | None = Field(default=None, max_length=255)
    usage_duration: str | None = Field(default=None, max_length=100)
    would_recommend: bool = True


class ReviewResponse(BaseModel):
    """Product review response model."""

    id: int
    product_id: int
    user_id: int | None
    user_name: str
    user_role: ReviewerRole
    overall_rating: int
    ease_of_use_rating: int
    durability_rating: int
    value_rating: int
    safety_rating: int
    title: str
    review_text: str
    pros: list[str]
    cons: list[str]
    recommended_for: list[str]
    helpful_votes: int
    verified_purchase: bool
    client_condition: str | None
    usage_duration: str | None
    would_recommend: bool
    is_featured: bool
    admin_response: str | None
    admin_response_by: str | None
    admin_response_at: datetime | None
    created_at: datetime


class AdminResponseRequest(BaseModel):
    """Staff reply attached to a review."""

    response: str = Field(min_length=1)


class RatingSummaryResponse(BaseModel):
    """Average rating per dimension and overall rating distribution."""

    product_id: int
    total_reviews: int
    average_overall: float
    average_ease_of_use: float
    average_durability: float
    average_value: float
    average_safety: float
    would_recommend_percentage: int
    breakdown: dict[int, int]


def _to_product_response(product: Product) -> ProductResponse:
    """Map SQLAlchemy product model to response model."""
    return ProductResponse.model_validate(product, from_attributes=True)


def _to_review_response(review: ProductReview) -> ReviewResponse:
    """Map SQLAlchemy review model to response model."""
    return ReviewResponse.model_validate(review, from_attributes=True)


def _check_category(category: str) -> None:
    if category not in PRODUCT_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Invalid product category: {category}")


async def _get_product_or_404(
    db: AsyncSession, product_id: int, include_inactive: bool = False
) -> Product:
    product = await db.get(Product, product_id)
    if product is None or (not product.is_active and not include_inactive):
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def _get_review_or_404(db: AsyncSession, review_id: int) -> ProductReview:
    review = await db.get(ProductReview, review_id)
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


async def _refresh_rating(db: AsyncSession, product: Product) -> None:
    """Recompute the product's average rating and review count."""
    result = await db.execute(
        select(
            func.count(ProductReview.id),
            func.avg(ProductReview.overall_rating),
        ).where(ProductReview.product_id == product.id)
    )
    count, average = result.one()
    product.review_count = int(count or 0)
    product.rating = round(float(average), 1) if average is not None else 0.0


def _average(values: list[int]) -> float:
    return round(sum(values) / len(values), 1) if values else 0.0


@router.get("/categories", response_model=list[str])
async def list_product_categories(
    _user: User = Depends(get_current_user),
) -> list[str]:
    """Fixed product category list."""
    return list(PRODUCT_CATEGORIES)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreateRequest,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ProductResponse:
    """Add a product to the catalog."""
    values = payload.model_dump(exclude_none=True)
    values["name"] = payload.name.strip()
    _check_category(payload.category)

    product = Product(**values)
    db.add(product)
    await db.flush()
    logger.info("product_created", product_id=product.id, category=product.category)
    return _to_product_response(product)


@router.get("", response_model=ProductListResponse)
async def list_products(
    category: str | None = Query(default=None),
    search: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ProductListResponse:
    """List products by category with free-text search."""
    filters = []
    if not include_inactive:
        filters.append(Product.is_active.is_(True))
    if category:
        filters.append(Product.category == category)
    if search:
        pattern = f"%{search.strip().lower()}%"
        filters.append(
            or_(
                func.lower(Product.name).like(pattern),
                func.lower(func.coalesce(Product.description, "")).like(pattern),
                func.lower(func.coalesce(Product.brand, "")).like(pattern),
                func.lower(cast(Product.tags, String)).like(pattern),
            )
        )

    count_stmt = select(func.count(Product.id))
    list_stmt = select(Product).order_by(Product.name, Product.id)
    if filters:
        count_stmt = count_stmt.where(*filters)
        list_stmt = list_stmt.where(*filters)

    total = int((await db.execute(count_stmt)).scalar() or 0)
    result = await db.execute(list_stmt.limit(limit).offset(offset))

    return ProductListResponse(
        items=[_to_product_response(item) for item in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ProductResponse:
    """Get product by ID."""
    return _to_product_response(await _get_product_or_404(db, product_id))


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    payload: ProductUpdateRequest,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ProductResponse:
    """Partially update a product."""
    product = await _get_product_or_404(db, product_id)
    updates = payload.model_dump(exclude_unset=True)

    for field_name in ("name", "category"):
        if field_name in updates and updates[field_name] is None:
            raise HTTPException(status_code=400, detail=f"{field_name} cannot be empty")
    if "category" in updates:
        _check_category(updates["category"])
    if "name" in updates:
        updates["name"] = updates["name"].strip()

    for field_name, value in updates.items():
        # Lists and flags are non-nullable columns
        if value is None and isinstance(getattr(product, field_name), (list, bool)):
            continue
        setattr(product, field_name, value)
    await db.flush()
    return _to_product_response(product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> Response:
    """Soft delete: the product is hidden but its reviews are kept."""
    product = await _get_product_or_404(db, product_id)
    product.is_active = False
    await db.flush()
    logger.info("product_deactivated", product_id=product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{product_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_review(
    product_id: int,
    payload: ReviewCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ReviewResponse:
    """Review a product and refresh its rating."""
    product = await _get_product_or_404(db, product_id)
    values = payload.model_dump()
    values["user_name"] = (payload.user_name or "").strip() or user.full_name

    review = ProductReview(product_id=product.id, user_id=user.id, **values)
    db.add(review)
    await db.flush()
    await _refresh_rating(db, product)
    await db.flush()

    logger.info(
        "product_review_created",
        product_id=product.id,
        review_id=review.id,
        rating=review.overall_rating,
    )
    return _to_review_response(review)


@router.get("/{product_id}/reviews", response_model=list[ReviewResponse])
async def list_reviews(
    product_id: int,
    sort: ReviewSort = Query(default="newest"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> list[ReviewResponse]:
    """List a product's reviews in the requested order."""
    product = await _get_product_or_404(db, product_id, include_inactive=True)
    result = await db.execute(
        select(ProductReview)
        .where(ProductReview.product_id == product.id)
        .order_by(*_REVIEW_ORDER[sort])
    )
    return [_to_review_response(review) for review in result.scalars().all()]


@router.get("/{product_id}/rating-summary", response_model=RatingSummaryResponse)
async def get_rating_summary(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> RatingSummaryResponse:
    """Average per rating dimension and a 1-5 star breakdown."""
    product = await _get_product_or_404(db, product_id, include_inactive=True)
    result = await db.execute(
        select(ProductReview).where(ProductReview.product_id == product.id)
    )
    reviews = result.scalars().all()

    breakdown = {stars: 0 for stars in range(1, 6)}
    for review in reviews:
        breakdown[review.overall_rating] = breakdown.get(review.overall_rating, 0) + 1
    recommend = sum(1 for review in reviews if review.would_recommend)

    return RatingSummaryResponse(
        product_id=product.id,
        total_reviews=len(reviews),
        average_overall=_average([r.overall_rating for r in reviews]),
        average_ease_of_use=_average([r.ease_of_use_rating for r in reviews]),
        average_durability=_average([r.durability_rating for r in reviews]),
        average_value=_average([r.value_rating for r in reviews]),
        average_safety=_average([r.safety_rating for r in reviews]),
        would_recommend_percentage=round(100 * recommend / len(reviews)) if reviews else 0,
        breakdown=breakdown,
    )


@router.post("/reviews/{review_id}/helpful", response_model=ReviewResponse)
async def mark_review_helpful(
    review_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ReviewResponse:
    """Count a helpful vote on a review."""
    review = await _get_review_or_404(db, review_id)
    review.helpful_votes += 1
    await db.flush()
    return _to_review_response(review)


@router.put("/reviews/{review_id}/response", response_model=ReviewResponse)
async def respond_to_review(
    review_id: int,
    payload: AdminResponseRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ReviewResponse:
    """Attach an admin reply to a review (admin only)."""
    review = await _get_review_or_404(db, review_id)
    review.admin_response = payload.response.strip()
    review.admin_response_by = admin.full_name
    review.admin_response_at = datetime.utcnow()
    await db.flush()
    logger.info("product_review_answered", review_id=review.id)
    return _to_review_response(review)
