"""Resource directory API endpoints."""

from datetime import datetime

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Query,
    Response,
    UploadFile,
    status,
)
from pydantic import BaseModel, Field
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_current_user, get_db, require_admin
from src.core.logging import get_logger
from src.integrations.storage import UploadRejectedError, remove_logo, save_logo
from src.models.resource import CustomResourceCategory, Resource
from src.models.user import User
from src.resources.categories import (
    OTHER_CATEGORY,
    RESOURCE_CATEGORIES,
    build_hierarchy,
    is_known_category,
)
from src.resources.importer import (
    CSV_COLUMNS,
    CSVFormatError,
    duplicate_key,
    export_csv,
    plan_import,
    read_rows,
    template_csv,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/resources", tags=["resources"])


class ResourceFields(BaseModel):
    """Optional resource fields shared by create and update payloads."""

    subcategory: str | None = Field(default=None, max_length=100)
    address: str | None = Field(default=None, max_length=500)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    website: str | None = Field(default=None, max_length=500)
    contact_person: str | None = Field(default=None, max_length=255)
    description: str | None = None
    tags: list[str] | None = None
    service_area: str | None = Field(default=None, max_length=255)
    verified: bool | None = None
    is_ecc_favorite: bool | None = None


class ResourceCreateRequest(ResourceFields):
    """Payload for adding a resource."""

    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=100)


class ResourceUpdateRequest(ResourceFields):
    """Payload for editing a resource."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: str | None = Field(default=None, min_length=1, max_length=100)


class ResourceResponse(BaseModel):
    """Resource response model."""

    id: int
    name: str
    type: str
    subcategory: str | None
    address: str | None
    phone: str | None
    email: str | None
    website: str | None
    contact_person: str | None
    description: str | None
    tags: list[str]
    service_area: str | None
    logo_url: str | None
    verified: bool
    is_ecc_favorite: bool
    is_archived: bool
    created_at: datetime
    updated_at: datetime | None


class ResourceListResponse(BaseModel):
    """Paginated resource list response."""

    items: list[ResourceResponse]
    total: int
    limit: int
    offset: int


class CategoriesResponse(BaseModel):
    """Category hierarchy including admin-defined categories."""

    hierarchy: dict[str, list[str]]
    custom: list[str]
    other: str = OTHER_CATEGORY


class CustomCategoryRequest(BaseModel):
    """Payload for adding a custom category."""

    name: str = Field(min_length=1, max_length=100)


class CustomCategoryResponse(BaseModel):
    """Admin-defined category."""

    id: int
    name: str
    created_at: datetime


class DuplicateCheckResponse(BaseModel):
    """Result of a name + address duplicate lookup."""

    is_duplicate: bool
    resource_id: int | None = None


class ImportResponse(BaseModel):
    """CSV import outcome."""

    success: int
    duplicates: int
    errors: list[str]


def _to_resource_response(resource: Resource) -> ResourceResponse:
    """Map SQLAlchemy resource model to response model."""
    return ResourceResponse.model_validate(resource, from_attributes=True)


async def _custom_category_names(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(CustomResourceCategory.name).order_by(CustomResourceCategory.name)
    )
    return list(result.scalars().all())


async def _check_type(db: AsyncSession, resource_type: str) -> None:
    if not is_known_category(resource_type, await _custom_category_names(db)):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid type: {resource_type}",
        )


async def _find_duplicate(
    db: AsyncSession,
    name: str,
    address: str | None,
    exclude_id: int | None = None,
) -> Resource | None:
    key_name, key_address = duplicate_key(name, address)
    stmt = select(Resource).where(
        func.lower(func.trim(Resource.name)) == key_name,
        func.lower(func.trim(func.coalesce(Resource.address, ""))) == key_address,
    )
    if exclude_id is not None:
        stmt = stmt.where(Resource.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalars().first()


async def _get_resource_or_404(db: AsyncSession, resource_id: int) -> Resource:
    resource = await db.get(Resource, resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource


def _directory_filters(
    resource_type: str | None,
    search: str | None,
    verified: bool | None,
    favorites: bool,
    include_archived: bool,
) -> list:
    filters = []
    if not include_archived:
        filters.append(Resource.is_archived.is_(False))
    if resource_type:
        filters.append(Resource.type == resource_type)
    if verified is not None:
        filters.append(Resource.verified.is_(verified))
    if favorites:
        filters.append(Resource.is_ecc_favorite.is_(True))
    if search:
        pattern = f"%{search.strip().lower()}%"
        filters.append(
            or_(
                func.lower(Resource.name).like(pattern),
                func.lower(func.coalesce(Resource.description, "")).like(pattern),
                func.lower(cast(Resource.tags, String)).like(pattern),
            )
        )
    return filters


async def _remove_logo_quietly(resource: Resource) -> None:
    if not resource.logo_url:
        return
    try:
        await remove_logo(resource.logo_url)
    except Exception as e:
        logger.exception(
            "resource_logo_remove_failed",
            resource_id=resource.id,
            logo_url=resource.logo_url,
            error=str(e),
        )


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/categories", response_model=CategoriesResponse)
async def list_categories(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> CategoriesResponse:
    """Built-in hierarchy plus admin-defined categories."""
    custom = await _custom_category_names(db)
    return CategoriesResponse(hierarchy=build_hierarchy(custom), custom=custom)


@router.post(
    "/categories",
    response_model=CustomCategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_custom_category(
    payload: CustomCategoryRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> CustomCategoryResponse:
    """Add a custom resource category (admin only)."""
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Category name is required")
    custom = await _custom_category_names(db)
    taken = {existing.lower() for existing in (*RESOURCE_CATEGORIES, OTHER_CATEGORY, *custom)}
    if name.lower() in taken:
        raise HTTPException(status_code=409, detail="Category already exists")

    category = CustomResourceCategory(name=name, created_by=admin.id)
    db.add(category)
    await db.flush()
    logger.info("resource_category_created", category=name)
    return CustomCategoryResponse(
        id=category.id, name=category.name, created_at=category.created_at
    )


@router.get("/template")
async def download_template(_user: User = Depends(get_current_user)) -> Response:
    """CSV template with example rows."""
    return _csv_response(template_csv(), "resource_import_template.csv")


@router.get("/export")
async def export_resources(
    resource_type: str | None = Query(default=None, alias="type"),
    search: str | None = Query(default=None),
    verified: bool | None = Query(default=None),
    favorites: bool = Query(default=False),
    include_archived: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> Response:
    """Export the filtered directory in the import format."""
    filters = _directory_filters(resource_type, search, verified, favorites, include_archived)
    stmt = select(Resource).order_by(Resource.name, Resource.id)
    if filters:
        stmt = stmt.where(*filters)
    result = await db.execute(stmt)
    rows = [
        {column: getattr(resource, column) for column in CSV_COLUMNS}
        for resource in result.scalars().all()
    ]
    filename = f"resources_{datetime.utcnow():%Y-%m-%d}.csv"
    return _csv_response(export_csv(rows), filename)


@router.post("/import", response_model=ImportResponse)
async def import_resources(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> ImportResponse:
    """Import resources from CSV (admin only).

    Invalid and duplicate rows are reported and skipped; the rest are
    stored unverified.
    """
    raw = await file.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded") from None

    try:
        rows = read_rows(text)
    except CSVFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None

    existing = await db.execute(select(Resource.name, Resource.address))
    existing_keys = [duplicate_key(name, address) for name, address in existing.all()]
    result = plan_import(rows, existing_keys, await _custom_category_names(db))

    db.add_all(Resource(**fields) for fields in result.resources)
    await db.flush()

    logger.info(
        "csv_import_completed",
        filename=file.filename,
        rows=len(rows),
        imported=result.success,
        duplicates=result.duplicates,
        errors=result.error_count,
    )
    return ImportResponse(
        success=result.success,
        duplicates=result.duplicates,
        errors=result.errors,
    )


@router.get("/duplicates", response_model=DuplicateCheckResponse)
async def check_duplicate(
    name: str = Query(min_length=1),
    address: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> DuplicateCheckResponse:
    """Check whether a resource with this name and address exists."""
    existing = await _find_duplicate(db, name, address)
    return DuplicateCheckResponse(
        is_duplicate=existing is not None,
        resource_id=existing.id if existing else None,
    )


@router.post("", response_model=ResourceResponse, status_code=status.HTTP_201_CREATED)
async def create_resource(
    payload: ResourceCreateRequest,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ResourceResponse:
    """Add a resource to the directory."""
    values = payload.model_dump(exclude_none=True)
    values["name"] = payload.name.strip()
    values["type"] = payload.type.strip()
    await _check_type(db, values["type"])
    if await _find_duplicate(db, values["name"], values.get("address")):
        raise HTTPException(
            status_code=409,
            detail="A resource with this name and address already exists",
        )

    resource = Resource(**values)
    db.add(resource)
    await db.flush()
    logger.info("resource_created", resource_id=resource.id, type=resource.type)
    return _to_resource_response(resource)


@router.get("", response_model=ResourceListResponse)
async def list_resources(
    resource_type: str | None = Query(default=None, alias="type"),
    search: str | None = Query(default=None),
    verified: bool | None = Query(default=None),
    favorites: bool = Query(default=False),
    include_archived: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ResourceListResponse:
    """List directory entries; archived ones are hidden unless requested."""
    filters = _directory_filters(resource_type, search, verified, favorites, include_archived)

    count_stmt = select(func.count(Resource.id))
    list_stmt = select(Resource).order_by(
        Resource.is_ecc_favorite.desc(), Resource.name, Resource.id
    )
    if filters:
        count_stmt = count_stmt.where(*filters)
        list_stmt = list_stmt.where(*filters)

    total = int((await db.execute(count_stmt)).scalar() or 0)
    result = await db.execute(list_stmt.limit(limit).offset(offset))

    return ResourceListResponse(
        items=[_to_resource_response(item) for item in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{resource_id}", response_model=ResourceResponse)
async def get_resource(
    resource_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ResourceResponse:
    """Get resource by ID."""
    return _to_resource_response(await _get_resource_or_404(db, resource_id))


@router.patch("/{resource_id}", response_model=ResourceResponse)
async def update_resource(
    resource_id: int,
    payload: ResourceUpdateRequest,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ResourceResponse:
    """Partially update a resource."""
    resource = await _get_resource_or_404(db, resource_id)
    updates = payload.model_dump(exclude_unset=True)

    for field_name in ("name", "type", "verified", "is_ecc_favorite", "tags"):
        if field_name in updates and updates[field_name] is None:
            raise HTTPException(status_code=400, detail=f"{field_name} cannot be empty")
    if "name" in updates:
        updates["name"] = updates["name"].strip()
    if "type" in updates:
        updates["type"] = updates["type"].strip()
        await _check_type(db, updates["type"])

    if "name" in updates or "address" in updates:
        name = updates.get("name", resource.name)
        address = updates.get("address", resource.address)
        if await _find_duplicate(db, name, address, exclude_id=resource.id):
            raise HTTPException(
                status_code=409,
                detail="A resource with this name and address already exists",
            )

    for field_name, value in updates.items():
        setattr(resource, field_name, value)
    await db.flush()
    return _to_resource_response(resource)


@router.delete("/{resource_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_resource(
    resource_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Response:
    """Delete a resource and its stored logo (admin only)."""
    resource = await _get_resource_or_404(db, resource_id)
    await _remove_logo_quietly(resource)
    await db.delete(resource)
    logger.info("resource_deleted", resource_id=resource_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{resource_id}/favorite", response_model=ResourceResponse)
async def toggle_favorite(
    resource_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ResourceResponse:
    """Flip the ECC-favorite flag."""
    resource = await _get_resource_or_404(db, resource_id)
    resource.is_ecc_favorite = not resource.is_ecc_favorite
    await db.flush()
    return _to_resource_response(resource)


@router.post("/{resource_id}/archive", response_model=ResourceResponse)
async def archive_resource(
    resource_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ResourceResponse:
    """Hide a resource from the default listing."""
    resource = await _get_resource_or_404(db, resource_id)
    resource.is_archived = True
    await db.flush()
    return _to_resource_response(resource)


@router.post("/{resource_id}/restore", response_model=ResourceResponse)
async def restore_resource(
    resource_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ResourceResponse:
    """Bring an archived resource back into the listing."""
    resource = await _get_resource_or_404(db, resource_id)
    resource.is_archived = False
    await db.flush()
    return _to_resource_response(resource)


@router.put("/{resource_id}/logo", response_model=ResourceResponse)
async def upload_logo(
    resource_id: int,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ResourceResponse:
    """Store a new logo image, replacing any previous one."""
    resource = await _get_resource_or_404(db, resource_id)
    content = await file.read()
    try:
        logo_url = await save_logo(resource.id, file.filename, file.content_type, content)
    except UploadRejectedError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from None
    except OSError as e:
        logger.exception("resource_logo_upload_failed", resource_id=resource.id, error=str(e))
        raise HTTPException(status_code=502, detail="Logo storage unavailable") from e

    await _remove_logo_quietly(resource)
    resource.logo_url = logo_url
    await db.flush()
    logger.info("resource_logo_uploaded", resource_id=resource.id, size=len(content))
    return _to_resource_response(resource)


@router.delete("/{resource_id}/logo", response_model=ResourceResponse)
async def delete_logo(
    resource_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> ResourceResponse:
    """Remove a resource's logo."""
    resource = await _get_resource_or_404(db, resource_id)
    await _remove_logo_quietly(resource)
    resource.logo_url = None
    await db.flush()
    return _to_resource_response(resource)
