"""Medication, diagnosis and care-plan template library endpoints.

Any staff member can browse and export the libraries; adding, editing,
importing and deleting entries is admin-only.
"""

from datetime import date, datetime
from typing import Literal

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_current_user, get_db, require_admin
from src.core.logging import get_logger
from src.library.care_plans import normalize_recommendations
from src.library.catalogs import (
    CARE_PLAN_CONCERNS,
    DIAGNOSIS_CATEGORIES,
    canonical_diagnosis_category,
    is_care_plan_category,
)
from src.library.csv_io import (
    DIAGNOSIS_COLUMNS,
    MEDICATION_COLUMNS,
    diagnosis_template_csv,
    export_diagnoses_csv,
    export_medications_csv,
    medication_template_csv,
    plan_diagnosis_import,
    plan_medication_import,
    read_diagnosis_rows,
    read_medication_rows,
)
from src.models.library import CarePlanTemplate, MedicalDiagnosis, Medication
from src.models.user import User
from src.resources.importer import CSVFormatError

logger = get_logger(__name__)

router = APIRouter(prefix="/api/library", tags=["library"])


# -- medications -------------------------------------------------------------


class MedicationFields(BaseModel):
    """Optional medication fields shared by create and update payloads."""

    used_for: str | None = None
    potential_side_effects: str | None = None
    description: str | None = None


class MedicationCreateRequest(MedicationFields):
    """Payload for adding a medication."""

    name: str = Field(min_length=1, max_length=255)
    doses: list[str]
    frequencies: list[str]


class MedicationUpdateRequest(MedicationFields):
    """Payload for editing a medication."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    doses: list[str] | None = None
    frequencies: list[str] | None = None
    is_active: bool | None = None


class MedicationResponse(BaseModel):
    """Medication response model."""

    id: int
    name: str
    doses: list[str]
    frequencies: list[str]
    used_for: str | None
    potential_side_effects: str | None
    description: str | None
    is_active: bool
    created_by: int | None
    created_at: datetime
    updated_at: datetime | None


class MedicationListResponse(BaseModel):
    """Paginated medication list response."""

    items: list[MedicationResponse]
    total: int
    limit: int
    offset: int


# -- diagnoses ---------------------------------------------------------------


class DiagnosisFields(BaseModel):
    """Optional diagnosis fields shared by create and update payloads."""

    description: str | None = None
    common_symptoms: list[str] | None = None
    risk_factors: list[str] | None = None


class DiagnosisCreateRequest(DiagnosisFields):
    """Payload for adding a diagnosis."""

    code: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=100)


class DiagnosisUpdateRequest(DiagnosisFields):
    """Payload for editing a diagnosis."""

    code: str | None = Field(default=None, min_length=1, max_length=20)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    is_active: bool | None = None


class DiagnosisResponse(BaseModel):
    """Diagnosis response model."""

    id: int
    code: str
    name: str
    category: str
    description: str | None
    common_symptoms: list[str]
    risk_factors: list[str]
    is_active: bool
    created_by: int | None
    created_at: datetime
    updated_at: datetime | None


class DiagnosisListResponse(BaseModel):
    """Paginated diagnosis list response."""

    items: list[DiagnosisResponse]
    total: int
    limit: int
    offset: int


class DiagnosisCategoryCount(BaseModel):
    """Active diagnoses in one category."""

    category: str
    count: int


# -- care-plan templates -----------------------------------------------------


class RecommendationPayload(BaseModel):
    """One recommendation; the id is assigned when omitted."""

    id: str | None = Field(default=None, max_length=64)
    text: str = Field(min_length=1)
    priority: Literal["high", "medium", "low"] = "medium"


class CarePlanTemplateCreateRequest(BaseModel):
    """Payload for adding a care-plan template."""

    category: str
    concern: str = Field(min_length=1, max_length=255)
    goal: str = Field(min_length=1)
    barrier: str = Field(min_length=1)
    target_date: date | None = None
    is_ongoing: bool = False
    recommendations: list[RecommendationPayload] = Field(default_factory=list)


class CarePlanTemplateUpdateRequest(BaseModel):
    """Payload for editing a care-plan template."""

    category: str | None = None
    concern: str | None = Field(default=None, min_length=1, max_length=255)
    goal: str | None = Field(default=None, min_length=1)
    barrier: str | None = Field(default=None, min_length=1)
    target_date: date | None = None
    is_ongoing: bool | None = None
    recommendations: list[RecommendationPayload] | None = None


class RecommendationResponse(BaseModel):
    """Stored recommendation."""

    id: str
    text: str
    priority: str


class CarePlanTemplateResponse(BaseModel):
    """Care-plan template response model."""

    id: int
    category: str
    concern: str
    goal: str
    barrier: str
    target_date: date | None
    is_ongoing: bool
    recommendations: list[RecommendationResponse]
    created_by: int | None
    created_at: datetime
    updated_at: datetime | None


class LibraryImportResponse(BaseModel):
    """CSV import outcome."""

    success: int
    failed: int
    errors: list[str]


def _to_medication_response(medication: Medication) -> MedicationResponse:
    """Map SQLAlchemy medication model to response model."""
    return MedicationResponse.model_validate(medication, from_attributes=True)


def _to_diagnosis_response(diagnosis: MedicalDiagnosis) -> DiagnosisResponse:
    """Map SQLAlchemy diagnosis model to response model."""
    return DiagnosisResponse.model_validate(diagnosis, from_attributes=True)


def _to_template_response(template: CarePlanTemplate) -> CarePlanTemplateResponse:
    """Map SQLAlchemy care-plan template model to response model."""
    return CarePlanTemplateResponse.model_validate(template, from_attributes=True)


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def _read_upload(file: UploadFile) -> str:
    raw = await file.read()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded") from None


def _non_blank(values: list[str]) -> list[str]:
    return [value.strip() for value in values if value and value.strip()]


def _search_pattern(search: str | None) -> str | None:
    if search and search.strip():
        return f"%{search.strip().lower()}%"
    return None


# -- medication endpoints ----------------------------------------------------


async def _get_medication_or_404(db: AsyncSession, medication_id: int) -> Medication:
    medication = await db.get(Medication, medication_id)
    if medication is None:
        raise HTTPException(status_code=404, detail="Medication not found")
    return medication


async def _medication_name_taken(
    db: AsyncSession, name: str, exclude_id: int | None = None
) -> bool:
    stmt = select(Medication.id).where(func.lower(Medication.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Medication.id != exclude_id)
    return (await db.execute(stmt.limit(1))).first() is not None


def _medication_filters(search: str | None, include_inactive: bool) -> list:
    filters = []
    if not include_inactive:
        filters.append(Medication.is_active.is_(True))
    pattern = _search_pattern(search)
    if pattern:
        filters.append(
            or_(
                func.lower(Medication.name).like(pattern),
                func.lower(func.coalesce(Medication.used_for, "")).like(pattern),
            )
        )
    return filters


@router.get("/medications/template")
async def download_medication_template(
    _user: User = Depends(get_current_user),
) -> Response:
    """CSV template for medication imports."""
    return _csv_response(medication_template_csv(), "medication_import_template.csv")


@router.get("/medications/export")
async def export_medications(
    search: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> Response:
    """Export the filtered medication library in the import format."""
    stmt = select(Medication).order_by(Medication.name, Medication.id)
    filters = _medication_filters(search, include_inactive)
    if filters:
        stmt = stmt.where(*filters)
    result = await db.execute(stmt)
    rows = [
        {column: getattr(medication, column) for column in MEDICATION_COLUMNS}
        for medication in result.scalars().all()
    ]
    filename = f"medications_{datetime.utcnow():%Y-%m-%d}.csv"
    return _csv_response(export_medications_csv(rows), filename)


@router.post("/medications/import", response_model=LibraryImportResponse)
async def import_medications(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> LibraryImportResponse:
    """Import medications from CSV (admin only); existing names are skipped."""
    try:
        rows = read_medication_rows(await _read_upload(file))
    except CSVFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None

    existing = await db.execute(select(Medication.name))
    result = plan_medication_import(rows, existing.scalars().all())
    db.add_all(Medication(**fields, created_by=admin.id) for fields in result.records)
    await db.flush()

    logger.info(
        "medication_import_completed",
        filename=file.filename,
        rows=len(rows),
        imported=result.success,
        failed=result.failed,
    )
    return LibraryImportResponse(
        success=result.success, failed=result.failed, errors=result.errors
    )


@router.post(
    "/medications",
    response_model=MedicationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_medication(
    payload: MedicationCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> MedicationResponse:
    """Add a medication (admin only)."""
    name = payload.name.strip()
    doses = _non_blank(payload.doses)
    frequencies = _non_blank(payload.frequencies)
    if not name:
        raise HTTPException(status_code=400, detail="Medication name is required")
    if not doses:
        raise HTTPException(status_code=400, detail="At least one dose is required")
    if not frequencies:
        raise HTTPException(status_code=400, detail="At least one frequency is required")
    if await _medication_name_taken(db, name):
        raise HTTPException(status_code=409, detail="A medication with this name already exists")

    medication = Medication(
        **payload.model_dump(exclude={"name", "doses", "frequencies"}),
        name=name,
        doses=doses,
        frequencies=frequencies,
        created_by=admin.id,
    )
    db.add(medication)
    await db.flush()
    logger.info("medication_created", medication_id=medication.id)
    return _to_medication_response(medication)


@router.get("/medications", response_model=MedicationListResponse)
async def list_medications(
    search: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> MedicationListResponse:
    """List medications by name, searching name and indication."""
    filters = _medication_filters(search, include_inactive)
    count_stmt = select(func.count(Medication.id))
    list_stmt = select(Medication).order_by(Medication.name, Medication.id)
    if filters:
        count_stmt = count_stmt.where(*filters)
        list_stmt = list_stmt.where(*filters)

    total = int((await db.execute(count_stmt)).scalar() or 0)
    result = await db.execute(list_stmt.limit(limit).offset(offset))
    return MedicationListResponse(
        items=[_to_medication_response(item) for item in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/medications/{medication_id}", response_model=MedicationResponse)
async def get_medication(
    medication_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> MedicationResponse:
    """Get medication by ID."""
    return _to_medication_response(await _get_medication_or_404(db, medication_id))


@router.patch("/medications/{medication_id}", response_model=MedicationResponse)
async def update_medication(
    medication_id: int,
    payload: MedicationUpdateRequest,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> MedicationResponse:
    """Partially update a medication (admin only)."""
    medication = await _get_medication_or_404(db, medication_id)
    updates = payload.model_dump(exclude_unset=True)

    for field_name in ("name", "doses", "frequencies", "is_active"):
        if field_name in updates and updates[field_name] is None:
            raise HTTPException(status_code=400, detail=f"{field_name} cannot be empty")
    if "name" in updates:
        updates["name"] = updates["name"].strip()
        if await _medication_name_taken(db, updates["name"], exclude_id=medication.id):
            raise HTTPException(
                status_code=409, detail="A medication with this name already exists"
            )
    if "doses" in updates:
        updates["doses"] = _non_blank(updates["doses"])
        if not updates["doses"]:
            raise HTTPException(status_code=400, detail="At least one dose is required")
    if "frequencies" in updates:
        updates["frequencies"] = _non_blank(updates["frequencies"])
        if not updates["frequencies"]:
            raise HTTPException(status_code=400, detail="At least one frequency is required")

    for field_name, value in updates.items():
        setattr(medication, field_name, value)
    await db.flush()
    return _to_medication_response(medication)


@router.delete("/medications/{medication_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_medication(
    medication_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Response:
    """Remove a medication from the library (admin only)."""
    medication = await _get_medication_or_404(db, medication_id)
    await db.delete(medication)
    logger.info("medication_deleted", medication_id=medication_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -- diagnosis endpoints -----------------------------------------------------


async def _get_diagnosis_or_404(db: AsyncSession, diagnosis_id: int) -> MedicalDiagnosis:
    diagnosis = await db.get(MedicalDiagnosis, diagnosis_id)
    if diagnosis is None:
        raise HTTPException(status_code=404, detail="Diagnosis not found")
    return diagnosis


async def _diagnosis_code_taken(
    db: AsyncSession, code: str, exclude_id: int | None = None
) -> bool:
    stmt = select(MedicalDiagnosis.id).where(
        func.lower(MedicalDiagnosis.code) == code.lower()
    )
    if exclude_id is not None:
        stmt = stmt.where(MedicalDiagnosis.id != exclude_id)
    return (await db.execute(stmt.limit(1))).first() is not None


def _check_diagnosis_category(category: str) -> str:
    canonical = canonical_diagnosis_category(category)
    if canonical is None:
        raise HTTPException(status_code=400, detail=f"Invalid category: {category}")
    return canonical


def _diagnosis_filters(
    search: str | None, category: str | None, include_inactive: bool
) -> list:
    filters = []
    if not include_inactive:
        filters.append(MedicalDiagnosis.is_active.is_(True))
    if category:
        filters.append(MedicalDiagnosis.category == category)
    pattern = _search_pattern(search)
    if pattern:
        filters.append(
            or_(
                func.lower(MedicalDiagnosis.code).like(pattern),
                func.lower(MedicalDiagnosis.name).like(pattern),
                func.lower(func.coalesce(MedicalDiagnosis.description, "")).like(pattern),
            )
        )
    return filters


@router.get("/diagnoses/categories", response_model=list[DiagnosisCategoryCount])
async def list_diagnosis_categories(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> list[DiagnosisCategoryCount]:
    """Every diagnosis category with its count of active diagnoses."""
    result = await db.execute(
        select(MedicalDiagnosis.category, func.count(MedicalDiagnosis.id))
        .where(MedicalDiagnosis.is_active.is_(True))
        .group_by(MedicalDiagnosis.category)
    )
    counts = dict(result.all())
    return [
        DiagnosisCategoryCount(category=category, count=int(counts.get(category, 0)))
        for category in DIAGNOSIS_CATEGORIES
    ]


@router.get("/diagnoses/template")
async def download_diagnosis_template(
    _user: User = Depends(get_current_user),
) -> Response:
    """CSV template for diagnosis imports."""
    return _csv_response(diagnosis_template_csv(), "diagnosis_import_template.csv")


@router.get("/diagnoses/export")
async def export_diagnoses(
    search: str | None = Query(default=None),
    category: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> Response:
    """Export the filtered diagnosis library in the import format."""
    stmt = select(MedicalDiagnosis).order_by(MedicalDiagnosis.code, MedicalDiagnosis.id)
    filters = _diagnosis_filters(search, category, include_inactive)
    if filters:
        stmt = stmt.where(*filters)
    result = await db.execute(stmt)
    rows = [
        {column: getattr(diagnosis, column) for column in DIAGNOSIS_COLUMNS}
        for diagnosis in result.scalars().all()
    ]
    filename = f"medical_diagnoses_{datetime.utcnow():%Y-%m-%d}.csv"
    return _csv_response(export_diagnoses_csv(rows), filename)


@router.post("/diagnoses/import", response_model=LibraryImportResponse)
async def import_diagnoses(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> LibraryImportResponse:
    """Import diagnoses from CSV (admin only); existing codes are skipped."""
    try:
        rows = read_diagnosis_rows(await _read_upload(file))
    except CSVFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None

    existing = await db.execute(select(MedicalDiagnosis.code))
    result = plan_diagnosis_import(rows, existing.scalars().all())
    db.add_all(MedicalDiagnosis(**fields, created_by=admin.id) for fields in result.records)
    await db.flush()

    logger.info(
        "diagnosis_import_completed",
        filename=file.filename,
        rows=len(rows),
        imported=result.success,
        failed=result.failed,
    )
    return LibraryImportResponse(
        success=result.success, failed=result.failed, errors=result.errors
    )


@router.post(
    "/diagnoses",
    response_model=DiagnosisResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_diagnosis(
    payload: DiagnosisCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> DiagnosisResponse:
    """Add a diagnosis (admin only)."""
    code = payload.code.strip()
    name = payload.name.strip()
    if not code or not name:
        raise HTTPException(status_code=400, detail="Code, name, and category are required")
    category = _check_diagnosis_category(payload.category)
    if await _diagnosis_code_taken(db, code):
        raise HTTPException(status_code=409, detail="A diagnosis with this code already exists")

    diagnosis = MedicalDiagnosis(
        code=code,
        name=name,
        category=category,
        description=payload.description,
        common_symptoms=_non_blank(payload.common_symptoms or []),
        risk_factors=_non_blank(payload.risk_factors or []),
        created_by=admin.id,
    )
    db.add(diagnosis)
    await db.flush()
    logger.info("diagnosis_created", diagnosis_id=diagnosis.id, code=code)
    return _to_diagnosis_response(diagnosis)


@router.get("/diagnoses", response_model=DiagnosisListResponse)
async def list_diagnoses(
    search: str | None = Query(default=None),
    category: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> DiagnosisListResponse:
    """List diagnoses by code, optionally within one category."""
    filters = _diagnosis_filters(search, category, include_inactive)
    count_stmt = select(func.count(MedicalDiagnosis.id))
    list_stmt = select(MedicalDiagnosis).order_by(MedicalDiagnosis.code, MedicalDiagnosis.id)
    if filters:
        count_stmt = count_stmt.where(*filters)
        list_stmt = list_stmt.where(*filters)

    total = int((await db.execute(count_stmt)).scalar() or 0)
    result = await db.execute(list_stmt.limit(limit).offset(offset))
    return DiagnosisListResponse(
        items=[_to_diagnosis_response(item) for item in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/diagnoses/{diagnosis_id}", response_model=DiagnosisResponse)
async def get_diagnosis(
    diagnosis_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> DiagnosisResponse:
    """Get diagnosis by ID."""
    return _to_diagnosis_response(await _get_diagnosis_or_404(db, diagnosis_id))


@router.patch("/diagnoses/{diagnosis_id}", response_model=DiagnosisResponse)
async def update_diagnosis(
    diagnosis_id: int,
    payload: DiagnosisUpdateRequest,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DiagnosisResponse:
    """Partially update a diagnosis (admin only)."""
    diagnosis = await _get_diagnosis_or_404(db, diagnosis_id)
    updates = payload.model_dump(exclude_unset=True)

    for field_name in ("code", "name", "category", "is_active"):
        if field_name in updates and updates[field_name] is None:
            raise HTTPException(status_code=400, detail=f"{field_name} cannot be empty")
    if "code" in updates:
        updates["code"] = updates["code"].strip()
        if await _diagnosis_code_taken(db, updates["code"], exclude_id=diagnosis.id):
            raise HTTPException(
                status_code=409, detail="A diagnosis with this code already exists"
            )
    if "name" in updates:
        updates["name"] = updates["name"].strip()
    if "category" in updates:
        updates["category"] = _check_diagnosis_category(updates["category"])
    for field_name in ("common_symptoms", "risk_factors"):
        if field_name in updates:
            updates[field_name] = _non_blank(updates[field_name] or [])

    for field_name, value in updates.items():
        setattr(diagnosis, field_name, value)
    await db.flush()
    return _to_diagnosis_response(diagnosis)


@router.delete("/diagnoses/{diagnosis_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_diagnosis(
    diagnosis_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Response:
    """Remove a diagnosis from the library (admin only)."""
    diagnosis = await _get_diagnosis_or_404(db, diagnosis_id)
    await db.delete(diagnosis)
    logger.info("diagnosis_deleted", diagnosis_id=diagnosis_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -- care-plan template endpoints --------------------------------------------


async def _get_template_or_404(db: AsyncSession, template_id: int) -> CarePlanTemplate:
    template = await db.get(CarePlanTemplate, template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Care plan template not found")
    return template


def _check_care_plan_category(category: str) -> None:
    if not is_care_plan_category(category):
        raise HTTPException(status_code=400, detail=f"Invalid category: {category}")


@router.get("/care-plans/categories", response_model=dict[str, list[str]])
async def list_care_plan_categories(
    _user: User = Depends(get_current_user),
) -> dict[str, list[str]]:
    """Care-plan categories with their suggested concerns."""
    return {category: list(concerns) for category, concerns in CARE_PLAN_CONCERNS.items()}


@router.post(
    "/care-plans",
    response_model=CarePlanTemplateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_care_plan_template(
    payload: CarePlanTemplateCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> CarePlanTemplateResponse:
    """Add a care-plan template (admin only).

    Ongoing templates have no target date.
    """
    _check_care_plan_category(payload.category)
    template = CarePlanTemplate(
        category=payload.category,
        concern=payload.concern.strip(),
        goal=payload.goal.strip(),
        barrier=payload.barrier.strip(),
        is_ongoing=payload.is_ongoing,
        target_date=None if payload.is_ongoing else payload.target_date,
        recommendations=normalize_recommendations(
            item.model_dump() for item in payload.recommendations
        ),
        created_by=admin.id,
    )
    db.add(template)
    await db.flush()
    logger.info(
        "care_plan_template_created",
        template_id=template.id,
        category=template.category,
    )
    return _to_template_response(template)


@router.get("/care-plans", response_model=list[CarePlanTemplateResponse])
async def list_care_plan_templates(
    category: str | None = Query(default=None),
    search: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> list[CarePlanTemplateResponse]:
    """List templates grouped by category, then concern."""
    stmt = select(CarePlanTemplate).order_by(
        CarePlanTemplate.category, CarePlanTemplate.concern, CarePlanTemplate.id
    )
    if category:
        stmt = stmt.where(CarePlanTemplate.category == category)
    pattern = _search_pattern(search)
    if pattern:
        stmt = stmt.where(
            or_(
                func.lower(CarePlanTemplate.concern).like(pattern),
                func.lower(CarePlanTemplate.goal).like(pattern),
                func.lower(CarePlanTemplate.barrier).like(pattern),
                func.lower(cast(CarePlanTemplate.recommendations, String)).like(pattern),
            )
        )
    result = await db.execute(stmt)
    return [_to_template_response(item) for item in result.scalars().all()]


@router.get("/care-plans/{template_id}", response_model=CarePlanTemplateResponse)
async def get_care_plan_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> CarePlanTemplateResponse:
    """Get care-plan template by ID."""
    return _to_template_response(await _get_template_or_404(db, template_id))


@router.patch("/care-plans/{template_id}", response_model=CarePlanTemplateResponse)
async def update_care_plan_template(
    template_id: int,
    payload: CarePlanTemplateUpdateRequest,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> CarePlanTemplateResponse:
    """Partially update a care-plan template (admin only)."""
    template = await _get_template_or_404(db, template_id)
    updates = payload.model_dump(exclude_unset=True)

    for field_name in ("category", "concern", "goal", "barrier", "is_ongoing", "recommendations"):
        if field_name in updates and updates[field_name] is None:
            raise HTTPException(status_code=400, detail=f"{field_name} cannot be empty")
    if "category" in updates:
        _check_care_plan_category(updates["category"])
    for field_name in ("concern", "goal", "barrier"):
        if field_name in updates:
            updates[field_name] = updates[field_name].strip()
    if "recommendations" in updates:
        updates["recommendations"] = normalize_recommendations(updates["recommendations"])

    for field_name, value in updates.items():
        setattr(template, field_name, value)
    if template.is_ongoing:
        template.target_date = None
    await db.flush()
    return _to_template_response(template)


@router.delete("/care-plans/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_care_plan_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Response:
    """Delete a care-plan template (admin only).

    Copies already applied to assessments are kept.
    """
    template = await _get_template_or_404(db, template_id)
    await db.delete(template)
    logger.info("care_plan_template_deleted", template_id=template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
