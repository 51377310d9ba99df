"""Routes Matériaux / Material catalog API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.api.deps import audit, get_current_user, pagination_params, require_admin
from circulapp.database import get_db
from circulapp.models.material import Material, MaterialCategory
from circulapp.models.product import CompactionStatus, Product
from circulapp.models.report import Report, ReportCategory, ReportNote, ReportSeverity, ReportType, TargetType
from circulapp.models.user import User
from circulapp.schemas.common import MessageResponse, make_pagination
from circulapp.schemas.material import (
    EnvironmentalImpact,
    ImpactRequest,
    ImpactResponse,
    MaterialCreate,
    MaterialIssueReport,
    MaterialRead,
    MaterialSuggestion,
    MaterialUpdate,
    SuggestRequest,
    SuggestResponse,
)
from circulapp.services import materials as material_service
from circulapp.services.materials import MaterialValidationError
from circulapp.utils.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


async def _active_material(db: AsyncSession, material_id: int) -> Material:
    material = await db.get(Material, material_id)
    if not material or not material.is_active:
        raise HTTPException(status_code=404, detail="Material not found")
    return material


@router.get("/")
async def list_materials(
    category: MaterialCategory | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    compaction_required: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Catalogue des matériaux actifs / Active material catalog."""
    page, limit = pagination_params(page, limit)
    conditions = [Material.is_active.is_(True)]
    if category is not None:
        conditions.append(Material.category == category)
    if compaction_required is not None:
        conditions.append(Material.compaction_required.is_(compaction_required))
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Material.name.ilike(pattern), Material.description.ilike(pattern)))

    total = await db.scalar(select(func.count(Material.id)).where(*conditions)) or 0
    result = await db.execute(
        select(Material).where(*conditions).order_by(Material.category, Material.name)
        .offset((page - 1) * limit).limit(limit)
    )

    # Répartition par catégorie / Breakdown by category
    by_category = await db.execute(
        select(Material.category, func.count(Material.id), func.avg(Material.recycling_value))
        .where(Material.is_active.is_(True))
        .group_by(Material.category)
    )

    return {
        "materials": [MaterialRead.model_validate(m) for m in result.scalars().all()],
        "pagination": make_pagination(page, limit, total),
        "category_stats": [
            {"category": cat.value, "count": count, "avg_recycling_value": round(avg or 0, 2)}
            for cat, count, avg in by_category.all()
        ],
    }


@router.get("/admin/statistics")
async def material_statistics(db: AsyncSession = Depends(get_db), admin: User = Depends(require_admin)):
    """Statistiques du catalogue / Catalog statistics."""
    by_category = await db.execute(
        select(Material.category, func.count(Material.id), func.avg(Material.recycling_value))
        .where(Material.is_active.is_(True))
        .group_by(Material.category)
    )
    usage = await db.execute(
        select(Material.id, Material.name, Material.recycling_value, func.count(Product.id).label("usage"))
        .outerjoin(Product, Product.material_id == Material.id)
        .where(Material.is_active.is_(True))
        .group_by(Material.id, Material.name, Material.recycling_value)
        .order_by(func.count(Product.id).desc())
        .limit(10)
    )
    environmental = await db.execute(
        select(func.count(Material.id), func.avg(Material.recycling_value), func.avg(Material.carbon_footprint_saved))
        .where(Material.is_active.is_(True))
    )
    total, avg_value, avg_carbon = environmental.one()

    return {
        "category_distribution": [
            {"category": cat.value, "count": count, "avg_recycling_value": round(avg or 0, 2)}
            for cat, count, avg in by_category.all()
        ],
        "most_used_materials": [
            {"id": mid, "name": name, "usage_count": used, "recycling_value": value}
            for mid, name, value, used in usage.all()
        ],
        "environmental_metrics": {
            "total_materials": total or 0,
            "avg_recycling_value": round(avg_value or 0, 2),
            "avg_carbon_savings": round(avg_carbon or 0, 2),
        },
    }


@router.get("/{material_id}")
async def get_material(material_id: int, db: AsyncSession = Depends(get_db)):
    """Détail + statistiques d'utilisation / Detail + usage statistics."""
    material = await _active_material(db, material_id)
    usage = await db.execute(
        select(Product.compaction_status, func.count(Product.id), func.sum(Product.actual_weight))
        .where(Product.material_id == material_id)
        .group_by(Product.compaction_status)
    )
    rows = usage.all()
    validated = next((r for r in rows if r[0] == CompactionStatus.VALIDATED), None)
    return {
        "material": MaterialRead.model_validate(material),
        "usage_stats": {
            "total_products": sum(r[1] for r in rows),
            "validated_products": validated[1] if validated else 0,
            "total_weight_validated": (validated[2] or 0) if validated else 0,
        },
    }


@router.post("/{material_id}/calculate-impact", response_model=ImpactResponse)
async def calculate_impact(material_id: int, data: ImpactRequest, db: AsyncSession = Depends(get_db)):
    """Impact environnemental pour un poids / Environmental impact for a weight."""
    material = await _active_material(db, material_id)
    impact = material_service.environmental_impact(material, data.weight)
    return ImpactResponse(
        material_id=material.id,
        material_name=material.name,
        weight=data.weight,
        impact=EnvironmentalImpact(**impact),
        recommendations=material_service.impact_recommendations(material, impact),
    )


@router.post("/suggest", response_model=SuggestResponse)
async def suggest_materials(
    data: SuggestRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Suggérer des matériaux pour son produit / Suggest materials for an owned product."""
    product = await db.get(Product, data.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Not allowed for this product")

    category = material_service.suggested_category(product.category)
    result = await db.execute(
        select(Material).where(Material.category == category, Material.is_active.is_(True)).limit(5)
    )
    candidates = list(result.scalars().all())

    # Repli sur les mots du titre / Fall back on title words
    if not candidates:
        words = [w for w in product.title.lower().split() if len(w) > 3]
        if words:
            result = await db.execute(
                select(Material)
                .where(Material.is_active.is_(True), or_(*[Material.name.ilike(f"%{w}%") for w in words]))
                .limit(5)
            )
            candidates = list(result.scalars().all())

    weight = product.weight or 1
    return SuggestResponse(
        product_id=product.id,
        suggested_materials=[
            MaterialSuggestion(
                id=m.id,
                name=m.name,
                category=m.category,
                compaction_instructions=m.compaction_instructions,
                recycling_value=m.recycling_value,
                estimated_impact=EnvironmentalImpact(**material_service.environmental_impact(m, weight)),
                confidence=material_service.suggestion_confidence(product, m),
            )
            for m in candidates
        ],
    )


@router.post("/{material_id}/report", status_code=201)
async def report_material_issue(
    material_id: int,
    data: MaterialIssueReport,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Signaler un problème sur une fiche / Report an issue on a material entry."""
    material = await _active_material(db, material_id)
    report = Report(
        reporter_id=user.id,
        report_type=ReportType.TECHNICAL_ISSUE,
        sub_type=data.issue_type,
        target_type=TargetType.MATERIAL,
        target_id=material.id,
        target_title=material.name,
        description=f"{data.issue_type}: {data.description}",
        category=ReportCategory.ENVIRONMENTAL,
        severity=ReportSeverity.MEDIUM,
        timeline=[],
        notes=[],
        actions_taken=[],
    )
    if data.suggestion:
        report.notes.append(ReportNote(note=f"User suggestion: {data.suggestion}", added_by_id=user.id, is_private=False))
    db.add(report)
    await db.flush()
    return {"message": "Report submitted", "report_id": report.id}


@router.post("/", response_model=MaterialRead, status_code=201)
async def create_material(
    data: MaterialCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Créer une fiche matériau (admin) / Create a material entry (admin)."""
    try:
        material_service.validate_weight_range(data.min_weight, data.max_weight)
    except MaterialValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    material = Material(
        **data.model_dump(exclude={"required_images", "quality_standards"}),
        required_images=[i.model_dump() for i in data.required_images] if data.required_images else None,
        quality_standards=[q.model_dump() for q in data.quality_standards] if data.quality_standards else None,
        created_by_id=admin.id,
        approved_by_id=admin.id,
        approved_at=utcnow(),
    )
    db.add(material)
    await db.flush()
    audit(db, "material", material.id, "CREATE", admin.email, material.name)
    return material


@router.put("/{material_id}", response_model=MaterialRead)
async def update_material(
    material_id: int,
    data: MaterialUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Modifier une fiche (admin) / Update an entry (admin)."""
    material = await db.get(Material, material_id)
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")

    updates = data.model_dump(exclude_unset=True)
    try:
        material_service.validate_weight_range(
            updates.get("min_weight", material.min_weight),
            updates.get("max_weight", material.max_weight),
        )
    except MaterialValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    for key, value in updates.items():
        setattr(material, key, value)
    await db.flush()
    audit(db, "material", material.id, "UPDATE", admin.email, ",".join(sorted(updates)))
    return material


@router.delete("/{material_id}", response_model=MessageResponse)
async def deactivate_material(
    material_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Désactiver une fiche (admin) / Deactivate an entry (admin)."""
    material = await db.get(Material, material_id)
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")
    material.is_active = False
    audit(db, "material", material.id, "DEACTIVATE", admin.email)
    return MessageResponse(message="Material deactivated")
