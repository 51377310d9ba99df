"""
Routes administration municipale / Municipal administration routes.
Plannings de collecte, optimisation de tournée, validation des matériaux,
analytics, producteurs et zones. Réservé aux administrateurs (comuna).
Collection schedules, route optimization, material validation, analytics,
producers and zones. Municipal administrators (comuna) only.
"""

import json
import logging
from collections import Counter
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.api.deps import audit, pagination_params, require_admin
from circulapp.database import get_db
from circulapp.models.collection_schedule import CollectionSchedule, RoutePoint, ScheduleStatus
from circulapp.models.material import Material
from circulapp.models.product import CompactionStatus, Product, ProductStatus
from circulapp.models.user import User, UserType
from circulapp.schemas.collection_schedule import (
    OptimizeRouteResponse,
    RoutePointCreate,
    RoutePointStatusUpdate,
    ScheduleCreate,
    ScheduleCreated,
    ScheduleList,
    ScheduleListStats,
    ScheduleRead,
    ScheduleStatistics,
    ScheduleUpdate,
)
from circulapp.schemas.common import make_pagination
from circulapp.schemas.material import MaterialValidationRequest
from circulapp.schemas.product import ProductRead
from circulapp.schemas.user import ProducerApproval, PublicProfile
from circulapp.services import materials as material_service
from circulapp.services import schedules as schedule_service
from circulapp.services.schedules import CapacityExceededError, ScheduleValidationError
from circulapp.utils.dates import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}


# ─── Plannings de collecte / Collection schedules ───

async def _load_schedule(db: AsyncSession, schedule_id: int, active_only: bool = True) -> CollectionSchedule:
    query = select(CollectionSchedule).where(CollectionSchedule.id == schedule_id)
    if active_only:
        query = query.where(CollectionSchedule.is_active.is_(True))
    result = await db.execute(query.execution_options(populate_existing=True))
    schedule = result.scalar_one_or_none()
    if not schedule:
        raise HTTPException(status_code=404, detail="Collection schedule not found")
    return schedule


async def _build_route(db: AsyncSession, points: list[RoutePointCreate]) -> list[RoutePoint]:
    """Construire les arrêts en résolvant les produits / Build stops, resolving products."""
    product_ids = {pid for p in points for pid in p.product_ids}
    products: dict[int, Product] = {}
    if product_ids:
        result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
        products = {p.id: p for p in result.scalars().all()}
        missing = product_ids - products.keys()
        if missing:
            raise HTTPException(status_code=400, detail=f"Unknown products: {sorted(missing)}")

    return [
        RoutePoint(
            sequence_order=index,
            lat=p.lat,
            lng=p.lng,
            address=p.address,
            estimated_time=to_naive_utc(p.estimated_time),
            notes=p.notes,
            products=[products[pid] for pid in p.product_ids],
        )
        for index, p in enumerate(points)
    ]


async def _check_collector(db: AsyncSession, collector_id: int | None):
    if collector_id is not None and not await db.get(User, collector_id):
        raise HTTPException(status_code=400, detail="Collector not found")


@router.get("/collection-schedule", response_model=ScheduleList)
async def list_schedules(
    zone: str | None = Query(default=None),
    date: datetime | None = Query(default=None),
    status: ScheduleStatus | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Plannings actifs avec statistiques de capacité / Active schedules with capacity stats."""
    query = select(CollectionSchedule).where(CollectionSchedule.is_active.is_(True))
    if zone:
        query = query.where(CollectionSchedule.zone == zone)
    if status is not None:
        query = query.where(CollectionSchedule.status == status)
    if date is not None:
        day = to_naive_utc(date).replace(hour=0, minute=0, second=0, microsecond=0)
        query = query.where(
            CollectionSchedule.scheduled_date >= day,
            CollectionSchedule.scheduled_date < day + timedelta(days=1),
        )

    result = await db.execute(
        query.order_by(CollectionSchedule.scheduled_date, CollectionSchedule.time_slot_start)
    )
    schedules = list(result.scalars().all())

    stats = ScheduleListStats(
        total=len(schedules),
        by_status=dict(Counter(s.status.value for s in schedules)),
        total_capacity=sum(s.capacity_maximum for s in schedules),
        used_capacity=sum(s.capacity_current or 0 for s in schedules),
    )
    return ScheduleList(
        schedules=[ScheduleRead.model_validate(s) for s in schedules],
        stats=stats,
        utilization_rate=schedule_service.utilization_rate(schedules),
    )


@router.post("/collection-schedule", response_model=ScheduleCreated, status_code=201)
async def create_schedule(
    data: ScheduleCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Créer un planning, avec récurrence éventuelle / Create a schedule, with optional recurrence."""
    scheduled_date = to_naive_utc(data.scheduled_date)
    recurring = data.recurring if data.recurring and data.recurring.enabled else None
    try:
        schedule_service.validate_schedule(data.time_slot_start, data.time_slot_end, scheduled_date)
        if recurring and (recurring.interval is None or recurring.end_date is None):
            raise ScheduleValidationError("Recurring schedules need an interval and an end date")
    except ScheduleValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await _check_collector(db, data.collector_id)

    schedule = CollectionSchedule(
        **data.model_dump(exclude={"route", "recurring", "scheduled_date"}),
        scheduled_date=scheduled_date,
        route=await _build_route(db, data.route),
        created_by_id=admin.id,
    )
    if recurring:
        schedule.recurring_enabled = True
        schedule.recurring_interval = recurring.interval
        schedule.recurring_end_date = to_naive_utc(recurring.end_date)
    schedule.estimated_duration = schedule.calculate_estimated_duration()
    db.add(schedule)
    await db.flush()

    created = 0
    if recurring:
        clones = schedule_service.build_recurring_schedules(
            schedule, recurring.interval, schedule.recurring_end_date
        )
        db.add_all(clones)
        await db.flush()
        created = len(clones)

    audit(db, "collection_schedule", schedule.id, "CREATE", admin.email,
          json.dumps({"zone": schedule.zone, "points": len(schedule.route), "recurring": created}))
    logger.info("Collection schedule %s created (%d points, %d recurring)", schedule.id, len(schedule.route), created)

    schedule = await _load_schedule(db, schedule.id)
    return ScheduleCreated(schedule=ScheduleRead.model_validate(schedule), recurring_created=created)


@router.get("/collection-schedule/{schedule_id}", response_model=ScheduleRead)
async def get_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Détail d'un planning (archivés inclus) / Schedule detail (archived included)."""
    return await _load_schedule(db, schedule_id, active_only=False)


@router.put("/collection-schedule/{schedule_id}", response_model=ScheduleRead)
async def update_schedule(
    schedule_id: int,
    data: ScheduleUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Modifier un planning / Update a schedule."""
    schedule = await _load_schedule(db, schedule_id)
    updates = data.model_dump(exclude_unset=True, exclude={"route"})

    try:
        schedule_service.validate_schedule(
            updates.get("time_slot_start", schedule.time_slot_start),
            updates.get("time_slot_end", schedule.time_slot_end),
        )
    except ScheduleValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if "collector_id" in updates:
        await _check_collector(db, updates["collector_id"])

    if data.route is not None:
        schedule_service.replace_route(schedule, await _build_route(db, data.route))
    for key, value in updates.items():
        setattr(schedule, key, value)
    await db.flush()

    audit(db, "collection_schedule", schedule.id, "UPDATE", admin.email, ",".join(sorted(data.model_fields_set)))
    return await _load_schedule(db, schedule_id)


@router.delete("/collection-schedule/{schedule_id}", response_model=ScheduleRead)
async def archive_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Archiver (suppression douce) / Archive (soft delete)."""
    schedule = await _load_schedule(db, schedule_id)
    schedule.is_active = False
    audit(db, "collection_schedule", schedule.id, "ARCHIVE", admin.email)
    await db.flush()
    return await _load_schedule(db, schedule_id, active_only=False)


@router.patch("/collection-schedule/{schedule_id}/optimize-route", response_model=OptimizeRouteResponse)
async def optimize_route(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Optimiser l'ordre de passage (plus proche voisin) / Optimize the visiting order (nearest neighbour)."""
    schedule = await _load_schedule(db, schedule_id)
    result = schedule_service.apply_optimized_order(schedule)
    await db.flush()

    audit(db, "collection_schedule", schedule.id, "OPTIMIZE", admin.email, json.dumps(result))
    logger.info(
        "Route optimized for schedule %s: %.2f km -> %.2f km",
        schedule.id, result["original_distance_km"], result["optimized_distance_km"],
    )
    return OptimizeRouteResponse(**result)


@router.patch("/collection-schedule/{schedule_id}/route-points/{point_id}/status", response_model=ScheduleRead)
async def update_route_point_status(
    schedule_id: int,
    point_id: int,
    data: RoutePointStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Avancer un arrêt (en cours, collecté, sauté) / Advance a stop (in progress, collected, skipped)."""
    schedule = await _load_schedule(db, schedule_id)
    point = next((p for p in schedule.route if p.id == point_id), None)
    if point is None:
        raise HTTPException(status_code=404, detail="Route point not found")

    try:
        schedule_service.update_point_status(
            schedule, point, data.status, data.collected_weight, data.collector_notes
        )
    except CapacityExceededError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ScheduleValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await db.flush()
    return await _load_schedule(db, schedule_id)


@router.get("/collection-schedule/{schedule_id}/statistics", response_model=ScheduleStatistics)
async def schedule_statistics(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Statistiques de la tournée / Run statistics."""
    schedule = await _load_schedule(db, schedule_id, active_only=False)
    return ScheduleStatistics(schedule_id=schedule.id, **schedule_service.schedule_statistics(schedule))


# ─── Validation des matériaux / Material validation ───

@router.post("/validate-material")
async def validate_material(
    data: MaterialValidationRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Valider ou rejeter un produit compacté / Validate or reject a compacted product."""
    product = await db.get(Product, data.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    if data.material_id is not None:
        material = await db.get(Material, data.material_id)
        if not material:
            raise HTTPException(status_code=404, detail="Material not found")
        product.material = material
        product.material_type = material.category.value
    if data.actual_weight is not None:
        product.actual_weight = data.actual_weight

    product.compaction_status = CompactionStatus(data.validation_result)
    product.validated_by_id = admin.id
    product.validated_at = utcnow()
    product.validation_notes = data.notes
    if data.quality_score is not None:
        product.quality_score = data.quality_score
    if data.recommendations is not None:
        product.recommendations = data.recommendations

    impact = None
    if product.compaction_status == CompactionStatus.VALIDATED and product.material is not None:
        impact = material_service.environmental_impact(product.material, product.best_weight)
        product.co2_reduction = impact["carbon_footprint_saved"]
        product.water_saved = impact["water_saved"]
        product.energy_saved = impact["energy_saved"]
        product.recycling_value = impact["recycling_value"]

    audit(db, "product", product.id, "VALIDATE_MATERIAL", admin.email, data.validation_result)
    logger.info("Product %s material %s by admin %s", product.id, data.validation_result, admin.id)
    return {
        "message": f"Material {data.validation_result}",
        "validation_result": data.validation_result,
        "environmental_impact": impact,
        "recommendations": product.recommendations,
    }


@router.get("/materials/pending-validation")
async def pending_validation(
    material_type: str | None = Query(default=None),
    zone: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Produits en attente de validation, plus anciens d'abord / Products awaiting validation, oldest first."""
    page, limit = pagination_params(page, limit)
    conditions = [
        Product.compaction_status == CompactionStatus.PENDING,
        Product.status == ProductStatus.AVAILABLE,
    ]
    if material_type:
        conditions.append(Product.material_type == material_type)
    if zone:
        conditions.append(Product.zone == zone)

    total = await db.scalar(select(func.count(Product.id)).where(*conditions)) or 0
    result = await db.execute(
        select(Product).where(*conditions).order_by(Product.created_at)
        .offset((page - 1) * limit).limit(limit)
    )
    stats = await db.execute(
        select(Product.material_type, func.count(Product.id)).where(*conditions).group_by(Product.material_type)
    )
    return {
        "products": [ProductRead.model_validate(p) for p in result.scalars().all()],
        "pagination": make_pagination(page, limit, total),
        "material_stats": [{"material_type": t, "count": c} for t, c in stats.all()],
    }


# ─── Analytics ───

@router.get("/analytics")
async def analytics(
    period: str = Query(default="30d", pattern=r"^(7d|30d|90d|1y)$"),
    zone: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Indicateurs municipaux sur une période / Municipal indicators over a period."""
    start = utcnow() - timedelta(days=PERIOD_DAYS[period])
    conditions = [Product.created_at >= start]
    if zone:
        conditions.append(Product.zone == zone)

    result = await db.execute(
        select(
            Product.created_at, Product.actual_weight, Product.compaction_status, Product.material_type,
            Product.co2_reduction, Product.water_saved, Product.energy_saved,
        ).where(*conditions)
    )
    rows = result.all()
    validated = [r for r in rows if r.compaction_status == CompactionStatus.VALIDATED]
    pending = sum(1 for r in rows if r.compaction_status == CompactionStatus.PENDING)

    daily: dict[str, dict] = {}
    for r in rows:
        bucket = daily.setdefault(r.created_at.strftime("%Y-%m-%d"), {"products": 0, "weight": 0.0})
        bucket["products"] += 1
        bucket["weight"] += r.actual_weight or 0

    schedule_conditions = [CollectionSchedule.scheduled_date >= start, CollectionSchedule.is_active.is_(True)]
    if zone:
        schedule_conditions.append(CollectionSchedule.zone == zone)
    collection = await db.execute(
        select(
            func.count(CollectionSchedule.id),
            func.count(CollectionSchedule.id).filter(CollectionSchedule.status == ScheduleStatus.COMPLETED),
            func.coalesce(func.sum(CollectionSchedule.total_weight), 0),
            func.avg(CollectionSchedule.duration),
        ).where(*schedule_conditions)
    )
    total_scheduled, completed, collected_weight, avg_duration = collection.one()

    return {
        "summary": {
            "total_products": len(rows),
            "validated_materials": len(validated),
            "pending_validation": pending,
            "validation_rate": round(len(validated) / len(rows) * 100) if rows else 0,
            "total_weight": sum(r.actual_weight or 0 for r in rows),
            "collection_efficiency": round(completed / total_scheduled * 100) if total_scheduled else 0,
            "collected_weight": collected_weight,
            "avg_collection_duration": avg_duration,
        },
        "environmental_impact": {
            "total_co2": sum(r.co2_reduction or 0 for r in validated),
            "total_water": sum(r.water_saved or 0 for r in validated),
            "total_energy": sum(r.energy_saved or 0 for r in validated),
        },
        "top_materials": [
            {"material_type": t, "count": c}
            for t, c in Counter(r.material_type for r in rows).most_common(10)
        ],
        "daily_stats": [{"date": d, **v} for d, v in sorted(daily.items())],
        "period": period,
    }


# ─── Producteurs / Producers ───

@router.patch("/approve-producer/{user_id}")
async def approve_producer(
    user_id: int,
    data: ProducerApproval,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Approuver ou refuser un producteur / Approve or reject a producer."""
    producer = await db.get(User, user_id)
    if not producer:
        raise HTTPException(status_code=404, detail="User not found")
    if producer.user_type != UserType.PRODUCER:
        raise HTTPException(status_code=400, detail="User must be a producer")

    producer.is_verified = data.approved
    producer.verification_notes = data.notes
    producer.verified_by_id = admin.id
    producer.verified_at = utcnow()

    activated = 0
    if data.approved:
        # Les brouillons deviennent disponibles / Drafts become available
        result = await db.execute(
            update(Product)
            .where(Product.owner_id == user_id, Product.status == ProductStatus.DRAFT)
            .values(status=ProductStatus.AVAILABLE)
            .execution_options(synchronize_session=False)
        )
        activated = result.rowcount or 0

    audit(db, "user", producer.id, "APPROVE_PRODUCER" if data.approved else "REJECT_PRODUCER", admin.email, data.notes)
    return {
        "message": f"Producer {'approved' if data.approved else 'rejected'}",
        "user": PublicProfile.model_validate(producer),
        "products_activated": activated,
    }


@router.get("/producers/pending")
async def pending_producers(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Producteurs en attente, plus anciens d'abord / Pending producers, oldest first."""
    page, limit = pagination_params(page, limit)
    conditions = [User.user_type == UserType.PRODUCER, User.is_verified.is_(False), User.is_active.is_(True)]
    total = await db.scalar(select(func.count(User.id)).where(*conditions)) or 0
    result = await db.execute(
        select(User).where(*conditions).order_by(User.created_at).offset((page - 1) * limit).limit(limit)
    )
    producers = result.scalars().all()

    counts: dict[int, int] = {}
    if producers:
        count_rows = await db.execute(
            select(Product.owner_id, func.count(Product.id))
            .where(Product.owner_id.in_([p.id for p in producers]))
            .group_by(Product.owner_id)
        )
        counts = dict(count_rows.all())

    now = utcnow()
    return {
        "producers": [
            {
                **PublicProfile.model_validate(p).model_dump(mode="json"),
                "email": p.email,
                "phone": p.phone,
                "stats": {
                    "product_count": counts.get(p.id, 0),
                    "avg_rating": p.reputation_average,
                    "days_since_registration": (now - p.created_at).days,
                },
            }
            for p in producers
        ],
        "pagination": make_pagination(page, limit, total),
    }


# ─── Zones ───

@router.get("/zones/stats")
async def zone_stats(db: AsyncSession = Depends(get_db), admin: User = Depends(require_admin)):
    """Statistiques par zone / Per-zone statistics."""
    result = await db.execute(
        select(Product.zone, Product.actual_weight, Product.compaction_status, Product.material_type)
        .where(Product.zone.is_not(None))
    )
    zones: dict[str, dict] = {}
    for zone, weight, compaction, material_type in result.all():
        entry = zones.setdefault(zone, {
            "zone": zone, "total_products": 0, "total_weight": 0.0, "validated_products": 0,
            "weights": [], "material_types": set(),
        })
        entry["total_products"] += 1
        entry["total_weight"] += weight or 0
        if weight is not None:
            entry["weights"].append(weight)
        if compaction == CompactionStatus.VALIDATED:
            entry["validated_products"] += 1
        if material_type:
            entry["material_types"].add(material_type)

    since = utcnow() - timedelta(days=30)
    schedules = await db.execute(
        select(
            CollectionSchedule.zone,
            func.count(CollectionSchedule.id),
            func.count(CollectionSchedule.id).filter(CollectionSchedule.status == ScheduleStatus.COMPLETED),
            func.coalesce(func.sum(CollectionSchedule.total_weight), 0),
            func.avg(CollectionSchedule.duration),
        )
        .where(CollectionSchedule.scheduled_date >= since, CollectionSchedule.is_active.is_(True))
        .group_by(CollectionSchedule.zone)
    )
    collection = {row[0]: row[1:] for row in schedules.all()}

    out = []
    for entry in zones.values():
        total_schedules, completed, collected, avg_duration = collection.get(entry["zone"], (0, 0, 0, None))
        weights = entry.pop("weights")
        out.append({
            **entry,
            "total_weight": round(entry["total_weight"], 2),
            "validation_rate": round(entry["validated_products"] / entry["total_products"] * 100, 1),
            "avg_weight": round(sum(weights) / len(weights), 2) if weights else 0,
            "material_types": sorted(entry["material_types"]),
            "collection": {
                "total_schedules": total_schedules,
                "completed_schedules": completed,
                "completion_rate": round(completed / total_schedules * 100) if total_schedules else 0,
                "total_collected": collected,
                "avg_duration": avg_duration or 0,
            },
        })
    out.sort(key=lambda z: z["total_products"], reverse=True)

    return {
        "zones": out,
        "summary": {
            "total_zones": len(out),
            "most_active_zone": out[0]["zone"] if out else None,
            "total_products": sum(z["total_products"] for z in out),
            "total_weight": round(sum(z["total_weight"] for z in out), 2),
        },
    }
