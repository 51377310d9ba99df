"""Routes administration plateforme / Platform administration routes (comuna only)."""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.api.deps import audit, pagination_params, require_admin
from circulapp.database import get_db
from circulapp.models.audit import AuditLog
from circulapp.models.collection_schedule import CollectionSchedule, ScheduleStatus
from circulapp.models.product import Product, ProductStatus
from circulapp.models.report import Report, ReportStatus, TargetType
from circulapp.models.transaction import Transaction, TransactionStatus
from circulapp.models.user import User, UserType
from circulapp.schemas.common import MessageResponse, make_pagination
from circulapp.schemas.product import ProductRead
from circulapp.schemas.user import UserRead, UserStatusUpdate
from circulapp.utils.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

OPEN_REPORT_STATUSES = (
    ReportStatus.PENDING,
    ReportStatus.REVIEWING,
    ReportStatus.INVESTIGATING,
    ReportStatus.ESCALATED,
)


async def _count_by(db: AsyncSession, column) -> dict[str, int]:
    result = await db.execute(select(column, func.count()).group_by(column))
    return {key.value: count for key, count in result.all()}


@router.get("/dashboard")
async def dashboard(db: AsyncSession = Depends(get_db), admin: User = Depends(require_admin)):
    """Vue d'ensemble de la plateforme / Platform overview."""
    week_ago = utcnow() - timedelta(days=7)
    users_by_type = await _count_by(db, User.user_type)
    new_users = await db.scalar(select(func.count(User.id)).where(User.created_at >= week_ago)) or 0
    products_by_status = await _count_by(db, Product.status)
    transactions_by_status = await _count_by(db, Transaction.status)
    open_reports = await db.scalar(
        select(func.count(Report.id)).where(Report.status.in_(OPEN_REPORT_STATUSES))
    ) or 0
    upcoming = await db.scalar(
        select(func.count(CollectionSchedule.id)).where(
            CollectionSchedule.is_active.is_(True),
            CollectionSchedule.status == ScheduleStatus.SCHEDULED,
            CollectionSchedule.scheduled_date >= utcnow(),
        )
    ) or 0
    pending_producers = await db.scalar(
        select(func.count(User.id)).where(
            User.user_type == UserType.PRODUCER, User.is_verified.is_(False), User.is_active.is_(True)
        )
    ) or 0

    return {
        "users": {"total": sum(users_by_type.values()), "by_type": users_by_type, "new_this_week": new_users},
        "products": {"total": sum(products_by_status.values()), "by_status": products_by_status},
        "transactions": {
            "total": sum(transactions_by_status.values()),
            "completed": transactions_by_status.get(TransactionStatus.COMPLETED.value, 0),
            "by_status": transactions_by_status,
        },
        "open_reports": open_reports,
        "upcoming_collections": upcoming,
        "pending_producers": pending_producers,
    }


@router.get("/users")
async def list_users(
    user_type: UserType | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Liste des utilisateurs / User list."""
    page, limit = pagination_params(page, limit)
    conditions = []
    if user_type is not None:
        conditions.append(User.user_type == user_type)
    if is_active is not None:
        conditions.append(User.is_active.is_(is_active))
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    total = await db.scalar(select(func.count(User.id)).where(*conditions)) or 0
    result = await db.execute(
        select(User).where(*conditions).order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    return {
        "users": [UserRead.model_validate(u) for u in result.scalars().all()],
        "pagination": make_pagination(page, limit, total),
    }


@router.patch("/users/{user_id}/status", response_model=UserRead)
async def update_user_status(
    user_id: int,
    data: UserStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Activer ou suspendre un compte / Activate or suspend an account."""
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot change your own status")
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user.is_active = data.is_active
    if data.is_active:
        user.deactivation_reason = None
        user.deactivated_at = None
    else:
        user.deactivation_reason = data.reason
        user.deactivated_at = utcnow()

    audit(db, "user", user.id, "ACTIVATE" if data.is_active else "SUSPEND", admin.email, data.reason)
    logger.info("Admin %s set user %s active=%s", admin.id, user.id, data.is_active)
    return user


@router.get("/products/reported")
async def reported_products(db: AsyncSession = Depends(get_db), admin: User = Depends(require_admin)):
    """Produits ayant des signalements ouverts / Products with open reports."""
    counts = await db.execute(
        select(Report.target_id, func.count(Report.id))
        .where(Report.target_type == TargetType.PRODUCT, Report.status.in_(OPEN_REPORT_STATUSES))
        .group_by(Report.target_id)
    )
    report_counts = dict(counts.all())
    if not report_counts:
        return {"products": []}

    result = await db.execute(select(Product).where(Product.id.in_(list(report_counts))))
    products = sorted(result.scalars().all(), key=lambda p: report_counts[p.id], reverse=True)
    return {
        "products": [
            {**ProductRead.model_validate(p).model_dump(mode="json"), "open_reports": report_counts[p.id]}
            for p in products
        ]
    }


@router.delete("/products/{product_id}", response_model=MessageResponse)
async def remove_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Retirer un produit (modération) / Remove a product (moderation)."""
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    product.status = ProductStatus.REMOVED
    audit(db, "product", product.id, "REMOVE", admin.email)
    return MessageResponse(message="Product removed")


@router.get("/audit")
async def list_audit_logs(
    entity_type: str | None = Query(default=None),
    entity_id: int | None = Query(default=None),
    action: str | None = Query(default=None),
    limit: int = Query(default=100, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Lister les logs d'audit / List audit logs."""
    query = select(AuditLog).order_by(AuditLog.id.desc())
    count_query = select(func.count(AuditLog.id))

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
        count_query = count_query.where(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.where(AuditLog.entity_id == entity_id)
        count_query = count_query.where(AuditLog.entity_id == entity_id)
    if action:
        query = query.where(AuditLog.action == action)
        count_query = count_query.where(AuditLog.action == action)

    total = await db.scalar(count_query) or 0
    result = await db.execute(query.offset(offset).limit(limit))
    logs = result.scalars().all()

    return {
        "total": total,
        "items": [
            {
                "id": log.id,
                "entity_type": log.entity_type,
                "entity_id": log.entity_id,
                "action": log.action,
                "changes": log.changes,
                "user": log.user,
                "timestamp": log.timestamp,
            }
            for log in logs
        ],
    }
