"""Routes Utilisateurs / User API routes (profil, produits, historique, tableau de bord)."""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.api.deps import audit, get_current_user, pagination_params
from circulapp.database import get_db
from circulapp.models.product import Product, ProductStatus
from circulapp.models.transaction import Transaction, TransactionStatus
from circulapp.models.user import User
from circulapp.schemas.common import MessageResponse, make_pagination
from circulapp.schemas.product import ProductRead
from circulapp.schemas.transaction import TransactionRead
from circulapp.schemas.user import (
    ChangePasswordRequest,
    DeactivateRequest,
    ProfileResponse,
    ProfileUpdate,
    PublicProfile,
    UserRead,
    UserStats,
)
from circulapp.utils.auth import hash_password, verify_password
from circulapp.utils.dates import utcnow
from circulapp.utils.uploads import read_image, store_image

logger = logging.getLogger(__name__)

router = APIRouter()


async def _user_stats(db: AsyncSession, user_id: int) -> UserStats:
    total_products = await db.scalar(select(func.count(Product.id)).where(Product.owner_id == user_id)) or 0
    total_transactions = await db.scalar(
        select(func.count(Transaction.id)).where(
            or_(Transaction.donor_id == user_id, Transaction.recipient_id == user_id)
        )
    ) or 0
    return UserStats(total_products=total_products, total_transactions=total_transactions)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(db: AsyncSession = Depends(get_db), user: User = Depends(get_current_user)):
    """Profil avec statistiques / Profile with stats."""
    return ProfileResponse(user=UserRead.model_validate(user), stats=await _user_stats(db, user.id))


@router.put("/profile", response_model=UserRead)
async def update_profile(
    data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Modifier le profil / Update profile."""
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(user, key, value)
    await db.flush()
    return user


@router.post("/profile/avatar", response_model=UserRead)
async def upload_avatar(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Téléverser l'avatar / Upload the avatar."""
    content, mime = await read_image(file)
    url, _ = store_image(content, mime, f"avatars/{user.id}")
    user.avatar = url
    await db.flush()
    return user


@router.get("/my-products")
async def my_products(
    status: ProductStatus | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Mes produits paginés / My products, paginated."""
    page, limit = pagination_params(page, limit)
    query = select(Product).where(Product.owner_id == user.id)
    count_query = select(func.count(Product.id)).where(Product.owner_id == user.id)
    if status is not None:
        query = query.where(Product.status == status)
        count_query = count_query.where(Product.status == status)

    total = await db.scalar(count_query) or 0
    result = await db.execute(query.order_by(Product.created_at.desc()).offset((page - 1) * limit).limit(limit))
    return {
        "products": [ProductRead.model_validate(p) for p in result.scalars().all()],
        "pagination": make_pagination(page, limit, total),
    }


@router.get("/transactions")
async def my_transactions(
    type: str = Query(default="all", pattern=r"^(all|donated|received)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Historique des transactions / Transaction history."""
    page, limit = pagination_params(page, limit)
    if type == "donated":
        condition = Transaction.donor_id == user.id
    elif type == "received":
        condition = Transaction.recipient_id == user.id
    else:
        condition = or_(Transaction.donor_id == user.id, Transaction.recipient_id == user.id)

    total = await db.scalar(select(func.count(Transaction.id)).where(condition)) or 0
    result = await db.execute(
        select(Transaction).where(condition)
        .order_by(Transaction.created_at.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    return {
        "transactions": [TransactionRead.model_validate(t) for t in result.scalars().all()],
        "pagination": make_pagination(page, limit, total),
    }


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Changer le mot de passe / Change password."""
    if data.new_password != data.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    if not verify_password(data.current_password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    user.hashed_password = hash_password(data.new_password)
    audit(db, "user", user.id, "PASSWORD_CHANGE", user.email)
    return MessageResponse(message="Password updated")


@router.put("/deactivate", response_model=MessageResponse)
async def deactivate_account(
    data: DeactivateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Désactiver son compte / Deactivate own account."""
    if not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Password is incorrect")

    user.is_active = False
    user.deactivation_reason = data.reason
    user.deactivated_at = utcnow()

    # Retirer les annonces disponibles / Remove available listings
    await db.execute(
        update(Product)
        .where(Product.owner_id == user.id, Product.status == ProductStatus.AVAILABLE)
        .values(status=ProductStatus.REMOVED)
        .execution_options(synchronize_session=False)
    )
    audit(db, "user", user.id, "DEACTIVATE", user.email, data.reason)
    logger.info("User %s deactivated their account", user.id)
    return MessageResponse(message="Account deactivated")


@router.get("/dashboard-stats")
async def dashboard_stats(db: AsyncSession = Depends(get_db), user: User = Depends(get_current_user)):
    """Compteurs + transactions par mois (6 mois) / Counters + transactions per month (6 months)."""
    product_counts = await db.execute(
        select(Product.status, func.count(Product.id)).where(Product.owner_id == user.id).group_by(Product.status)
    )
    by_status = {status.value: count for status, count in product_counts.all()}

    since = utcnow() - timedelta(days=183)
    result = await db.execute(
        select(Transaction.created_at, Transaction.status).where(
            or_(Transaction.donor_id == user.id, Transaction.recipient_id == user.id),
            Transaction.created_at >= since,
        )
    )
    by_month: dict[str, dict[str, int]] = {}
    for created_at, status in result.all():
        key = created_at.strftime("%Y-%m")
        bucket = by_month.setdefault(key, {"total": 0, "completed": 0})
        bucket["total"] += 1
        if status == TransactionStatus.COMPLETED:
            bucket["completed"] += 1

    return {
        "products": {
            "total": sum(by_status.values()),
            "available": by_status.get(ProductStatus.AVAILABLE.value, 0),
            "donated": by_status.get(ProductStatus.DONATED.value, 0),
            "by_status": by_status,
        },
        "products_offered": user.products_offered,
        "products_received": user.products_received,
        "transactions_completed": user.transactions_completed,
        "reputation": {"average": user.reputation_average, "count": user.reputation_count},
        "transactions_by_month": [{"month": m, **v} for m, v in sorted(by_month.items())],
    }


@router.get("/{user_id}/public")
async def public_profile(user_id: int, db: AsyncSession = Depends(get_db)):
    """Profil public + 6 produits disponibles / Public profile + 6 available products."""
    owner = await db.get(User, user_id)
    if not owner or not owner.is_active:
        raise HTTPException(status_code=404, detail="User not found")

    result = await db.execute(
        select(Product)
        .where(Product.owner_id == user_id, Product.status == ProductStatus.AVAILABLE)
        .order_by(Product.created_at.desc())
        .limit(6)
    )
    return {
        "user": PublicProfile.model_validate(owner),
        "products": [ProductRead.model_validate(p) for p in result.scalars().all()],
    }
