"""Routes Avis / Review API routes."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.api.deps import get_current_user, pagination_params
from circulapp.database import get_db
from circulapp.models.review import Review
from circulapp.models.transaction import Transaction, TransactionStatus
from circulapp.models.user import User
from circulapp.schemas.common import make_pagination
from circulapp.schemas.review import ReviewCreate, ReviewRead
from circulapp.services.reputation import reputation_from_ratings

router = APIRouter()


@router.post("/", response_model=ReviewRead, status_code=201)
async def create_review(
    data: ReviewCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Noter l'autre partie d'une transaction terminée / Rate the other party of a completed transaction."""
    transaction = await db.get(Transaction, data.transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    if not transaction.is_participant(user.id):
        raise HTTPException(status_code=403, detail="Not a participant of this transaction")
    if transaction.status != TransactionStatus.COMPLETED:
        raise HTTPException(status_code=400, detail="Transaction must be completed before reviewing")

    existing = await db.execute(
        select(Review.id).where(Review.transaction_id == transaction.id, Review.reviewer_id == user.id)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Review already submitted for this transaction")

    reviewee_id = transaction.recipient_id if transaction.donor_id == user.id else transaction.donor_id
    review = Review(
        transaction_id=transaction.id,
        reviewer_id=user.id,
        reviewee_id=reviewee_id,
        rating=data.rating,
        comment=data.comment,
        communication=data.communication,
        punctuality=data.punctuality,
        product_condition=data.product_condition,
    )
    db.add(review)
    await db.flush()

    # Recalcul de la réputation / Reputation recomputation
    ratings = await db.execute(select(Review.rating).where(Review.reviewee_id == reviewee_id))
    reviewee = await db.get(User, reviewee_id)
    reviewee.reputation_average, reviewee.reputation_count = reputation_from_ratings(list(ratings.scalars().all()))

    result = await db.execute(
        select(Review).where(Review.id == review.id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


@router.get("/user/{user_id}")
async def user_reviews(
    user_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Avis reçus par un utilisateur / Reviews received by a user."""
    page, limit = pagination_params(page, limit)
    total = await db.scalar(select(func.count(Review.id)).where(Review.reviewee_id == user_id)) or 0
    result = await db.execute(
        select(Review).where(Review.reviewee_id == user_id)
        .order_by(Review.created_at.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    return {
        "reviews": [ReviewRead.model_validate(r) for r in result.scalars().all()],
        "pagination": make_pagination(page, limit, total),
    }
