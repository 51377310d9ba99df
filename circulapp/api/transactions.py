"""Routes Transactions (dons) / Donation transaction API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.api.deps import get_current_user
from circulapp.database import get_db
from circulapp.models.product import Product, ProductStatus
from circulapp.models.transaction import Transaction, TransactionStatus
from circulapp.models.user import User
from circulapp.schemas.transaction import TransactionCancel, TransactionCreate, TransactionRead
from circulapp.utils.dates import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_transaction(db: AsyncSession, transaction_id: int) -> Transaction | None:
    result = await db.execute(
        select(Transaction).where(Transaction.id == transaction_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _participant_transaction(db: AsyncSession, transaction_id: int, user: User) -> Transaction:
    transaction = await _load_transaction(db, transaction_id)
    if not transaction or not transaction.is_participant(user.id):
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


def _require_status(transaction: Transaction, *expected: TransactionStatus):
    if transaction.status not in expected:
        raise HTTPException(
            status_code=400,
            detail=f"Transaction is {transaction.status.value}, expected {' or '.join(s.value for s in expected)}",
        )


@router.post("/", response_model=TransactionRead, status_code=201)
async def create_transaction(
    data: TransactionCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Demander un produit disponible / Request an available product."""
    product = await db.get(Product, data.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.owner_id == user.id:
        raise HTTPException(status_code=400, detail="Cannot request your own product")
    if product.status != ProductStatus.AVAILABLE:
        raise HTTPException(status_code=400, detail="Product is not available")

    transaction = Transaction(
        product_id=product.id,
        donor_id=product.owner_id,
        recipient_id=user.id,
        status=TransactionStatus.PENDING,
        pickup_date=to_naive_utc(data.pickup_date),
        pickup_time=data.pickup_time,
        pickup_address=data.pickup_address or product.address,
        pickup_lat=data.pickup_lat if data.pickup_lat is not None else product.lat,
        pickup_lng=data.pickup_lng if data.pickup_lng is not None else product.lng,
        notes=data.notes,
    )
    product.status = ProductStatus.RESERVED
    db.add(transaction)
    await db.flush()

    logger.info("Transaction %s: user %s requested product %s", transaction.id, user.id, product.id)
    return await _load_transaction(db, transaction.id)


@router.get("/{transaction_id}", response_model=TransactionRead)
async def get_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Détail, participants uniquement / Detail, participants only."""
    return await _participant_transaction(db, transaction_id, user)


@router.patch("/{transaction_id}/accept", response_model=TransactionRead)
async def accept_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Le donneur accepte / Donor accepts."""
    transaction = await _participant_transaction(db, transaction_id, user)
    if transaction.donor_id != user.id:
        raise HTTPException(status_code=403, detail="Only the donor can accept")
    _require_status(transaction, TransactionStatus.PENDING)

    transaction.status = TransactionStatus.ACCEPTED
    await db.flush()
    return await _load_transaction(db, transaction_id)


@router.patch("/{transaction_id}/start", response_model=TransactionRead)
async def start_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Remise en cours / Hand-over in progress."""
    transaction = await _participant_transaction(db, transaction_id, user)
    _require_status(transaction, TransactionStatus.ACCEPTED)

    transaction.status = TransactionStatus.IN_PROGRESS
    await db.flush()
    return await _load_transaction(db, transaction_id)


@router.patch("/{transaction_id}/complete", response_model=TransactionRead)
async def complete_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Le donneur confirme la remise / Donor confirms the hand-over."""
    transaction = await _participant_transaction(db, transaction_id, user)
    if transaction.donor_id != user.id:
        raise HTTPException(status_code=403, detail="Only the donor can complete")
    _require_status(transaction, TransactionStatus.ACCEPTED, TransactionStatus.IN_PROGRESS)

    transaction.status = TransactionStatus.COMPLETED
    transaction.completed_at = utcnow()
    transaction.product.status = ProductStatus.DONATED
    transaction.donor.transactions_completed += 1
    transaction.recipient.transactions_completed += 1
    transaction.recipient.products_received += 1
    await db.flush()

    logger.info("Transaction %s completed", transaction_id)
    return await _load_transaction(db, transaction_id)


@router.patch("/{transaction_id}/cancel", response_model=TransactionRead)
async def cancel_transaction(
    transaction_id: int,
    data: TransactionCancel,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Annuler, le produit redevient disponible / Cancel, product becomes available again."""
    transaction = await _participant_transaction(db, transaction_id, user)
    _require_status(
        transaction, TransactionStatus.PENDING, TransactionStatus.ACCEPTED, TransactionStatus.IN_PROGRESS
    )

    transaction.status = TransactionStatus.CANCELLED
    transaction.cancelled_at = utcnow()
    transaction.cancellation_reason = data.reason
    if transaction.product.status == ProductStatus.RESERVED:
        transaction.product.status = ProductStatus.AVAILABLE
    await db.flush()
    return await _load_transaction(db, transaction_id)
