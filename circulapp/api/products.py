"""Routes Produits / Product API routes (catalogue, recherche géographique, images)."""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.api.deps import get_current_user, get_optional_user, pagination_params
from circulapp.config import settings
from circulapp.database import get_db
from circulapp.models.product import Product, ProductCategory, ProductCondition, ProductImage, ProductStatus
from circulapp.models.user import User, UserType
from circulapp.schemas.common import MessageResponse, make_pagination
from circulapp.schemas.product import ProductCreate, ProductList, ProductRead, ProductUpdate, ProductWithDistance
from circulapp.utils.dates import to_naive_utc
from circulapp.utils.geo import bounding_box, haversine
from circulapp.utils.uploads import read_image, store_image

logger = logging.getLogger(__name__)

router = APIRouter()


async def load_product(db: AsyncSession, product_id: int) -> Product | None:
    """Recharger un produit avec ses relations / Reload a product with its relations."""
    result = await db.execute(
        select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _owned_product(db: AsyncSession, product_id: int, user: User) -> Product:
    product = await load_product(db, product_id)
    if not product or product.owner_id != user.id or product.status == ProductStatus.REMOVED:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/", response_model=ProductList)
async def list_products(
    category: ProductCategory | None = Query(default=None),
    condition: ProductCondition | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    lat: float | None = Query(default=None, ge=-90, le=90),
    lng: float | None = Query(default=None, ge=-180, le=180),
    radius: float = Query(default=settings.DEFAULT_SEARCH_RADIUS_KM, gt=0, le=500),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Produits disponibles avec filtres / Available products with filters."""
    page, limit = pagination_params(page, limit)
    query = select(Product).where(Product.status == ProductStatus.AVAILABLE)
    if category is not None:
        query = query.where(Product.category == category)
    if condition is not None:
        query = query.where(Product.condition == condition)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Product.title.ilike(pattern), Product.description.ilike(pattern)))

    if lat is not None and lng is not None:
        # Pré-filtre boîte englobante puis distance exacte / Bounding box prefilter then exact distance
        lat_min, lat_max, lng_min, lng_max = bounding_box(lat, lng, radius)
        query = query.where(
            Product.lat.between(lat_min, lat_max),
            Product.lng.between(lng_min, lng_max),
        )
        result = await db.execute(query)
        matches = []
        for product in result.scalars().all():
            distance = haversine(lat, lng, product.lat, product.lng)
            if distance <= radius:
                matches.append((distance, product))
        matches.sort(key=lambda m: m[0])

        total = len(matches)
        window = matches[(page - 1) * limit: page * limit]
        products = [
            ProductWithDistance.model_validate(p).model_copy(update={"distance_km": round(d, 2)})
            for d, p in window
        ]
        return ProductList(products=products, pagination=make_pagination(page, limit, total))

    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0
    result = await db.execute(query.order_by(Product.created_at.desc()).offset((page - 1) * limit).limit(limit))
    products = [ProductWithDistance.model_validate(p) for p in result.scalars().all()]
    return ProductList(products=products, pagination=make_pagination(page, limit, total))


@router.get("/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    """Détail produit, compte les vues / Product detail, counts views."""
    product = await load_product(db, product_id)
    if not product or product.status == ProductStatus.REMOVED:
        raise HTTPException(status_code=404, detail="Product not found")

    if viewer is None or viewer.id != product.owner_id:
        product.views += 1
    return product


@router.post("/", response_model=ProductRead, status_code=201)
async def create_product(
    data: ProductCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Publier un produit / List a product."""
    payload = data.model_dump()
    payload["available_from"] = to_naive_utc(data.available_from)
    payload["available_until"] = to_naive_utc(data.available_until)

    # Producteur non vérifié : brouillon jusqu'à approbation / Unverified producer: draft until approval
    if user.user_type == UserType.PRODUCER and not user.is_verified:
        initial_status = ProductStatus.DRAFT
    else:
        initial_status = ProductStatus.AVAILABLE

    product = Product(**payload, owner_id=user.id, status=initial_status)
    db.add(product)
    user.products_offered += 1
    await db.flush()

    logger.info("Product %s created by user %s (%s)", product.id, user.id, initial_status.value)
    return await load_product(db, product.id)


@router.put("/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Modifier son produit / Update own product."""
    product = await _owned_product(db, product_id, user)
    updates = data.model_dump(exclude_unset=True)
    for key in ("available_from", "available_until"):
        if key in updates:
            updates[key] = to_naive_utc(updates[key])
    for key, value in updates.items():
        setattr(product, key, value)
    await db.flush()
    return await load_product(db, product.id)


@router.post("/{product_id}/images", response_model=ProductRead, status_code=201)
async def upload_product_image(
    product_id: int,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Ajouter une image / Add an image."""
    product = await _owned_product(db, product_id, user)
    if len(product.images) >= settings.MAX_IMAGES_PER_PRODUCT:
        raise HTTPException(status_code=400, detail=f"Max {settings.MAX_IMAGES_PER_PRODUCT} images per product")

    content, mime = await read_image(file)
    url, stored_name = store_image(content, mime, f"products/{product_id}")
    db.add(ProductImage(
        product_id=product_id,
        url=url,
        filename=file.filename or stored_name,
        mime_type=mime,
        file_size=len(content),
    ))
    await db.flush()
    return await load_product(db, product_id)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Retirer son produit (suppression douce) / Remove own product (soft delete)."""
    product = await _owned_product(db, product_id, user)
    product.status = ProductStatus.REMOVED
    return MessageResponse(message="Product removed")
