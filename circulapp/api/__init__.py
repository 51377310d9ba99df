"""Routes API / API routes."""

from fastapi import APIRouter

from circulapp.api import (
    admin,
    auth,
    chat,
    materials,
    municipal,
    products,
    reports,
    reviews,
    transactions,
    users,
)

api_router = APIRouter(prefix="/api")

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
api_router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
api_router.include_router(materials.router, prefix="/materials", tags=["materials"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(reports.admin_router, prefix="/municipal/reports", tags=["municipal"])
api_router.include_router(municipal.router, prefix="/municipal", tags=["municipal"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
