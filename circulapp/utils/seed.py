"""
Seed de l'administrateur et du catalogue / Admin and catalog seeding.
Crée le compte comuna par défaut et un catalogue de matériaux de départ au premier démarrage.
Creates the default comuna account and a starter material catalog on first startup.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.config import settings
from circulapp.models.material import Material, MaterialCategory
from circulapp.models.user import User, UserType
from circulapp.utils.auth import hash_password
from circulapp.utils.dates import utcnow

logger = logging.getLogger(__name__)

STARTER_MATERIALS = [
    {
        "name": "PET bottles",
        "category": MaterialCategory.PLASTIC,
        "sub_category": "PET",
        "description": "Transparent beverage bottles",
        "compaction_instructions": "Remove caps, rinse, crush flat lengthwise",
        "recycling_value": 0.15,
        "carbon_footprint_saved": 1.5,
        "standard_weight": 0.03,
        "min_weight": 0.5,
        "max_weight": 50,
    },
    {
        "name": "Cardboard",
        "category": MaterialCategory.PAPER,
        "sub_category": "corrugated",
        "description": "Corrugated boxes and packaging cardboard",
        "compaction_instructions": "Remove tape, flatten and stack, keep dry",
        "recycling_value": 0.08,
        "carbon_footprint_saved": 0.9,
        "standard_weight": 0.5,
        "min_weight": 1,
        "max_weight": 100,
    },
    {
        "name": "Aluminium cans",
        "category": MaterialCategory.METAL,
        "sub_category": "aluminium",
        "description": "Beverage cans",
        "compaction_instructions": "Rinse and crush vertically",
        "recycling_value": 0.9,
        "carbon_footprint_saved": 9.0,
        "standard_weight": 0.015,
        "min_weight": 0.5,
        "max_weight": 30,
    },
    {
        "name": "Glass bottles",
        "category": MaterialCategory.GLASS,
        "description": "Bottles and jars, any colour",
        "compaction_instructions": "Rinse, remove lids, do not break",
        "recycling_value": 0.03,
        "carbon_footprint_saved": 0.3,
        "standard_weight": 0.4,
        "min_weight": 1,
        "max_weight": 80,
        "compaction_required": False,
    },
    {
        "name": "Textiles",
        "category": MaterialCategory.TEXTILE,
        "description": "Clothing and household fabrics",
        "compaction_instructions": "Fold and pack in closed bags",
        "recycling_value": 0.2,
        "carbon_footprint_saved": 3.6,
        "standard_weight": 0.3,
        "min_weight": 1,
        "max_weight": 40,
    },
]


async def seed_admin(session: AsyncSession) -> None:
    """Créer l'administrateur si aucun utilisateur n'existe / Create the admin if no users exist."""
    count = await session.scalar(select(func.count(User.id)))
    if count:
        logger.info("%d existing user(s), admin seed skipped", count)
        return

    session.add(User(
        name="Administrador Comuna",
        email=settings.SEED_ADMIN_EMAIL,
        hashed_password=hash_password(settings.SEED_ADMIN_PASSWORD),
        user_type=UserType.COMUNA,
        is_verified=True,
        is_active=True,
    ))
    await session.commit()
    logger.info("Admin account created: %s", settings.SEED_ADMIN_EMAIL)


async def seed_materials(session: AsyncSession) -> None:
    """Créer le catalogue de départ si vide / Create the starter catalog when empty."""
    if await session.scalar(select(func.count(Material.id))):
        return

    admin = await session.scalar(select(User).where(User.user_type == UserType.COMUNA).order_by(User.id).limit(1))
    if admin is None:
        return

    now = utcnow()
    for entry in STARTER_MATERIALS:
        session.add(Material(**entry, created_by_id=admin.id, approved_by_id=admin.id, approved_at=now))
    await session.commit()
    logger.info("Starter material catalog created (%d entries)", len(STARTER_MATERIALS))
