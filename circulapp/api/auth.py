"""
Routes d'authentification / Authentication routes.
Inscription, login, refresh token, profil utilisateur.
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.api.deps import audit, get_current_user
from circulapp.config import settings
from circulapp.database import get_db
from circulapp.models.user import User, UserType
from circulapp.rate_limit import limiter
from circulapp.schemas.auth import AuthResponse, LoginRequest, RefreshRequest, RegisterRequest, TokenResponse
from circulapp.schemas.user import UserRead
from circulapp.utils.auth import create_access_token, create_refresh_token, decode_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> str:
    """Extraire l'IP client / Extract client IP (supports X-Forwarded-For behind proxy)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _tokens(user: User) -> dict:
    return {
        "access_token": create_access_token(user.id),
        "refresh_token": create_refresh_token(user.id),
    }


@router.post("/register", response_model=AuthResponse, status_code=201)
@limiter.limit(settings.RATE_LIMIT_REGISTER)
async def register(request: Request, data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Inscription particulier ou producteur / Individual or producer registration."""
    email = data.email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = User(
        name=data.name,
        email=email,
        hashed_password=hash_password(data.password),
        phone=data.phone,
        address=data.address,
        lat=data.lat,
        lng=data.lng,
        city=data.city,
        province=data.province,
        user_type=UserType(data.user_type),
    )
    db.add(user)
    await db.flush()

    audit(db, "auth", user.id, "REGISTER", email, json.dumps({"ip": _client_ip(request), "type": data.user_type}))
    logger.info("User registered: %s (%s)", email, data.user_type)

    return AuthResponse(user=UserRead.model_validate(user), **_tokens(user))


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def login(request: Request, data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Connexion par identifiants / Login with credentials."""
    email = data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    ip = _client_ip(request)

    if user is None or not verify_password(data.password, user.hashed_password):
        # Journal de tentative échouée / Log failed login attempt
        audit(db, "auth", 0, "LOGIN_FAILED", email, json.dumps({"ip": ip}))
        await db.commit()
        logger.warning("Failed login for %s from %s", email, ip)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not user.is_active:
        audit(db, "auth", user.id, "LOGIN_DISABLED", email, json.dumps({"ip": ip}))
        await db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account disabled")

    audit(db, "auth", user.id, "LOGIN", email, json.dumps({"ip": ip}))

    return AuthResponse(user=UserRead.model_validate(user), **_tokens(user))


@router.post("/refresh", response_model=TokenResponse)
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Rafraîchir les tokens / Refresh tokens."""
    payload = decode_token(data.refresh_token)
    if payload is None or payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    result = await db.execute(select(User).where(User.id == int(payload["sub"])))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    return TokenResponse(**_tokens(user))


@router.get("/me", response_model=UserRead)
async def me(user: User = Depends(get_current_user)):
    """Profil de l'utilisateur connecté / Current user profile."""
    return user
