"""
Dépendances d'authentification et d'autorisation / Authentication and authorization dependencies.
Injectées dans les routes via Depends().
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.config import settings
from circulapp.database import get_db
from circulapp.models.audit import AuditLog
from circulapp.models.user import User, UserType
from circulapp.utils.auth import decode_token
from circulapp.utils.dates import utcnow

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def _user_from_token(token: str, db: AsyncSession) -> User | None:
    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        return None
    result = await db.execute(select(User).where(User.id == int(payload["sub"])))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extraire et valider l'utilisateur depuis le JWT / Extract and validate user from JWT."""
    user = await _user_from_token(credentials.credentials, db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token or inactive user")
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_security),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Utilisateur si un token valide est fourni / User when a valid token is given."""
    if credentials is None:
        return None
    return await _user_from_token(credentials.credentials, db)


def require_user_type(*user_types: UserType):
    """Factory de dépendance qui vérifie le type d'utilisateur / Dependency factory that checks the user type."""

    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.user_type not in user_types:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied for this user type",
            )
        return user

    return _check


require_admin = require_user_type(UserType.COMUNA)


def pagination_params(page: int = 1, limit: int = settings.DEFAULT_PAGE_SIZE) -> tuple[int, int]:
    """Page et taille bornées / Bounded page and size."""
    page = max(page, 1)
    limit = min(max(limit, 1), settings.MAX_PAGE_SIZE)
    return page, limit


def audit(db: AsyncSession, entity_type: str, entity_id: int, action: str, user: str | None, changes: str | None = None):
    """Ajouter une entrée d'audit à la session / Add an audit entry to the session."""
    db.add(AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        changes=changes,
        user=user,
        timestamp=utcnow().isoformat(timespec="seconds"),
    ))
