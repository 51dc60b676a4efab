import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from kollector.core.config import settings
from kollector.core.exceptions import ForbiddenError, UnauthorizedError
from kollector.models.user import ApplicationUser
from kollector.services.database import get_db, utcnow

logger = logging.getLogger(__name__)

ACT_AS_HEADER = "X-Admin-Act-As"
ACT_AS_QUERY_PARAM = "userId"

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user: ApplicationUser, expires_delta: Optional[timedelta] = None) -> str:
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "jti": str(uuid.uuid4()),
        "googleSub": user.google_sub,
        "exp": expire,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected access token: {e}")
        raise UnauthorizedError("Could not validate credentials")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> ApplicationUser:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    payload = decode_access_token(credentials.credentials)
    try:
        user_id = uuid.UUID(payload.get("sub", ""))
    except ValueError:
        raise UnauthorizedError("Could not validate credentials")

    user = await db.get(ApplicationUser, user_id)
    if user is None:
        raise UnauthorizedError("User no longer exists")
    return user


async def get_acting_user_id(
    request: Request,
    current_user: ApplicationUser = Depends(get_current_user)
) -> uuid.UUID:
    """Id of the user whose data the request works on.

    Admins may act on behalf of another user through the X-Admin-Act-As header
    or the userId query parameter; everyone else always acts as themselves.
    """
    if current_user.is_admin:
        requested = request.headers.get(ACT_AS_HEADER) or request.query_params.get(ACT_AS_QUERY_PARAM)
        if requested:
            try:
                return uuid.UUID(requested)
            except ValueError:
                logger.warning(f"Ignoring malformed act-as user id '{requested}'")
    return current_user.id


async def require_admin(current_user: ApplicationUser = Depends(get_current_user)) -> ApplicationUser:
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user
