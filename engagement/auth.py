from datetime import timedelta
from typing import Optional
import logging

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from engagement.config import settings
from engagement.database import get_db
from engagement.exceptions import AuthorizationError, UnauthorizedError
from engagement.models.user import User
from engagement.utils.clock import utcnow

logger = logging.getLogger(__name__)

ADMIN_ROLES = ("admin", "superadmin")


# Tokens are issued by the login service; this is used by tooling and tests
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})

    if "sub" not in to_encode:
        raise ValueError("Missing 'sub' claim (email) in token data.")

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[str]:
    """Return the ``sub`` claim (email) of a valid token, or None."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        logger.debug("Token expired")
        return None
    except JWTError as e:
        logger.debug(f"JWT decoding failed: {e}")
        return None

    email = payload.get("sub")
    if not email:
        logger.warning("Token is missing 'sub' claim")
        return None
    return email


def _token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get("access_token")
    if token:
        return token.removeprefix("Bearer ").strip()

    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return None


async def get_current_viewer_optional(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Resolve the signed-in viewer, if any.

    Missing, expired or invalid tokens all mean "anonymous viewer"; the
    tracking endpoints never reject a request because of its cookie.
    """
    token = _token_from_request(request)
    if not token:
        return None

    email = decode_access_token(token)
    if email is None:
        return None

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalars().first()
    if user is None:
        logger.warning(f"Token subject '{email}' has no user record")
        return None

    request.state.viewer_id = user.id
    return user


async def require_viewer(viewer: Optional[User] = Depends(get_current_viewer_optional)) -> User:
    """Signed-in viewer or 401 with the login URL for the client redirect."""
    if viewer is None:
        raise UnauthorizedError(login_url=settings.login_url)
    return viewer


async def require_admin(viewer: User = Depends(require_viewer)) -> User:
    if viewer.role not in ADMIN_ROLES:
        raise AuthorizationError(f"Role '{viewer.role}' does not have access to this resource.")
    return viewer
