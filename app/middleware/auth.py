from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from app.config import get_settings
from app.errors import Forbidden
from app.schemas.schemas import RoleEnum

settings = get_settings()
bearer_scheme = HTTPBearer(auto_error=False)


class Actor(NamedTuple):
    """Verified identity of the caller, trusted verbatim by the booking core."""

    user_id: int
    role: RoleEnum


def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """Sign a JWT with the configured secret (HS256)."""
    to_encode = dict(data)
    minutes = expires_minutes or settings.access_token_expire_minutes
    to_encode.setdefault("exp", datetime.now(timezone.utc) + timedelta(minutes=minutes))
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """Decode and validate the JWT Bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


async def get_current_user(token_data: dict = Depends(get_token_payload)) -> Actor:
    """Extract (user_id, role) from the token payload."""
    try:
        user_id = int(token_data.get("sub"))
        role = RoleEnum(token_data.get("role"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    return Actor(user_id=user_id, role=role)


async def get_current_customer(actor: Actor = Depends(get_current_user)) -> Actor:
    if actor.role is not RoleEnum.customer:
        raise Forbidden("Only customers can perform this action", {"role": actor.role.value})
    return actor
