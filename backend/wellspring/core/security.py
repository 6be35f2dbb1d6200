from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from ..config import get_settings
from ..models.user import Principal, TokenData

# Tokens are issued by the auth provider; there is no login route here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/v1/auth/token")


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token.

    Used by operational tooling and tests; end-user tokens come from the
    upstream auth provider.

    Args:
        data: Claims to encode, at least ``user_id``
        expires_delta: Optional lifetime; defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``

    Returns:
        str: The encoded JWT
    """
    settings = get_settings()
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> TokenData:
    """Decode a bearer token into its claims.

    Raises:
        HTTPException: 401 if the token is invalid, expired or has no ``user_id``
    """
    settings = get_settings()
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise credentials_exception

    user_id = payload.get("user_id")
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise credentials_exception
    if user_id <= 0:
        raise credentials_exception
    return TokenData(user_id=user_id, user_type=payload.get("user_type"))


async def get_current_principal(token: str = Depends(oauth2_scheme)) -> Principal:
    """The authenticated caller for this request."""
    data = verify_token(token)
    return Principal(user_id=data.user_id, tier=data.user_type or "free")
