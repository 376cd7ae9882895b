"""
Bearer-token verification.

End users get their tokens from the identity provider; the platform only
checks the signature and expiry and reads the user id from ``sub``.
``create_access_token`` exists for operational scripts and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from ..config import settings


class TokenData(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign ``data`` with the platform key, expiring after ``expires_delta``."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Optional[TokenData]:
    """
    Decode ``token``.

    Returns None when the signature or expiry is invalid or the token carries
    no subject.
    """
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    subject = claims.get("sub")
    if not subject:
        return None
    return TokenData(user_id=subject, email=claims.get("email"))
