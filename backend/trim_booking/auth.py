"""
Bearer token handling.

Tokens are issued by the identity service; this module only verifies
them. create_access_token exists for operators and tests.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, cast

from fastapi.security import OAuth2PasswordBearer
import jwt

from .core.config import settings
from .models.user import STAFF_ROLES

logger = logging.getLogger(__name__)

oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as described by the token claims."""

    user_id: str
    business_id: str
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def _secret_value() -> str:
    return settings.secret_key.get_secret_value()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode; expected keys are sub, business_id and role
        expires_delta: Optional expiration time delta

    Returns:
        str: The encoded JWT token
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return cast(str, jwt.encode(to_encode, _secret_value(), algorithm=settings.algorithm))


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify a token; raises jwt.PyJWTError when invalid or expired."""
    payload = jwt.decode(token, _secret_value(), algorithms=[settings.algorithm])
    return cast(Dict[str, Any], payload)


def principal_from_claims(payload: Dict[str, Any]) -> Optional[Principal]:
    user_id = payload.get("sub")
    business_id = payload.get("business_id")
    role = payload.get("role")
    if not all(isinstance(value, str) and value for value in (user_id, business_id, role)):
        logger.warning("Token payload missing required claims")
        return None
    return Principal(user_id=user_id, business_id=business_id, role=str(role).upper())
