"""Verification of sessions issued by the login service.

Login itself lives elsewhere; this module only checks the bearer token the
login service hands out and exposes ``{user_id, role}`` to the routes.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from actas_api.models.user import ROLE_ADMIN
from actas_api.settings import get_settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionUser:
    """Authenticated internal user."""

    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def decode_session_token(token: str) -> Optional[SessionUser]:
    """Return the session for a valid token, None otherwise."""
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.session_secret_key, algorithms=[settings.session_algorithm])
    except JWTError as e:
        logger.debug(f"Rejected session token: {e}")
        return None
    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        return None
    return SessionUser(user_id=user_id, role=str(claims.get("role") or "user"))


def issue_session_token(user_id: int, role: str, expires_in_hours: int = 24) -> str:
    """Mint a token the same way the login service does (CLI and tests)."""
    settings = get_settings()
    claims = {
        "sub": str(user_id),
        "role": role,
        "exp": datetime.utcnow() + timedelta(hours=expires_in_hours),
    }
    return jwt.encode(claims, settings.session_secret_key, algorithm=settings.session_algorithm)


def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Optional[SessionUser]:
    """Current session or None."""
    if not credentials or not credentials.credentials:
        return None
    return decode_session_token(credentials.credentials)


def require_session(session: Optional[SessionUser] = Depends(get_session)) -> SessionUser:
    """Current session; 401 when there is none."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="You must sign in.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session
