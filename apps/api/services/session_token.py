"""Session tokens standing in for the identity provider's authenticated user."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from config import settings


SESSION_TOKEN_TYPE = "tamedachi_session"
SESSION_TOKEN_ISSUER = "tamedachi-api"


@dataclass
class SessionClaims:
    user_id: str
    email: Optional[str]
    expires_at: int


def create_session_token(
    user_id: str,
    email: Optional[str] = None,
    expires_hours: Optional[int] = None,
) -> Dict[str, Any]:
    """Sign a session token for ``user_id``."""
    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(hours=max(int(expires_hours or settings.JWT_EXPIRATION_HOURS or 24), 1))
    claims: Dict[str, Any] = {
        "sub": user_id,
        "type": SESSION_TOKEN_TYPE,
        "iss": SESSION_TOKEN_ISSUER,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    if email:
        claims["email"] = email

    return {
        "token": jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM),
        "expires_at": claims["exp"],
    }


def decode_session_token(token: str) -> SessionClaims:
    """Verify signature, expiry, issuer and token type; return the session's user."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=SESSION_TOKEN_ISSUER,
        )
    except JWTError as exc:
        raise ValueError("Invalid or expired session token.") from exc

    if str(payload.get("type", "")).strip() != SESSION_TOKEN_TYPE:
        raise ValueError("Invalid session token type.")

    user_id = str(payload.get("sub", "")).strip()
    if not user_id:
        raise ValueError("Session token missing subject.")

    return SessionClaims(
        user_id=user_id,
        email=str(payload.get("email", "")).strip() or None,
        expires_at=int(payload.get("exp", 0)),
    )
