"""Authentication dependencies for API user scoping."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.user import User
from services.session_token import decode_session_token


auth_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    user_id: str
    email: Optional[str] = None


async def get_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
) -> AuthContext:
    """Resolve authenticated user from Bearer session token."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Unauthorized. Please log in.")

    try:
        claims = decode_session_token(credentials.credentials)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Authentication failed. Please log in again.") from exc

    return AuthContext(user_id=claims.user_id, email=claims.email)


async def ensure_local_user(db: AsyncSession, auth: AuthContext) -> User:
    """Mirror the identity provider's user locally so pets can reference it."""
    result = await db.execute(select(User).where(User.id == auth.user_id))
    user = result.scalar_one_or_none()
    if user:
        return user

    db.add(User(id=auth.user_id, email=auth.email))
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request inserted the same user first.
        await db.rollback()
    result = await db.execute(select(User).where(User.id == auth.user_id))
    return result.scalar_one()
