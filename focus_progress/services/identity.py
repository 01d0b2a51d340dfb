"""
Identity resolver.

Credentials are an HS256 JWT whose `sub` claim is the user id, sent as
`Authorization: Bearer <token>` or in the identity cookie. Resolution
never fails: anything short of a valid token is the anonymous identity,
so progress tracking works without a login.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
from jose import JWTError, jwt

from focus_progress.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None


ANONYMOUS = Identity()


def issue_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token for user_id."""
    expire = datetime.now(tz=timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return jwt.encode(
        {"sub": user_id, "exp": expire},
        settings.SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )


def identity_from_token(token: Optional[str]) -> Identity:
    if not token:
        return ANONYMOUS
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        logger.debug("Token rejected, continuing as anonymous: %s", exc)
        return ANONYMOUS
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        logger.debug("Token has no usable subject, continuing as anonymous")
        return ANONYMOUS
    return Identity(user_id=subject.strip())


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_identity(request: Request) -> Identity:
    """FastAPI dependency: the caller's identity, or ANONYMOUS."""
    try:
        token = _bearer_token(request) or request.cookies.get(settings.IDENTITY_COOKIE_NAME)
        return identity_from_token(token)
    except Exception:  # noqa: BLE001  identity lookup must never fail a request
        logger.warning("Identity resolution failed, continuing as anonymous", exc_info=True)
        return ANONYMOUS
