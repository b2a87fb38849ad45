"""Session resolution from signed JWT session tokens.

Tokens are HS256 JWTs signed with ``secrets.jwt.secret_key``. A request may
carry one either as ``Authorization: Bearer <token>`` or in the session
cookie named by ``auth.session_cookie``.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Request
from pydantic import BaseModel

from panel.config import AppSettings, get_config

logger = logging.getLogger(__name__)


class SessionIdentity(BaseModel):
    """The authenticated panel user behind a request."""
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None


class SessionResolver(ABC):
    """Resolves the current identity for a request, or ``None``."""

    @abstractmethod
    async def resolve(self, request: Request) -> Optional[SessionIdentity]:
        """Return the caller's identity, or ``None`` when unauthenticated."""


class JWTSessionResolver(SessionResolver):
    """Validates JWT session tokens from the Authorization header or cookie."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", cookie_name: str = "panel-session"):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.cookie_name = cookie_name

    @classmethod
    def from_config(cls, config: AppSettings) -> "JWTSessionResolver":
        return cls(
            secret_key=config.secrets.jwt.secret_key,
            algorithm=config.secrets.jwt.algorithm,
            cookie_name=config.auth.session_cookie,
        )

    def _extract_token(self, request: Request) -> Optional[str]:
        auth_header = request.headers.get("authorization", "")
        scheme, _, credentials = auth_header.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return request.cookies.get(self.cookie_name)

    def decode(self, token: str) -> Optional[SessionIdentity]:
        try:
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Session token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid session token: {e}")
            return None

        return SessionIdentity(
            user_id=str(claims["sub"]),
            email=claims.get("email"),
            name=claims.get("name"),
        )

    async def resolve(self, request: Request) -> Optional[SessionIdentity]:
        token = self._extract_token(request)
        if not token:
            return None
        return self.decode(token)


def issue_session_token(
    identity: SessionIdentity,
    config: Optional[AppSettings] = None,
    expires_in: Optional[timedelta] = None,
) -> str:
    """Mint a signed session token for ``identity``."""
    config = config or get_config()
    if expires_in is None:
        expires_in = timedelta(minutes=config.auth.token_expire_minutes)
    now = datetime.now(timezone.utc)
    claims = {
        "sub": identity.user_id,
        "iat": now,
        "exp": now + expires_in,
    }
    if identity.email:
        claims["email"] = identity.email
    if identity.name:
        claims["name"] = identity.name
    return jwt.encode(claims, config.secrets.jwt.secret_key, algorithm=config.secrets.jwt.algorithm)


# ---------------------------------------------------------------------------
# Singleton resolver management
# ---------------------------------------------------------------------------

_resolver: Optional[SessionResolver] = None


def get_session_resolver() -> SessionResolver:
    """Return the global SessionResolver, building the JWT one from config if unset."""
    global _resolver
    if _resolver is None:
        _resolver = JWTSessionResolver.from_config(get_config())
    return _resolver


def set_session_resolver(resolver: Optional[SessionResolver]) -> None:
    """Set (or clear) the global SessionResolver."""
    global _resolver
    _resolver = resolver


async def get_session_identity(request: Request) -> Optional[SessionIdentity]:
    """FastAPI dependency: the caller's identity, or ``None``."""
    return await get_session_resolver().resolve(request)
