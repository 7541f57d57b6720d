"""Password hashing, bearer tokens and the request authorization dependency.

Tokens are stateless HS256 JWTs carrying ``userId`` and ``email``. They expire
one hour after issuance and there is no refresh flow: clients log in again.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Annotated, Any

import jwt
from fastapi import Depends, Header, Request
from passlib.context import CryptContext

from picvault.config import DEFAULT_BCRYPT_ROUNDS, Config
from picvault.core.errors import AuthenticationError
from picvault.dependencies import get_config

logger = logging.getLogger(__name__)

ACCESS_TOKEN_EXPIRE_MINUTES = 60
JWT_ALGORITHM = "HS256"


@lru_cache(maxsize=None)
def _pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def get_password_hash(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    return _pwd_context(rounds).hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    try:
        return _pwd_context(DEFAULT_BCRYPT_ROUNDS).verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unrecognized or corrupt hash
        return False


@dataclass(frozen=True)
class TokenIdentity:
    """Identity decoded from a verified bearer token."""
    user_id: str
    email: str


class TokenError(Exception):
    """Token verification failure. ``reason`` is for logs only."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def create_access_token(
    user_id: str,
    email: str,
    secret: str,
    expires_delta: timedelta | None = None,
    issued_at: datetime | None = None,
) -> str:
    """Sign a token for ``user_id``/``email``.

    Args:
        user_id: The user's id.
        email: The user's email.
        secret: HMAC signing secret.
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
        issued_at: Issuance time, defaults to now.

    Returns:
        The encoded JWT.
    """
    if not secret:
        raise ValueError("jwt_secret_blank")
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    now = issued_at or datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "userId": user_id,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str | None, secret: str) -> TokenIdentity:
    """Verify a token and return the identity it carries.

    Raises:
        TokenError: If the token is absent, expired, tampered with or malformed.
    """
    if not token:
        raise TokenError("missing")
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("expired")
    except jwt.InvalidSignatureError:
        raise TokenError("invalid_signature")
    except jwt.InvalidTokenError:
        raise TokenError("malformed")

    user_id = payload.get("userId")
    email = payload.get("email")
    if not user_id or not email:
        raise TokenError("missing_claims")
    return TokenIdentity(user_id=str(user_id), email=str(email))


def _extract_token(authorization: str | None) -> str | None:
    """Accept ``Bearer <jwt>`` as well as a bare ``<jwt>``."""
    if not authorization:
        return None
    value = authorization.strip()
    scheme, _, rest = value.partition(" ")
    if rest and scheme.lower() == "bearer":
        return rest.strip() or None
    return value


def get_current_identity(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
    cfg: Config = Depends(get_config),
) -> TokenIdentity:
    """FastAPI dependency guarding every protected route.

    The failure response is the same for every reason so clients cannot tell
    a missing token from an expired or forged one.
    """
    try:
        identity = decode_access_token(_extract_token(authorization), cfg.JWT_SECRET)
    except TokenError as exc:
        logger.info("auth rejected path=%s reason=%s", request.url.path, exc.reason)
        raise AuthenticationError("Authentication failed!")

    request.state.identity = identity
    return identity
