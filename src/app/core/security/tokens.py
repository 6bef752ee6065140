"""Bearer access tokens and hashed execution tokens.

Access tokens are minted by the identity service and only verified here;
``create_access_token`` exists for local tooling and tests. Public workflows
store the SHA-256 of their execution token in ``embedSettings`` so the
plaintext is never persisted.
"""

import secrets
from datetime import UTC, datetime, timedelta
from hashlib import sha256
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from src.app.core.config import get_settings

ACCESS_TOKEN_TYPE = "access"


def hash_token(token: str) -> str:
    return sha256(token.encode()).hexdigest()


def verify_token_hash(token: str | None, stored_hash: str) -> bool:
    """Compare ``token`` to a stored hash without leaking timing. Empty tokens never match."""
    return bool(token) and secrets.compare_digest(hash_token(token), stored_hash)  # type: ignore[arg-type]


def create_access_token(subject: str | UUID, lifetime: timedelta | None = None) -> str:
    settings = get_settings()
    lifetime = lifetime or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        "sub": str(subject),
        "type": ACCESS_TOKEN_TYPE,
        "exp": datetime.now(UTC) + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)  # type: ignore[no-any-return]


def decode_token(token: str) -> dict[str, Any] | None:
    """Verified claims of ``token``, or None when the signature or expiry is bad."""
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    return claims  # type: ignore[no-any-return]
