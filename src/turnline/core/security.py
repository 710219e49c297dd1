"""JWT helpers for the authenticated principal.

Token issuance belongs to the external identity service; this module only
decodes bearer tokens and mints tokens for tooling and tests.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import jwt

from turnline.core.settings import settings


def create_access_token(subject: str, role: str | None = None) -> str:
    """Create a JWT access token whose ``sub`` is the user id."""
    to_encode: dict[str, object] = {"sub": subject}
    if role:
        to_encode["role"] = role
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, object]:
    """Decode and verify a bearer token.

    Raises:
        jose.JWTError: If the signature or expiry is invalid.
    """
    return jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
    )
