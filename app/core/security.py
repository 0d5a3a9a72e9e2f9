"""Bearer token handling.

Tokens are issued by the identity provider shared with the rest of the
occupational-health suite; this service only needs to verify them and read
the subject. ``issue_access_token`` exists for scripts and tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from app.config import settings

ACCESS_TOKEN_TYPE = "access"


def issue_access_token(
    subject: UUID | str,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """
    Sign an access token for a user.

    Args:
        subject: User ID stored in the ``sub`` claim
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES
        extra_claims: Additional claims; cannot override sub, exp, iat or type

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)

    claims = dict(extra_claims or {})
    claims.update(
        sub=str(subject),
        iat=issued_at,
        exp=issued_at + lifetime,
        type=ACCESS_TOKEN_TYPE,
    )
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Verified claims of an access token, or None if it is unusable."""
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return claims


def access_token_subject(token: str) -> UUID | None:
    """
    User ID carried by an access token.

    Args:
        token: Raw bearer credential

    Returns:
        The subject as a UUID; None when the token is invalid, expired,
        not an access token, or its subject is not a UUID
    """
    claims = decode_access_token(token)
    if claims is None:
        return None

    subject = claims.get("sub")
    if not isinstance(subject, str):
        return None
    try:
        return UUID(subject)
    except ValueError:
        return None
