"""JWT verification for tokens issued by the identity provider.

LearnHub does not authenticate users itself. Bearer tokens are minted
elsewhere and carry ``sub``, ``email`` and ``role`` claims; this module only
verifies them. ``create_access_token`` produces compatible tokens for local
tooling and tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from learnhub.auth.permissions import parse_role
from learnhub.config.settings import get_settings


REQUIRED_CLAIMS = ("sub", "email", "role")


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token.

    Args:
        data: Claims, typically {"sub": user_id, "email": email, "role": role}
        expires_delta: Token lifetime (default from settings)

    Returns:
        Encoded JWT string with ``exp``, ``iat`` and ``type`` set
    """
    settings = get_settings()
    now = datetime.now(UTC)

    to_encode = data.copy()
    to_encode.update(
        {
            "exp": now
            + (
                expires_delta
                or timedelta(minutes=settings.auth_access_token_expire_minutes)
            ),
            "iat": now,
            "type": "access",
        }
    )
    if settings.auth_audience and "aud" not in to_encode:
        to_encode["aud"] = settings.auth_audience

    return jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates the signature, expiry, audience (when configured), the token
    type and the presence of the identity claims. The ``role`` claim is
    normalised to its lower-case value.

    Raises:
        JWTError: If the token is invalid, expired, or lacks claims
    """
    settings = get_settings()

    options = {"verify_aud": settings.auth_audience is not None}
    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
        audience=settings.auth_audience,
        options=options,
    )

    if payload.get("type", "access") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)

    missing = [claim for claim in REQUIRED_CLAIMS if not payload.get(claim)]
    if missing:
        msg = f"Token missing claims: {', '.join(missing)}"
        raise JWTError(msg)

    role = parse_role(payload["role"])
    if role is None:
        msg = f"Unknown role: {payload['role']}"
        raise JWTError(msg)
    payload["role"] = role.value

    return payload
