"""
Security utilities: JWT bearer tokens, webhook signatures, download tokens.
"""
import hashlib
import hmac
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

DOWNLOAD_TOKEN_LENGTH = 64
_TOKEN_ALPHABET = string.ascii_letters + string.digits


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=settings.jwt_expiration_hours)
    )
    to_encode.update({"exp": expire, "iat": datetime.now(timezone.utc)})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT access token."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError as e:
        logger.warning("Invalid JWT token", error=str(e))
        return None


def generate_download_token() -> str:
    """Generate a random 64-character alphanumeric download token."""
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(DOWNLOAD_TOKEN_LENGTH))


def compute_webhook_signature(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of a raw webhook body."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_paymaya_signature(
    signature_header: Optional[str],
    body: bytes,
    secret: Optional[str] = None,
) -> bool:
    """
    Verify a PayMaya webhook signature.

    Returns True when no secret is configured (sandbox mode sends unsigned
    webhooks). With a secret configured, a missing header fails.
    """
    secret = secret if secret is not None else settings.paymaya_webhook_secret
    if not secret:
        logger.info("PayMaya webhook secret not configured, signature verification skipped")
        return True

    if not signature_header:
        return False

    expected = compute_webhook_signature(body, secret)
    return hmac.compare_digest(expected, signature_header.strip())
