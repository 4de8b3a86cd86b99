"""
Security Utilities.

Password hashing, JWT access tokens and TOTP two-factor helpers.
"""

from datetime import timedelta
from typing import Any

import bcrypt
import pyotp
from jose import JWTError, jwt

from eshop.backend.core.config import get_app_config, get_settings
from eshop.backend.core.exceptions import AuthenticationError
from eshop.backend.core.logging import get_logger
from eshop.backend.core.utils import utc_now

logger = get_logger(__name__)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against its bcrypt hash. A missing or malformed hash never matches."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a bcrypt hash")
        return False


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data to encode (sub, role, email)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    settings = get_settings()
    jwt_config = get_app_config().security.jwt
    to_encode = data.copy()

    if expires_delta:
        expire = utc_now() + expires_delta
    else:
        expire = utc_now() + timedelta(minutes=jwt_config.access_token_expire_minutes)

    to_encode.update({"exp": expire, "type": "access", "aud": jwt_config.audience})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=jwt_config.algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Raises:
        AuthenticationError: If token is invalid, expired or not an access token
    """
    settings = get_settings()
    jwt_config = get_app_config().security.jwt
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[jwt_config.algorithm],
            audience=jwt_config.audience,
        )
    except JWTError as e:
        logger.warning("Token decode failed", extra={"error": str(e)})
        raise AuthenticationError("Invalid or expired token") from e

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid or expired token")
    return payload


def generate_totp_secret() -> str:
    """New random base32 TOTP secret."""
    return pyotp.random_base32()


def build_totp_uri(secret: str, account: str) -> str:
    """otpauth:// provisioning URI for authenticator apps."""
    issuer = get_app_config().security.totp.issuer
    return pyotp.TOTP(secret).provisioning_uri(name=account, issuer_name=issuer)


def verify_totp(secret: str | None, code: str | None) -> bool:
    """Check a 6-digit TOTP code, allowing the configured clock drift window."""
    if not secret or not code:
        return False
    window = get_app_config().security.totp.valid_window
    return pyotp.TOTP(secret).verify(code.strip(), valid_window=window)
