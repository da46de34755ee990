# school_portal/core/security.py

import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError

from school_portal.core.config import get_jwt_settings, get_token_expires_delta, settings
from school_portal.core.errors import TokenError
from school_portal.core.logging import logger
from school_portal.schemas.auth.tokens import TokenClaims
from school_portal.schemas.enums import UserRoleEnum


class SecurityConfig:
    """Security configuration constants"""
    MIN_PASSWORD_LENGTH = 6
    MAX_PASSWORD_LENGTH = 72
    TOKEN_TYPE = "access"


pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__default_rounds=settings.BCRYPT_ROUNDS
)


def generate_token(
    user_id: Union[int, str],
    email: str,
    role: Union[UserRoleEnum, str],
    expires_hours: Optional[int] = None
) -> str:
    """Create a signed access token carrying the claim set"""
    jwt_settings = get_jwt_settings()
    now = datetime.now(timezone.utc)
    role_value = role.value if isinstance(role, UserRoleEnum) else str(role)

    to_encode: Dict[str, Any] = {
        "userId": str(user_id),
        "email": email,
        "role": role_value,
        "type": SecurityConfig.TOKEN_TYPE,
        "iat": now,
        "exp": now + get_token_expires_delta(expires_hours),
        "jti": secrets.token_urlsafe(16),
    }

    return jwt.encode(
        to_encode,
        jwt_settings["secret_key"],
        algorithm=jwt_settings["algorithm"]
    )


def verify_token(token: Optional[str]) -> TokenClaims:
    """
    Verify a bearer string and return its claim set.

    Args:
        token: raw JWT, without the ``Bearer`` prefix

    Returns:
        TokenClaims with ``user_id``, ``email`` and ``role``

    Raises:
        TokenError: if the token is absent, blank, badly signed, expired,
            of the wrong type, or missing any of the required claims
    """
    if not token or not isinstance(token, str):
        raise TokenError("No token provided")

    clean_token = token.strip()
    if clean_token == "":
        raise TokenError("No token provided")

    jwt_settings = get_jwt_settings()
    try:
        payload = jwt.decode(
            clean_token,
            jwt_settings["secret_key"],
            algorithms=[jwt_settings["algorithm"]]
        )
    except ExpiredSignatureError:
        logger.info("Token verification failed: token expired")
        raise TokenError("Token expired")
    except JWTError as e:
        logger.info(f"Token verification failed: {str(e)}")
        raise TokenError("Invalid token")

    token_type = payload.get("type")
    if token_type is not None and token_type != SecurityConfig.TOKEN_TYPE:
        raise TokenError(f"Invalid token type. Expected {SecurityConfig.TOKEN_TYPE}")

    if not payload.get("userId") or not payload.get("email") or not payload.get("role"):
        logger.info("Token verification failed: token missing required fields")
        raise TokenError("Invalid token")

    try:
        return TokenClaims.model_validate(payload)
    except PydanticValidationError:
        logger.info("Token verification failed: claims did not validate")
        raise TokenError("Invalid token")


def get_password_hash(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def is_secure_password(password: str) -> tuple[bool, Optional[str]]:
    """
    Check if a password meets the length requirements.
    Returns (is_secure, error_message)
    """
    if len(password) < SecurityConfig.MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {SecurityConfig.MIN_PASSWORD_LENGTH} characters long"

    if len(password.encode("utf-8")) > SecurityConfig.MAX_PASSWORD_LENGTH:
        return False, f"Password must not exceed {SecurityConfig.MAX_PASSWORD_LENGTH} bytes"

    return True, None
