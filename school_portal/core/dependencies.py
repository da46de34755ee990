from typing import List

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_portal.core.config import settings
from school_portal.core.database import get_db
from school_portal.core.errors import AuthenticationError, TokenError
from school_portal.core.logging import logger
from school_portal.core.security import verify_token
from school_portal.models.user import User
from school_portal.schemas.auth.tokens import TokenClaims


def extract_token_candidates(request: Request) -> List[str]:
    """Bearer header first, then the auth cookie"""
    candidates = []

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip().strip('"')
        if token:
            candidates.append(token)

    cookie_token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if cookie_token and cookie_token.strip():
        candidates.append(cookie_token.strip().strip('"'))

    return candidates


def _verify_candidates(request: Request) -> TokenClaims:
    candidates = extract_token_candidates(request)
    if not candidates:
        raise TokenError("No token provided")

    for token in candidates:
        try:
            return verify_token(token)
        except TokenError:
            continue

    logger.warning(f"Rejected credentials on {request.method} {request.url.path}")
    raise TokenError("Invalid token")


async def get_current_claims(request: Request, db: AsyncSession = Depends(get_db)) -> TokenClaims:
    """
    Resolve the requester's claim set.

    The first candidate credential that verifies wins; a stale header does not
    shadow a valid cookie. The account behind the token must still exist and
    be active.
    """
    claims = _verify_candidates(request)

    is_active = await db.scalar(select(User.is_active).where(User.id == claims.user_id))
    if is_active is None:
        logger.warning(f"Token presented for unknown user {claims.user_id}")
        raise AuthenticationError("User not found")
    if not is_active:
        logger.warning(f"Token presented for inactive user {claims.user_id}")
        raise AuthenticationError("Account is inactive")

    return claims
