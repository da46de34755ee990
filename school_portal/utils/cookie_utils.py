from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from fastapi import Response

from school_portal.core.config import get_cookie_settings, get_jwt_settings, settings
from school_portal.core.logging import logger


class CookieConfig:
    """Cookie names shared with the browser client"""
    ACADEMIC_YEAR_KEY = "active_academic_year_id"
    SEMESTER_KEY = "active_semester_id"
    # Selection cookies outlive the session so the UI remembers them
    SELECTION_MAX_AGE_DAYS = 180


def set_auth_cookie(response: Response, token: str) -> None:
    """Store the access token in an httponly cookie that expires with the token"""
    expire_hours = get_jwt_settings()["access_token_expire_hours"]
    expiration = datetime.now(timezone.utc) + timedelta(hours=expire_hours)

    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        expires=expiration,
        max_age=expire_hours * 60 * 60,
        **get_cookie_settings()
    )
    logger.debug(f"Auth cookie set, expires {expiration.isoformat()}")


def clear_auth_cookie(response: Response) -> None:
    cookie_settings = get_cookie_settings()
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        path=cookie_settings["path"],
        secure=cookie_settings["secure"],
        httponly=cookie_settings["httponly"],
        samesite=cookie_settings["samesite"],
    )


def _selection_cookie_settings() -> Dict[str, Any]:
    # Readable by the client so the UI can show the current selection
    cookie_settings = get_cookie_settings()
    cookie_settings["httponly"] = False
    return cookie_settings


def set_active_academic_year_cookie(response: Response, academic_year_id: int) -> None:
    response.set_cookie(
        key=CookieConfig.ACADEMIC_YEAR_KEY,
        value=str(academic_year_id),
        max_age=CookieConfig.SELECTION_MAX_AGE_DAYS * 24 * 60 * 60,
        **_selection_cookie_settings()
    )


def set_active_semester_cookie(response: Response, semester_id: int) -> None:
    response.set_cookie(
        key=CookieConfig.SEMESTER_KEY,
        value=str(semester_id),
        max_age=CookieConfig.SELECTION_MAX_AGE_DAYS * 24 * 60 * 60,
        **_selection_cookie_settings()
    )
