"""
Session Identity - opaque per-browser session tokens carried in a cookie.

A token is 32 bytes from the OS CSPRNG, URL-safe base64 encoded with
padding (44 characters). Nothing is stored here; a token only reaches the
database once its owner mutates a cart.
"""

import base64
import re
import secrets
from datetime import timedelta

from fastapi import Request, Response
from loguru import logger

from printshop.core.config import Settings, settings as default_settings
from printshop.core.errors import SessionTokenError

TOKEN_BYTES = 32
TOKEN_LENGTH = 44

_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{43}=$")


def new_session_token() -> str:
    """
    Generate a fresh session token.

    Raises:
        SessionTokenError: If the system random source is unavailable.
    """
    try:
        raw = secrets.token_bytes(TOKEN_BYTES)
    except (OSError, NotImplementedError) as e:
        logger.error(f"Session token generation failed: {e}")
        raise SessionTokenError("could not generate session token") from e
    return base64.urlsafe_b64encode(raw).decode("ascii")


def is_well_formed(token: str | None) -> bool:
    """True for a 44-character URL-safe base64 encoding of 32 bytes."""
    return bool(token) and len(token) == TOKEN_LENGTH and bool(_TOKEN_RE.match(token))


def set_session_cookie(
    response: Response,
    token: str,
    settings: Settings = default_settings,
) -> None:
    """Attach the session cookie to a response."""
    max_age = int(timedelta(days=settings.session_ttl_days).total_seconds())
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=max_age,
        expires=max_age,
        samesite="strict",
        secure=settings.session_cookie_secure,
    )


def begin_session(
    request: Request,
    response: Response,
    settings: Settings = default_settings,
) -> str:
    """
    Return the caller's session token, issuing one if needed.

    A missing or malformed cookie is replaced with a new token set on
    ``response``; a well-formed one is returned unchanged.
    """
    current = request.cookies.get(settings.session_cookie_name)
    if is_well_formed(current):
        return current

    token = new_session_token()
    set_session_cookie(response, token, settings)
    logger.info("New session cookie issued")
    return token
