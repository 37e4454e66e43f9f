"""
CSRF tokens bound to the session cookie.

The token is HMAC-SHA256(secret, session token). Site responses carry it in
the ``X-CSRF-Token`` header and mutating requests must echo it back.
"""

import base64
import hashlib
import hmac

from fastapi import HTTPException, Request
from loguru import logger

from printshop.core.config import Settings
from printshop.modules.session.identity import is_well_formed

CSRF_HEADER = "X-CSRF-Token"


class CSRFProtect:
    """
    Issue and verify session-bound CSRF tokens.

    Usage:
        csrf = CSRFProtect(secret)
        response.headers[CSRF_HEADER] = csrf.token_for(session_token)
        csrf.verify(request)  # raises HTTPException(403) on mismatch
    """

    def __init__(
        self,
        secret: str,
        cookie_name: str = "session",
        enabled: bool = True,
    ) -> None:
        self.secret = secret.encode()
        self.cookie_name = cookie_name
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings: Settings) -> "CSRFProtect":
        return cls(
            secret=settings.csrf_secret_key,
            cookie_name=settings.session_cookie_name,
            enabled=settings.csrf_protect,
        )

    def token_for(self, session_token: str) -> str:
        digest = hmac.new(self.secret, session_token.encode(), hashlib.sha256).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii")

    def is_valid(self, session_token: str | None, csrf_token: str | None) -> bool:
        if not is_well_formed(session_token) or not csrf_token:
            return False
        # Constant-time comparison
        return hmac.compare_digest(self.token_for(session_token), csrf_token)

    def verify(self, request: Request) -> None:
        """Reject a mutating request whose header does not match its cookie."""
        if not self.enabled:
            return

        session_token = request.cookies.get(self.cookie_name)
        csrf_token = request.headers.get(CSRF_HEADER)
        if not self.is_valid(session_token, csrf_token):
            logger.warning(f"CSRF check failed for {request.url.path}")
            raise HTTPException(status_code=403, detail="Forbidden - CSRF token invalid")
