"""
Session Module - browser identity.

Features:
- Session token issue/validation via cookie
- Session-bound CSRF tokens
"""

from printshop.modules.session.csrf import CSRF_HEADER, CSRFProtect
from printshop.modules.session.identity import (
    begin_session,
    is_well_formed,
    new_session_token,
)

__all__ = [
    "CSRF_HEADER",
    "CSRFProtect",
    "begin_session",
    "is_well_formed",
    "new_session_token",
]
