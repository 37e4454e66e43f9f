"""
Shared API dependencies.
"""

from http import HTTPStatus

from fastapi import Depends, Request, Response
from fastapi.responses import PlainTextResponse
from loguru import logger

from printshop.modules.session import CSRF_HEADER, begin_session
from printshop.services import ShopServices


def get_services(request: Request) -> ShopServices:
    """Services container attached to the app at startup."""
    return request.app.state.services


def get_session_token(
    request: Request,
    response: Response,
    services: ShopServices = Depends(get_services),
) -> str:
    """Session token of the caller; a new cookie is set when needed."""
    token = begin_session(request, response, services.settings)
    response.headers[CSRF_HEADER] = services.csrf.token_for(token)
    return token


def verify_csrf(
    request: Request,
    services: ShopServices = Depends(get_services),
) -> None:
    services.csrf.verify(request)


def reject(
    response: Response,
    operation: str,
    error: Exception,
    status_code: int = 400,
) -> PlainTextResponse:
    """
    Log a failed operation and build its plain-text error response.

    Cookies and headers already placed on ``response`` are kept.
    """
    logger.warning(f"{operation}: {type(error).__name__}: {error}")
    rejected = PlainTextResponse(HTTPStatus(status_code).phrase, status_code=status_code)
    rejected.headers.raw.extend(response.headers.raw)
    return rejected
