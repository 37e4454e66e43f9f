"""
Printshop Backend Application.

Two FastAPI applications share one set of services:
- the storefront API (cart, checkout) on the site port
- the Stripe webhook receiver on its own port
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse, PlainTextResponse
from loguru import logger

from printshop.api import router as site_router, webhook_router
from printshop.core.config import Settings, get_settings
from printshop.core.logging import setup_logging
from printshop.modules.session import CSRF_HEADER
from printshop.services import ShopServices


def _lifespan(name: str):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        services: ShopServices = app.state.services
        owns_services = app.state.owns_services

        if owns_services:
            setup_logging(services.settings)
            await services.start()
        logger.info(f"{name} started")

        yield

        logger.info(f"Shutting down {name}...")
        if owns_services:
            await services.stop()

    return lifespan


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> PlainTextResponse:
    """Malformed or incomplete request bodies are a plain 400."""
    logger.warning(f"Invalid request body for {request.url.path}: {exc.errors()}")
    return PlainTextResponse("Bad Request", status_code=400)


def _base_app(
    title: str,
    services: ShopServices,
    owns_services: bool,
    **kwargs,
) -> FastAPI:
    settings = services.settings
    app = FastAPI(
        title=title,
        version=settings.app_version,
        default_response_class=ORJSONResponse,
        lifespan=_lifespan(title),
        **kwargs,
    )
    app.state.services = services
    app.state.owns_services = owns_services
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.get("/health", tags=["System"])
    async def health_check() -> dict:
        """Health check endpoint for monitoring."""
        return {
            "status": "healthy",
            "version": settings.app_version,
        }

    return app


def create_app(
    services: ShopServices | None = None,
    owns_services: bool = True,
) -> FastAPI:
    """
    Storefront application.

    Args:
        services: Shared services; built from the environment if omitted
        owns_services: Start and stop ``services`` with the app lifespan
    """
    services = services or ShopServices(get_settings())
    settings = services.settings

    app = _base_app(
        settings.app_name,
        services,
        owns_services,
        description="""
    Printshop storefront API

    - **Cart**: session cookie based shopping cart
    - **Checkout**: Stripe payment intents sized to cart + shipping
    """,
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CSRF_HEADER],
    )

    app.include_router(site_router, prefix=settings.api_prefix)
    return app


def create_webhook_app(
    services: ShopServices | None = None,
    owns_services: bool = True,
) -> FastAPI:
    """Stripe webhook receiver application. No CORS, no CSRF, no docs."""
    services = services or ShopServices(get_settings())

    app = _base_app(
        f"{services.settings.app_name} Webhooks",
        services,
        owns_services,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.include_router(webhook_router)
    return app


async def serve(settings: Settings) -> None:
    """Run both listeners in this process until shutdown."""
    services = ShopServices(settings)
    await services.start()

    servers = [
        uvicorn.Server(
            uvicorn.Config(
                application,
                host=settings.host,
                port=port,
                log_config=None,
            )
        )
        for application, port in (
            (create_app(services, owns_services=False), settings.port),
            (create_webhook_app(services, owns_services=False), settings.webhook_port),
        )
    ]

    logger.info(
        f"Serving storefront on {settings.host}:{settings.port}, "
        f"webhooks on {settings.host}:{settings.webhook_port}"
    )
    try:
        await asyncio.gather(*(server.serve() for server in servers))
    finally:
        await services.stop()


def run() -> None:
    """Console entry point."""
    settings = get_settings()
    setup_logging(settings)
    asyncio.run(serve(settings))


app = create_app()
webhook_app = create_webhook_app()


if __name__ == "__main__":
    run()
