from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from shared.logging import setup_logging
from web.auth.provider import SupabaseAuthProvider
from web.server.settings import WebServerSettings
from web.views.auth_handlers import auth_config, player_page, send_magic_link, verify_redirect, verify_token

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request


async def health(request: Request) -> JSONResponse:
    settings: WebServerSettings = request.app.state.settings
    return JSONResponse({"status": "ok", "authEnabled": settings.auth_enabled})


def create_app(
    settings: WebServerSettings | None = None,
    auth_provider: SupabaseAuthProvider | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = WebServerSettings()
    if auth_provider is None and settings.auth_enabled:
        auth_provider = SupabaseAuthProvider(
            settings.supabase_url,
            settings.supabase_anon_key,
            timeout=settings.provider_timeout,
        )

    routes = [
        Route("/health", health, methods=["GET"], name="health"),
        Route("/api/auth/config", auth_config, methods=["GET"], name="auth_config"),
        Route("/api/auth/magic-link", send_magic_link, methods=["POST"], name="send_magic_link"),
        Route("/api/auth/verify", verify_token, methods=["POST"], name="verify_token"),
        Route("/api/auth/verify", verify_redirect, methods=["GET"], name="verify_redirect"),
        Route("/player", player_page, methods=["GET"], name="player_page"),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:  # pragma: no cover
        yield
        if auth_provider is not None:
            await auth_provider.aclose()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.state.settings = settings
    app.state.auth_provider = auth_provider

    logger.info("web server ready", auth_enabled=settings.auth_enabled)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory web.server.app:get_app."""
    settings = WebServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
