"""Auth endpoints: login configuration, magic-link issuance, token verification, page guard."""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote, urlencode

import structlog
from starlette.responses import JSONResponse, RedirectResponse, Response

from web.auth.provider import ProviderError, ProviderUnavailableError

if TYPE_CHECKING:
    from starlette.requests import Request

    from web.auth.provider import SupabaseAuthProvider
    from web.server.settings import WebServerSettings

logger = structlog.get_logger()

# Cookie the browser sets after login: JSON {access_token, refresh_token, expires_at}, URI-encoded.
AUTH_COOKIE = "supabase-auth-token"


async def _parse_json_body(request: Request) -> dict[str, Any] | None:
    """Parse JSON body from request. Return None on failure."""
    try:
        body = await request.json()
    except (ValueError, json.JSONDecodeError):  # fmt: skip
        return None
    if not isinstance(body, dict):
        return None
    return body


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _provider(request: Request) -> SupabaseAuthProvider | None:
    return request.app.state.auth_provider


def _redirect_home(**params: str) -> RedirectResponse:
    return RedirectResponse(f"/?{urlencode(params)}", status_code=HTTPStatus.FOUND)


def _redirect_with_tokens(access_token: str, refresh_token: str | None) -> RedirectResponse:
    """Hand tokens to the client in the URL fragment, where the server never sees them again."""
    fragment = urlencode({"access_token": access_token, "refresh_token": refresh_token or ""})
    return RedirectResponse(f"/?success=true#{fragment}", status_code=HTTPStatus.FOUND)


async def auth_config(request: Request) -> JSONResponse:
    settings: WebServerSettings = request.app.state.settings
    return JSONResponse({"authEnabled": settings.auth_enabled})


async def send_magic_link(request: Request) -> JSONResponse:
    body = await _parse_json_body(request)
    email = body.get("email") if body is not None else None
    if not email or not isinstance(email, str):
        return _error("Email is required", HTTPStatus.BAD_REQUEST)

    provider = _provider(request)
    if provider is None:
        return _error("Authentication not configured", HTTPStatus.NOT_IMPLEMENTED)

    redirect_to = f"{str(request.base_url).rstrip('/')}/magic-link"
    try:
        data = await provider.send_magic_link(email, redirect_to)
    except ProviderUnavailableError:
        return _error("Internal server error", HTTPStatus.INTERNAL_SERVER_ERROR)
    except ProviderError as e:
        return _error("Failed to send magic link", e.status_code)

    logger.info("magic link sent", redirect_to=redirect_to)
    return JSONResponse({"success": True, "data": data})


async def verify_token(request: Request) -> JSONResponse:
    body = await _parse_json_body(request)
    if body is None:
        return _error("Invalid JSON body", HTTPStatus.BAD_REQUEST)
    access_token = body.get("access_token")
    refresh_token = body.get("refresh_token") or None
    if not access_token or not isinstance(access_token, str):
        return _error("Access token is required", HTTPStatus.BAD_REQUEST)

    provider = _provider(request)
    if provider is None:
        return _error("Authentication not configured", HTTPStatus.NOT_IMPLEMENTED)

    try:
        user = await provider.get_user(access_token)
    except ProviderUnavailableError:
        return _error("Internal server error", HTTPStatus.INTERNAL_SERVER_ERROR)
    except ProviderError as e:
        refreshed = await _try_refresh(provider, refresh_token, e)
        if refreshed is None:
            return _error("Invalid token", HTTPStatus.UNAUTHORIZED)
        return JSONResponse(
            {
                "success": True,
                "user": refreshed.get("user"),
                "access_token": refreshed.get("access_token"),
                "refresh_token": refreshed.get("refresh_token"),
            },
        )

    return JSONResponse(
        {"success": True, "user": user, "access_token": access_token, "refresh_token": refresh_token},
    )


async def verify_redirect(request: Request) -> Response:
    """Link-clicked variant of verify: answer with redirects instead of JSON."""
    access_token = request.query_params.get("access_token")
    refresh_token = request.query_params.get("refresh_token") or None
    if not access_token:
        return _redirect_home(error="missing_token")

    provider = _provider(request)
    if provider is None:
        return _redirect_home(error="auth_not_configured")

    try:
        await provider.get_user(access_token)
    except ProviderUnavailableError:
        return _redirect_home(error="verification_failed")
    except ProviderError as e:
        refreshed = await _try_refresh(provider, refresh_token, e)
        if refreshed is None or not refreshed.get("access_token"):
            return _redirect_home(error="invalid_token")
        return _redirect_with_tokens(refreshed["access_token"], refreshed.get("refresh_token"))

    return _redirect_with_tokens(access_token, refresh_token)


async def player_page(request: Request) -> Response:
    """Page data for the player view; redirects home unless the login cookie checks out."""
    settings: WebServerSettings = request.app.state.settings
    provider = _provider(request)
    if not settings.auth_enabled or provider is None:
        return JSONResponse({"authEnabled": False})

    raw = request.cookies.get(AUTH_COOKIE)
    if not raw:
        return _redirect_home(error="auth_required")

    try:
        token_data = json.loads(unquote(raw))
    except ValueError:
        return _expire_cookie(_redirect_home(error="auth_error"))
    access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
    if not access_token or not isinstance(access_token, str):
        return _expire_cookie(_redirect_home(error="invalid_token"))

    try:
        user = await provider.get_user(access_token)
    except ProviderUnavailableError:
        return _expire_cookie(_redirect_home(error="auth_error"))
    except ProviderError:
        return _expire_cookie(_redirect_home(error="session_expired"))

    return JSONResponse({"authEnabled": True, "user": user})


async def _try_refresh(
    provider: SupabaseAuthProvider,
    refresh_token: str | None,
    error: ProviderError,
) -> dict[str, Any] | None:
    """Retry with the refresh token when the access token was merely expired."""
    if not refresh_token or error.status_code != HTTPStatus.UNAUTHORIZED:
        return None
    try:
        return await provider.refresh_session(refresh_token)
    except ProviderError:
        logger.info("token refresh rejected")
        return None


def _expire_cookie(response: Response) -> Response:
    response.delete_cookie(AUTH_COOKIE, path="/")
    return response
