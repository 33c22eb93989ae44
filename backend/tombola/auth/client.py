"""Client for the /api/auth/* endpoints served by the web package."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlsplit

import httpx
import structlog
from pydantic import ValidationError

from tombola.auth.models import MagicLinkSession, VerifyResult

if TYPE_CHECKING:
    from types import TracebackType
    from typing import Self

logger = structlog.get_logger()


class AuthError(Exception):
    """Magic-link request could not be sent; the message is user-facing."""


def extract_tokens(url: str) -> tuple[str | None, str | None]:
    """Pull (access_token, refresh_token) out of a magic-link URL.

    The identity provider puts them in the fragment; the query string is the
    fallback format.
    """
    parts = urlsplit(url)
    for source in (parts.fragment, parts.query):
        params = parse_qs(source)
        access = params.get("access_token", [None])[0]
        if access:
            return access, params.get("refresh_token", [None])[0] or None
    return None, None


class AuthClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def is_auth_enabled(self) -> bool:
        """Ask the server whether login is configured. Any failure means no."""
        try:
            response = await self._http.get("/api/auth/config")
            if not response.is_success:
                return False
            return bool(response.json().get("authEnabled", False))
        except (httpx.RequestError, ValueError, AttributeError):  # fmt: skip
            return False

    async def send_magic_link(self, email: str) -> str:
        """Ask the server to email a magic link. Raise AuthError on failure."""
        if not await self.is_auth_enabled():
            raise AuthError("Authentication is not available on this server.")

        logger.info("sending magic link request")
        try:
            response = await self._http.post("/api/auth/magic-link", json={"email": email})
        except httpx.RequestError as e:
            raise AuthError("Cannot connect to authentication service. Please check your connection.") from e

        if response.is_success:
            return "Magic link sent successfully"

        detail = _error_text(response) or "Unknown error"
        logger.warning("magic link request failed", status_code=response.status_code)
        if response.status_code == HTTPStatus.NOT_IMPLEMENTED:
            raise AuthError("Authentication is not configured on this server.")
        if response.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
            raise AuthError(f"Server error ({response.status_code}): {detail}")
        raise AuthError(f"Authentication failed ({response.status_code}): {detail}")

    async def verify_token(self, access_token: str, refresh_token: str | None = None) -> VerifyResult:
        """Exchange tokens through the server. Never raises."""
        try:
            response = await self._http.post(
                "/api/auth/verify",
                json={"access_token": access_token, "refresh_token": refresh_token},
            )
        except httpx.RequestError:
            logger.warning("token verification network error")
            return VerifyResult(success=False, error="Network error during token verification")

        if not response.is_success:
            logger.info("token verification rejected", status_code=response.status_code)
            return VerifyResult(success=False, error=_error_text(response) or "Token verification failed")

        try:
            return VerifyResult.model_validate({**response.json(), "success": True})
        except (ValueError, TypeError, ValidationError):  # fmt: skip
            return VerifyResult(success=False, error="Unexpected token verification response")

    async def process_magic_link_url(self, url: str) -> MagicLinkSession | None:
        """Verify the tokens carried by a magic-link URL before trusting them."""
        access_token, refresh_token = extract_tokens(url)
        if access_token is None:
            logger.info("no access token in magic link url")
            return None

        verification = await self.verify_token(access_token, refresh_token)
        if not verification.success or verification.user is None or not verification.access_token:
            logger.info("magic link verification failed", error=verification.error)
            return None
        return MagicLinkSession(
            user=verification.user,
            token=verification.access_token,
            refresh_token=verification.refresh_token,
        )


def _error_text(response: httpx.Response) -> str | None:
    try:
        payload: Any = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"]
    return None
