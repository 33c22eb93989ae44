"""Calls to the Supabase auth REST API used by the magic-link endpoints."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

import httpx
import structlog

logger = structlog.get_logger()


class ProviderError(Exception):
    """The identity provider rejected a request."""

    def __init__(self, status_code: int, message: str = "identity provider request failed") -> None:
        self.status_code = status_code
        super().__init__(f"{message} ({status_code})")


class ProviderUnavailableError(ProviderError):
    """The identity provider could not be reached or answered garbage."""

    def __init__(self, message: str = "identity provider unavailable") -> None:
        super().__init__(HTTPStatus.BAD_GATEWAY, message)


class SupabaseAuthProvider:
    """Token checks, refresh and magic-link emails against ``<url>/auth/v1``.

    Holds the anon key server-side so it never reaches the client. Provider
    error bodies are logged but never returned to callers.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/auth/v1",
            headers={"apikey": anon_key},
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get_user(self, access_token: str) -> dict[str, Any]:
        return await self._request("GET", "/user", headers={"Authorization": f"Bearer {access_token}"})

    async def refresh_session(self, refresh_token: str) -> dict[str, Any]:
        """Trade a refresh token for a new session (access_token, refresh_token, user)."""
        return await self._request(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )

    async def send_magic_link(self, email: str, redirect_to: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/magiclink",
            json={"email": email, "options": {"emailRedirectTo": redirect_to}},
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.warning("identity provider unreachable", path=path, error=str(e))
            raise ProviderUnavailableError from e

        if not response.is_success:
            logger.info("identity provider rejected request", path=path, status_code=response.status_code)
            raise ProviderError(response.status_code)

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderUnavailableError("identity provider returned invalid JSON") from e
        return data if isinstance(data, dict) else {"data": data}
