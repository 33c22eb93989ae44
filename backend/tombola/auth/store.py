"""Login state for the magic-link flow, persisted under its own storage keys."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from tombola.auth.models import AuthState, AuthUser

if TYPE_CHECKING:
    from shared.storage import KeyValueStorage
    from tombola.auth.client import AuthClient

logger = structlog.get_logger()

AUTH_TOKEN_KEY = "tombola-auth-token"
AUTH_USER_KEY = "tombola-auth-user"
AUTH_REFRESH_TOKEN_KEY = "tombola-auth-refresh-token"

AUTH_KEYS = (AUTH_TOKEN_KEY, AUTH_USER_KEY, AUTH_REFRESH_TOKEN_KEY)


class AuthStore:
    """Track who is logged in and keep it across restarts.

    Starts in LOADING until check_configuration() learns whether the server
    has login enabled at all. Never touches the game session keys.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self.state = AuthState.LOADING
        self.user: AuthUser | None = None
        self.token: str | None = None
        self.refresh_token: str | None = None
        self.auth_enabled: bool | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.state == AuthState.AUTHENTICATED

    def bearer_token(self) -> str | None:
        """Token to attach to game server calls, only while authenticated."""
        return self.token if self.is_authenticated else None

    def email(self) -> str | None:
        return self.user.email if self.is_authenticated and self.user is not None else None

    def set_loading(self) -> None:
        self.state = AuthState.LOADING

    def set_authenticated(self, user: AuthUser, token: str, refresh_token: str | None = None) -> None:
        self.state = AuthState.AUTHENTICATED
        self.user = user
        self.token = token
        self.refresh_token = refresh_token
        self._storage.set_item(AUTH_TOKEN_KEY, token)
        self._storage.set_item(AUTH_USER_KEY, user.model_dump_json(exclude_none=True))
        if refresh_token:
            self._storage.set_item(AUTH_REFRESH_TOKEN_KEY, refresh_token)
        else:
            self._storage.remove_item(AUTH_REFRESH_TOKEN_KEY)
        logger.info("authenticated", email=user.email)

    def set_unauthenticated(self) -> None:
        self._forget(AuthState.UNAUTHENTICATED)

    def set_disabled(self) -> None:
        self._forget(AuthState.DISABLED)

    def set_magic_link_sent(self) -> None:
        self.state = AuthState.MAGIC_LINK_SENT

    def set_magic_link_processing(self) -> None:
        self.state = AuthState.MAGIC_LINK_PROCESSING

    def sign_out(self) -> None:
        self.set_unauthenticated()

    async def check_configuration(self, client: AuthClient) -> None:
        """Disable login unless the server says it is configured."""
        self.auth_enabled = await client.is_auth_enabled()
        if self.auth_enabled:
            self.initialize()
        else:
            self.set_disabled()

    def initialize(self, now: float | None = None) -> None:
        """Restore a stored login, dropping it if unreadable or expired."""
        token = self._storage.get_item(AUTH_TOKEN_KEY)
        user_json = self._storage.get_item(AUTH_USER_KEY)
        if not token or not user_json:
            self.set_unauthenticated()
            return

        try:
            user = AuthUser.model_validate_json(user_json)
        except ValidationError:
            logger.warning("stored auth user is unreadable, signing out")
            self.set_unauthenticated()
            return

        current = time.time() if now is None else now
        if user.exp is not None and current >= user.exp:
            logger.info("stored auth token expired", email=user.email)
            self.set_unauthenticated()
            return

        self.set_authenticated(user, token, self._storage.get_item(AUTH_REFRESH_TOKEN_KEY))

    async def process_magic_link(self, client: AuthClient, url: str) -> bool:
        """Verify a magic-link URL and log in with it; any failure logs out."""
        self.set_magic_link_processing()
        session = await client.process_magic_link_url(url)
        if session is None:
            self.set_unauthenticated()
            return False
        self.set_authenticated(session.user, session.token, session.refresh_token)
        return True

    def _forget(self, state: AuthState) -> None:
        self.state = state
        self.user = None
        self.token = None
        self.refresh_token = None
        for key in AUTH_KEYS:
            self._storage.remove_item(key)
