"""Durable cache of this profile's game identity and selected game."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from shared.storage import KeyValueStorage

logger = structlog.get_logger()

CLIENT_ID_KEY = "tombola-client-id"
USER_NAME_KEY = "tombola-user-name"
GAME_ID_KEY = "tombola-game-id"

# Keys cleared by SessionCache.clear(); the game id and the auth keys
# (tombola.auth.store) are not among them.
IDENTITY_KEYS = (CLIENT_ID_KEY, USER_NAME_KEY)


@dataclass(frozen=True)
class SessionIdentity:
    """Identity the game server issued to this profile at registration."""

    client_id: str
    display_name: str


class SessionCache:
    """Save, load and clear the session identity and the game selection.

    The identity and the game id have independent lifecycles: a player can
    move to another game without logging out, and logging out keeps the
    last selected game.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    def save(self, identity: SessionIdentity) -> None:
        self._storage.set_item(CLIENT_ID_KEY, identity.client_id)
        self._storage.set_item(USER_NAME_KEY, identity.display_name)
        logger.debug("session identity saved", client_id=identity.client_id)

    def load(self) -> SessionIdentity | None:
        """Return the stored identity, or None unless both halves are present."""
        client_id = self._storage.get_item(CLIENT_ID_KEY)
        display_name = self._storage.get_item(USER_NAME_KEY)
        if not client_id or not display_name:
            return None
        return SessionIdentity(client_id=client_id, display_name=display_name)

    def clear(self) -> None:
        for key in IDENTITY_KEYS:
            self._storage.remove_item(key)
        logger.debug("session identity cleared")

    def forget_client_id(self) -> None:
        """Drop the client id but keep the name for the next registration."""
        self._storage.remove_item(CLIENT_ID_KEY)
        logger.debug("session client id forgotten")

    def load_user_name(self) -> str | None:
        return self._storage.get_item(USER_NAME_KEY) or None

    def save_game_id(self, game_id: str) -> None:
        self._storage.set_item(GAME_ID_KEY, game_id)

    def load_game_id(self) -> str | None:
        return self._storage.get_item(GAME_ID_KEY) or None

    def clear_game_id(self) -> None:
        self._storage.remove_item(GAME_ID_KEY)
