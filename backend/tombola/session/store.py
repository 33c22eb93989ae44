"""Reconciled game-state store.

GameStore is the only writer of GameState. Two kinds of input reach it: the
poll loop (``refresh``) and explicit user actions (connect, register, card
loading, game selection, logout). Every action catches TombolaError and
records its message in ``state.error`` instead of raising to the caller.

Refresh results are tagged with the game id and a selection epoch at issue
time. The epoch moves on every set_game/reset/game change, and a result
whose tag is no longer current when it arrives is dropped.
"""

from __future__ import annotations

import asyncio
import dataclasses
from typing import TYPE_CHECKING, Any

import structlog

from tombola.api.exceptions import PreconditionError, TombolaError
from tombola.logic.achievements import Achievements
from tombola.session.credentials import SessionIdentity
from tombola.session.names import ClientNameCache
from tombola.session.state import GameState

if TYPE_CHECKING:
    from collections.abc import Callable

    from tombola.api.client import TombolaApiClient
    from tombola.api.types import (
        Card,
        ExtractionResponse,
        GameListResponse,
        GameStatus,
        PlayersResponse,
    )
    from tombola.session.credentials import SessionCache

logger = structlog.get_logger()

DEFAULT_CARD_COUNT = 6
GAME_CHANGED_MESSAGE = "New game started. Please register again to continue playing."

# (game id, selection epoch) captured when a request is issued.
RequestTag = tuple[str, int]


class GameStore:
    def __init__(
        self,
        api: TombolaApiClient,
        credentials: SessionCache,
        *,
        user_email: Callable[[], str | None] | None = None,
    ) -> None:
        self._api = api
        self._credentials = credentials
        self._user_email = user_email
        self._state = GameState()
        self._names = ClientNameCache()
        self._epoch = 0
        self._previous_player_name = ""

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def names(self) -> ClientNameCache:
        return self._names

    @property
    def previous_player_name(self) -> str:
        """Last name registered with, kept across game changes for re-registration."""
        return self._previous_player_name

    # -- selection and lifecycle --

    def restore(self) -> None:
        """Reload the persisted game selection and identity.

        A restored identity counts as registered after the next successful
        connect().
        """
        game_id = self._credentials.load_game_id()
        if game_id:
            self._state.game_id = game_id
        identity = self._credentials.load()
        if identity is not None:
            self._adopt_identity(identity)
        else:
            self._previous_player_name = self._credentials.load_user_name() or ""
        logger.info("session restored", game_id=game_id, client_id=self._state.client_id)

    def set_game(self, game_id: str) -> None:
        """Select a game and drop everything cached for the previous one.

        The session identity is kept but counts as registered again only after
        the next successful connect(). The name cache is always cleared, even
        when game_id is the current selection.
        """
        previous = self._state.game_id
        self._select_game(game_id)
        self._state.is_registered = False
        self._state.game_status = None
        self._state.clear_game_data()
        if self._state.client_id and self._state.player_name:
            self._names.remember(self._state.client_id, self._state.player_name)
        logger.info("game selected", game_id=game_id, previous_game_id=previous)

    def reset(self) -> None:
        """Log out: forget the identity and return to the empty initial state."""
        self._credentials.clear()
        self._api.set_client_id(None)
        fresh = GameState()
        for f in dataclasses.fields(GameState):
            setattr(self._state, f.name, getattr(fresh, f.name))
        self._names.clear()
        self._epoch += 1
        logger.info("session reset")

    def clear_error(self) -> None:
        self._state.error = None

    # -- connection and registration --

    async def connect(self) -> bool:
        game_id = self._state.game_id
        try:
            game_id = self._require_game_id()
            status = await self._api.get_status(game_id)
        except TombolaError as e:
            self._state.is_connected = False
            self._fail("connect", e)
            return False

        self._state.game_status = status
        self._state.is_connected = True
        self._state.error = None
        logger.info("connected", game_id=game_id, status=status.status)

        if self._state.client_id and not self._state.is_registered:
            self._state.is_registered = True
            await self.load_cards()
        return True

    async def register(self, name: str, card_count: int = DEFAULT_CARD_COUNT) -> bool:
        """Join the selected game and load the cards the server assigns."""
        try:
            if not self._state.is_connected:
                raise PreconditionError("Connect to a game before registering")
            game_id = self._require_game_id()
            name = name.strip()
            if not name:
                raise PreconditionError("Player name must not be empty")
            if card_count < 0:
                raise PreconditionError("Card count must not be negative")
            email = self._user_email() if self._user_email is not None else None
            response = await self._api.register(game_id, name, nocard=card_count, email=email)
        except TombolaError as e:
            self._fail("register", e)
            return False

        identity = SessionIdentity(client_id=response.client_id, display_name=name)
        self._credentials.save(identity)
        self._adopt_identity(identity)
        self._state.is_registered = True
        self._state.error = None
        logger.info("registered", game_id=game_id, client_id=response.client_id, requested_cards=card_count)

        await self.load_cards()
        return True

    # -- cards --

    async def load_cards(self) -> None:
        """Replace ``cards`` with the server's current assignments.

        Does nothing unless registered. Cards are fetched one by one; any
        failure leaves the previously loaded cards in place.
        """
        if not self._state.is_registered:
            return
        epoch = self._epoch
        try:
            game_id = self._require_game_id()
            cards = await self._fetch_assigned_cards(game_id)
        except TombolaError as e:
            self._fail("load_cards", e)
            return
        if epoch != self._epoch:
            logger.info("discarding cards for a superseded game", game_id=game_id)
            return
        self._state.cards = cards
        self._state.error = None
        logger.info("cards loaded", game_id=game_id, count=len(cards))

    async def generate_cards(self, count: int) -> bool:
        if not self._state.is_registered:
            return False
        epoch = self._epoch
        try:
            game_id = self._require_game_id()
            response = await self._api.generate_cards(game_id, count)
        except TombolaError as e:
            self._fail("generate_cards", e)
            return False
        if epoch != self._epoch:
            return False
        self._state.cards = list(response.cards)
        self._state.error = None
        logger.info("cards generated", game_id=game_id, count=len(response.cards))
        return True

    async def _fetch_assigned_cards(self, game_id: str) -> list[Card]:
        assignments = await self._api.list_assigned_cards(game_id)
        return [await self._api.get_assigned_card(game_id, a.card_id) for a in assignments.cards]

    # -- polling --

    async def refresh(self) -> None:
        """Fetch status, board, pouch and score map and apply them together.

        A status carrying another game id is a game change: nothing fetched
        is applied, registration-scoped state is reset and the new game is
        adopted.
        """
        if not self._state.is_connected:
            return
        try:
            game_id = self._require_game_id()
        except PreconditionError as e:
            self._fail("refresh", e)
            return

        tag: RequestTag = (game_id, self._epoch)
        try:
            status, board, pouch, score_card = await asyncio.gather(
                self._api.get_status(game_id),
                self._api.get_board(game_id),
                self._api.get_pouch(game_id),
                self._api.get_score_map(game_id),
            )
        except TombolaError as e:
            if self._is_current(tag):
                self._fail("refresh", e)
            return

        if not self._is_current(tag):
            logger.debug("discarding stale refresh", game_id=game_id, epoch=tag[1], current_epoch=self._epoch)
            return

        if status.game_id != game_id:
            self._handle_game_change(status)
            return

        self._state.game_status = status
        self._state.board = board
        self._state.pouch = pouch
        self._state.score_card = score_card
        self._state.error = None

    def _handle_game_change(self, status: GameStatus) -> None:
        previous = self._state.game_id
        self._state.is_registered = False
        self._state.client_id = None
        self._state.clear_game_data()
        self._api.set_client_id(None)
        self._credentials.forget_client_id()
        self._select_game(status.game_id)
        self._state.game_status = status
        self._state.error = GAME_CHANGED_MESSAGE
        logger.info("game changed, registration reset", previous_game_id=previous, game_id=status.game_id)

    # -- game management and owner operations --

    async def create_game(self) -> str | None:
        """Create a new game on the server and select it."""
        try:
            response = await self._api.create_game()
        except TombolaError as e:
            self._fail("create_game", e)
            return None
        self.set_game(response.game_id)
        self._state.error = None
        return response.game_id

    async def list_games(self) -> GameListResponse | None:
        try:
            return await self._api.list_games()
        except TombolaError as e:
            self._fail("list_games", e)
            return None

    async def list_players(self) -> PlayersResponse | None:
        try:
            return await self._api.get_players(self._require_game_id())
        except TombolaError as e:
            self._fail("list_players", e)
            return None

    async def extract_number(self) -> ExtractionResponse | None:
        """Draw the next number. The server only allows the game's owner."""
        try:
            game_id = self._require_owner_game_id()
            return await self._api.extract_number(game_id)
        except TombolaError as e:
            self._fail("extract_number", e)
            return None

    async def dump_game(self) -> dict[str, Any] | None:
        try:
            game_id = self._require_owner_game_id()
            return await self._api.dump_game(game_id)
        except TombolaError as e:
            self._fail("dump_game", e)
            return None

    # -- names --

    def display_name(self, client_id: str) -> str:
        return self._names.name_for(client_id)

    async def lookup_client_name(self, client_id: str) -> str:
        """Resolve a client's real name, falling back to its placeholder."""
        if self._names.known(client_id):
            return self._names.name_for(client_id)
        epoch = self._epoch
        try:
            info = await self._api.get_client_by_id(client_id)
        except TombolaError as e:
            logger.debug("client name lookup failed", client_id=client_id, error=str(e))
            return self._names.name_for(client_id)
        if epoch == self._epoch:
            self._names.remember(client_id, info.name)
        return info.name

    # -- derived views --

    def achievements(self) -> Achievements:
        return Achievements(self._state)

    def is_number_extracted(self, number: int) -> bool:
        return number in self._state.board.numbers

    def is_number_marked(self, number: int) -> bool:
        return number in self._state.board.marked_numbers

    # -- private helpers --

    def _select_game(self, game_id: str) -> None:
        self._state.game_id = game_id
        self._credentials.save_game_id(game_id)
        self._names.clear()
        self._epoch += 1

    def _adopt_identity(self, identity: SessionIdentity) -> None:
        self._state.client_id = identity.client_id
        self._state.player_name = identity.display_name
        self._previous_player_name = identity.display_name
        self._names.remember(identity.client_id, identity.display_name)
        self._api.set_client_id(identity.client_id)

    def _is_current(self, tag: RequestTag) -> bool:
        return tag == (self._state.game_id, self._epoch)

    def _require_game_id(self) -> str:
        if not self._state.game_id:
            raise PreconditionError("No game selected. Choose a game first.")
        return self._state.game_id

    def _require_owner_game_id(self) -> str:
        game_id = self._require_game_id()
        if not self._state.client_id:
            raise PreconditionError("Owner operations need a registered identity")
        return game_id

    def _fail(self, action: str, error: TombolaError) -> None:
        self._state.error = str(error)
        logger.warning("store action failed", action=action, error=str(error), game_id=self._state.game_id)
