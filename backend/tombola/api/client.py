"""HTTP transport for the Tombola game server."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import quote, urlencode

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from tombola.api.exceptions import ApiError, DecodeError, NetworkError
from tombola.api.types import (
    AssignedCardsResponse,
    Board,
    Card,
    ClientInfo,
    ClientType,
    ExtractionResponse,
    GameListResponse,
    GameStatus,
    GenerateCardsResponse,
    NewGameResponse,
    PlayersResponse,
    Pouch,
    RegisterRequest,
    RegistrationResponse,
    ScoreCard,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType
    from typing import Self

    from tombola.settings import TombolaSettings

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)

CLIENT_ID_HEADER = "X-Client-ID"


def _segment(value: str) -> str:
    return quote(value, safe="")


class TombolaApiClient:
    """Thin async wrapper over the game server's JSON endpoints.

    Attaches ``X-Client-ID`` once a client id is known and a bearer token
    whenever ``token_source`` returns one. Failures are normalized into
    NetworkError / ApiError / DecodeError. Nothing is persisted here; the
    store decides what to remember.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        token_source: Callable[[], str | None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token_source = token_source
        self._client_id: str | None = None
        self._http = httpx.AsyncClient(base_url=self._base_url, timeout=timeout, transport=transport)
        logger.info("tombola api client initialized", base_url=self._base_url)

    @classmethod
    def from_settings(
        cls,
        settings: TombolaSettings,
        *,
        token_source: Callable[[], str | None] | None = None,
    ) -> TombolaApiClient:
        return cls(settings.api_base_url, timeout=settings.request_timeout, token_source=token_source)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def client_id(self) -> str | None:
        return self._client_id

    def set_client_id(self, client_id: str | None) -> None:
        self._client_id = client_id or None

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

    def _headers(self, *, identity: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if identity and self._client_id:
            headers[CLIENT_ID_HEADER] = self._client_id
        token = self._token_source() if self._token_source is not None else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
        *,
        identity: bool = True,
    ) -> Any:  # noqa: ANN401
        """Send one request and return the parsed JSON body.

        ``identity=False`` is for bootstrap calls made before (or without) a
        client identity, such as creating a new game.
        """
        log = logger.bind(method=method, endpoint=endpoint)
        log.debug("api request")
        try:
            response = await self._http.request(method, endpoint, json=body, headers=self._headers(identity=identity))
        except httpx.RequestError as e:
            log.debug("api network error", error=str(e))
            raise NetworkError(f"Network error: Unable to connect to server at {self._base_url}") from e

        log.debug("api response", status_code=response.status_code)
        if not response.is_success:
            message = _error_message(response)
            log.debug("api error", status_code=response.status_code, message=message)
            raise ApiError(response.status_code, message)

        if response.status_code == HTTPStatus.NO_CONTENT or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Response from {endpoint} is not valid JSON") from e

    async def _fetch(
        self,
        model: type[ModelT],
        endpoint: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
        *,
        identity: bool = True,
    ) -> ModelT:
        data = await self.call(endpoint, method, body, identity=identity)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning("unexpected response shape", endpoint=endpoint, model=model.__name__, errors=e.error_count())
            raise DecodeError(f"Unexpected {model.__name__} response from {endpoint}") from e

    # -- global endpoints --

    async def list_games(self) -> GameListResponse:
        return await self._fetch(GameListResponse, "/gameslist")

    async def create_game(self) -> NewGameResponse:
        return await self._fetch(NewGameResponse, "/newgame", "POST", identity=False)

    async def get_client_by_id(self, client_id: str) -> ClientInfo:
        return await self._fetch(ClientInfo, f"/clientinfo/{_segment(client_id)}")

    async def get_client_by_name(self, name: str) -> ClientInfo:
        return await self._fetch(ClientInfo, f"/clientinfo?{urlencode({'name': name})}")

    # -- per-game endpoints --

    async def register(
        self,
        game_id: str,
        name: str,
        client_type: ClientType = ClientType.PLAYER,
        nocard: int | None = None,
        email: str | None = None,
    ) -> RegistrationResponse:
        request = RegisterRequest(name=name, client_type=client_type, nocard=nocard, email=email)
        return await self._fetch(
            RegistrationResponse,
            f"/{_segment(game_id)}/join",
            "POST",
            request.model_dump(mode="json", exclude_none=True),
        )

    async def generate_cards(self, game_id: str, count: int = 6) -> GenerateCardsResponse:
        return await self._fetch(GenerateCardsResponse, f"/{_segment(game_id)}/generatecards", "POST", {"count": count})

    async def list_assigned_cards(self, game_id: str) -> AssignedCardsResponse:
        return await self._fetch(AssignedCardsResponse, f"/{_segment(game_id)}/listassignedcards")

    async def get_assigned_card(self, game_id: str, card_id: str) -> Card:
        return await self._fetch(Card, f"/{_segment(game_id)}/getassignedcard/{_segment(card_id)}")

    async def get_board(self, game_id: str) -> Board:
        return await self._fetch(Board, f"/{_segment(game_id)}/board")

    async def get_pouch(self, game_id: str) -> Pouch:
        return await self._fetch(Pouch, f"/{_segment(game_id)}/pouch")

    async def get_score_map(self, game_id: str) -> ScoreCard:
        return await self._fetch(ScoreCard, f"/{_segment(game_id)}/scoremap")

    async def get_status(self, game_id: str) -> GameStatus:
        return await self._fetch(GameStatus, f"/{_segment(game_id)}/status")

    async def get_players(self, game_id: str) -> PlayersResponse:
        return await self._fetch(PlayersResponse, f"/{_segment(game_id)}/players")

    # -- owner-only operations (authorized by the stored client id) --

    async def extract_number(self, game_id: str) -> ExtractionResponse:
        return await self._fetch(ExtractionResponse, f"/{_segment(game_id)}/extract", "POST")

    async def dump_game(self, game_id: str) -> dict[str, Any]:
        data = await self.call(f"/{_segment(game_id)}/dumpgame", "POST")
        if not isinstance(data, dict):
            raise DecodeError(f"Unexpected dumpgame response for game {game_id}")
        return data


def _error_message(response: httpx.Response) -> str:
    """Prefer the server's ``{"error": ...}`` text over a bare status line."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), str) and payload["error"]:
        return payload["error"]
    return f"HTTP {response.status_code}"
