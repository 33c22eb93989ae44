"""Response and request shapes of the Tombola game server API.

Every body the client receives is validated into one of these models before
it reaches the store, so the achievement engine never sees a half-shaped card
or score map.
"""

from enum import StrEnum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

CARD_ROWS = 3
NUMBERS_PER_ROW = 5
NUMBERS_PER_CARD = CARD_ROWS * NUMBERS_PER_ROW  # 15, a full card is "bingo"


class ClientType(StrEnum):
    PLAYER = "player"
    ADMIN = "admin"
    VIEWER = "viewer"


class Card(BaseModel, frozen=True):
    """A player's card: 3 rows of equal width, 5 numbers each, None elsewhere."""

    card_id: str
    card_data: list[list[int | None]]

    @model_validator(mode="after")
    def _validate_grid(self) -> Self:
        if len(self.card_data) != CARD_ROWS:
            raise ValueError(f"card must have {CARD_ROWS} rows, got {len(self.card_data)}")
        widths = {len(row) for row in self.card_data}
        if len(widths) != 1:
            raise ValueError("card rows must all have the same width")
        for index, row in enumerate(self.card_data, start=1):
            filled = sum(1 for cell in row if cell is not None)
            if filled != NUMBERS_PER_ROW:
                raise ValueError(f"card row {index} must hold {NUMBERS_PER_ROW} numbers, got {filled}")
        return self

    @property
    def numbers(self) -> list[int]:
        """Non-null cells in row-major order."""
        return [cell for row in self.card_data for cell in row if cell is not None]


class CardAssignment(BaseModel, frozen=True):
    card_id: str
    assigned_to: str


class AssignedCardsResponse(BaseModel, frozen=True):
    cards: list[CardAssignment] = Field(default_factory=list)


class Board(BaseModel, frozen=True):
    """Extracted numbers in draw order, plus the operator-marked subset."""

    numbers: list[int] = Field(default_factory=list)
    marked_numbers: list[int] = Field(default_factory=list)


class Pouch(BaseModel, frozen=True):
    numbers: list[int] = Field(default_factory=list)


class ScoreAchievement(BaseModel, frozen=True):
    client_id: str
    card_id: str
    numbers: list[int]


class ScoreCard(BaseModel, frozen=True):
    """Server-side achievements by level (2, 3, 4, 5, 15).

    Level keys arrive as JSON strings and are coerced to ints.
    """

    published_score: int = 0
    score_map: dict[int, list[ScoreAchievement]] = Field(default_factory=dict)


class GameStatus(BaseModel, frozen=True):
    status: str
    game_id: str
    created_at: str | None = None
    owner: str | None = None
    numbers_extracted: int = 0
    scorecard: int = 0
    server: str | None = None


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    client_type: ClientType = ClientType.PLAYER
    nocard: int | None = Field(default=None, ge=0)
    email: str | None = None


class RegistrationResponse(BaseModel, frozen=True):
    client_id: str
    message: str = ""


class GenerateCardsResponse(BaseModel, frozen=True):
    cards: list[Card]
    message: str = ""


class ExtractionResponse(BaseModel, frozen=True):
    success: bool
    extracted_number: int
    numbers_remaining: int
    total_extracted: int
    message: str = ""


class NewGameResponse(BaseModel, frozen=True):
    message: str = ""
    game_id: str
    created_at: str | None = None


class GameInfo(BaseModel, frozen=True):
    game_id: str
    status: str
    start_date: str | None = None
    close_date: str | None = None


class GameStatistics(BaseModel, frozen=True):
    active_games: int = 0
    closed_games: int = 0
    new_games: int = 0


class GameListResponse(BaseModel, frozen=True):
    games: list[GameInfo] = Field(default_factory=list)
    statistics: GameStatistics = Field(default_factory=GameStatistics)
    success: bool = True
    total_games: int = 0


class PlayerInfo(BaseModel, frozen=True):
    client_id: str
    client_type: str
    card_count: int = 0


class PlayersResponse(BaseModel, frozen=True):
    game_id: str
    total_players: int = 0
    total_cards: int = 0
    players: list[PlayerInfo] = Field(default_factory=list)


class ClientInfo(BaseModel, frozen=True):
    client_id: str
    name: str
    client_type: str
    registered_at: str | None = None
