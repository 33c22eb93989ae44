from dataclasses import dataclass, field

from tombola.api.types import Board, Card, GameStatus, Pouch, ScoreCard


@dataclass
class GameState:
    """Reconciled view of one game as this client sees it.

    Owned and mutated by GameStore only. Board, pouch and score card are
    replaced wholesale on every successful poll, never edited in place.
    """

    is_connected: bool = False
    is_registered: bool = False
    client_id: str | None = None
    player_name: str = ""
    game_id: str | None = None
    cards: list[Card] = field(default_factory=list)
    board: Board = field(default_factory=Board)
    pouch: Pouch = field(default_factory=Pouch)
    score_card: ScoreCard = field(default_factory=ScoreCard)
    game_status: GameStatus | None = None
    error: str | None = None

    def clear_game_data(self) -> None:
        """Drop everything that belongs to the current game instance."""
        self.cards = []
        self.board = Board()
        self.pouch = Pouch()
        self.score_card = ScoreCard()
