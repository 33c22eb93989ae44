"""Achievement and highlight derivation over a polled game snapshot.

Everything here is a pure function of (cards, board, score card). Nothing is
cached between polls: callers build a fresh ``Achievements`` view from the
current GameState on every tick.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from tombola.api.types import NUMBERS_PER_CARD
from tombola.logic.scoring import BINGO_SCORE

if TYPE_CHECKING:
    from tombola.api.types import Board, Card, ScoreAchievement, ScoreCard
    from tombola.session.state import GameState


class NumberHighlight(StrEnum):
    NONE = "none"
    EXTRACTED = "extracted"
    ACHIEVEMENT = "achievement"
    LATEST = "latest"
    ACHIEVEMENT_LATEST = "achievement-latest"


@dataclass(frozen=True)
class CardAchievement:
    score: int
    text: str


@dataclass(frozen=True)
class PlayerAchievements:
    score: int
    lines: list[int]
    bingo: bool


def extracted_set(board: Board) -> frozenset[int]:
    return frozenset(board.numbers)


def latest_number(board: Board) -> int | None:
    """Most recently extracted number, or None before the first extraction."""
    return board.numbers[-1] if board.numbers else None


def _all_extracted(cells: Iterable[int | None], extracted: Collection[int]) -> bool:
    numbers = [cell for cell in cells if cell is not None]
    return bool(numbers) and all(n in extracted for n in numbers)


def card_score(card: Card, extracted: Collection[int]) -> int:
    return sum(1 for n in card.numbers if n in extracted)


def card_lines(card: Card, extracted: Collection[int]) -> list[int]:
    """1-based indices of rows whose numbers have all been extracted."""
    return [index for index, row in enumerate(card.card_data, start=1) if _all_extracted(row, extracted)]


def card_columns(card: Card, extracted: Collection[int]) -> list[int]:
    """1-based indices of columns holding at least one number, all extracted.

    Columns span the padded row width, so fully empty columns never count.
    """
    return [
        index
        for index, column in enumerate(zip(*card.card_data, strict=True), start=1)
        if _all_extracted(column, extracted)
    ]


def is_bingo(card: Card, extracted: Collection[int]) -> bool:
    numbers = card.numbers
    return len(numbers) == NUMBERS_PER_CARD and all(n in extracted for n in numbers)


def _published_record(score_card: ScoreCard, card_id: str) -> ScoreAchievement | None:
    """This card's record at the currently published level.

    Only the published level is consulted. A card that reached "2 in line"
    shows nothing once the game has published "5 in line" elsewhere.
    """
    if score_card.published_score == 0:
        return None
    for achievement in score_card.score_map.get(score_card.published_score, []):
        if achievement.card_id == card_id:
            return achievement
    return None


def highest_score_numbers(score_card: ScoreCard, card_id: str) -> list[int]:
    record = _published_record(score_card, card_id)
    return list(record.numbers) if record is not None else []


def achievement_text(score: int) -> str:
    if score == BINGO_SCORE:
        return "BINGO"
    return f"{score} in line"


def card_achievement(score_card: ScoreCard, card_id: str) -> CardAchievement | None:
    if _published_record(score_card, card_id) is None:
        return None
    published = score_card.published_score
    return CardAchievement(score=published, text=achievement_text(published))


def number_highlight(number: int, card_id: str, board: Board, score_card: ScoreCard) -> NumberHighlight:
    if number not in board.numbers:
        return NumberHighlight.NONE
    in_achievement = number in highest_score_numbers(score_card, card_id)
    is_latest = number == latest_number(board)
    if in_achievement and is_latest:
        return NumberHighlight.ACHIEVEMENT_LATEST
    if in_achievement:
        return NumberHighlight.ACHIEVEMENT
    if is_latest:
        return NumberHighlight.LATEST
    return NumberHighlight.EXTRACTED


def player_achievements(cards: Iterable[Card], extracted: Collection[int]) -> PlayerAchievements:
    """Best score, union of completed rows and any-bingo across a player's cards."""
    max_score = 0
    lines: set[int] = set()
    bingo = False
    for card in cards:
        max_score = max(max_score, card_score(card, extracted))
        lines.update(card_lines(card, extracted))
        bingo = bingo or is_bingo(card, extracted)
    return PlayerAchievements(score=max_score, lines=sorted(lines), bingo=bingo)


class Achievements:
    """The achievement operations bound to one GameState snapshot."""

    def __init__(self, state: GameState) -> None:
        self._cards = list(state.cards)
        self._board = state.board
        self._score_card = state.score_card
        self._extracted = extracted_set(state.board)

    def is_number_extracted(self, number: int) -> bool:
        return number in self._extracted

    def is_number_marked(self, number: int) -> bool:
        return number in self._board.marked_numbers

    def card_score(self, card: Card) -> int:
        return card_score(card, self._extracted)

    def card_lines(self, card: Card) -> list[int]:
        return card_lines(card, self._extracted)

    def card_columns(self, card: Card) -> list[int]:
        return card_columns(card, self._extracted)

    def is_bingo(self, card: Card) -> bool:
        return is_bingo(card, self._extracted)

    def highest_score_numbers(self, card_id: str) -> list[int]:
        return highest_score_numbers(self._score_card, card_id)

    def card_achievement(self, card_id: str) -> CardAchievement | None:
        return card_achievement(self._score_card, card_id)

    def number_highlight(self, number: int, card_id: str) -> NumberHighlight:
        return number_highlight(number, card_id, self._board, self._score_card)

    def player_achievements(self) -> PlayerAchievements:
        return player_achievements(self._cards, self._extracted)
