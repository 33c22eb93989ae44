"""Catalogue of the score levels the game server publishes."""

from dataclasses import dataclass

UNKNOWN_SCORE_COLOR = "#6c757d"


@dataclass(frozen=True)
class ScoreInfo:
    label: str
    description: str
    emoji: str
    color: str


SCORE_MAPPING: dict[int, ScoreInfo] = {
    2: ScoreInfo(label="2 in Line", description="2 numbers in a line", emoji="📍", color="#17a2b8"),
    3: ScoreInfo(label="3 in Line", description="3 numbers in a line", emoji="📌", color="#28a745"),
    4: ScoreInfo(label="4 in Line", description="4 numbers in a line", emoji="🎯", color="#ffc107"),
    5: ScoreInfo(label="5 in Line", description="5 numbers in a line (Full Line)", emoji="🏆", color="#fd7e14"),
    15: ScoreInfo(label="BINGO!!!", description="Full card completion", emoji="🎉", color="#dc3545"),
}

SCORE_LEVELS: tuple[int, ...] = tuple(sorted(SCORE_MAPPING))
MAJOR_SCORES = frozenset({5, 15})
BINGO_SCORE = 15


def get_score_info(score: int) -> ScoreInfo | None:
    return SCORE_MAPPING.get(score)


def get_score_text(score: int) -> str:
    info = get_score_info(score)
    if info is None:
        return f"Score {score}"
    return f"{info.emoji} {info.label}"


def get_score_description(score: int) -> str:
    info = get_score_info(score)
    if info is None:
        return f"Achievement level {score}"
    return info.description


def get_score_color(score: int) -> str:
    info = get_score_info(score)
    return info.color if info is not None else UNKNOWN_SCORE_COLOR


def get_all_score_levels() -> list[int]:
    return list(SCORE_LEVELS)


def is_major_achievement(score: int) -> bool:
    return score in MAJOR_SCORES


def is_bingo_score(score: int) -> bool:
    return score == BINGO_SCORE


def get_next_score_level(current_score: int) -> int | None:
    """First level above current_score, or None once bingo is reached."""
    return next((level for level in SCORE_LEVELS if level > current_score), None)
