# jeopardy_bot/game/models.py

from dataclasses import dataclass, field
from typing import List, Optional

from jeopardy_bot.game.constants import FIRST_SEASON_YEAR, SHOWS_PER_YEAR


@dataclass(frozen=True)
class Clue:
    id: int
    question: str
    answer: str
    value: int
    row_index: int
    is_daily_double: bool = False


@dataclass
class Category:
    title: str
    clues: List[Clue] = field(default_factory=list)

    def clue_for_value(self, value: int) -> Optional[Clue]:
        for clue in self.clues:
            if clue.value == value:
                return clue
        return None


@dataclass
class Board:
    show_id: int
    round_name: str
    categories: List[Category]
    show_number: Optional[int] = None
    approx_year: Optional[int] = None

    @property
    def clue_ids(self) -> List[int]:
        return [clue.id for cat in self.categories for clue in cat.clues]


@dataclass(frozen=True)
class FinalClue:
    id: int
    question: str
    answer: str
    category: str


def approx_year(show_number: Optional[int]) -> Optional[int]:
    """Rough air year from the show number."""
    if not show_number:
        return None
    return FIRST_SEASON_YEAR + (show_number - 1) // SHOWS_PER_YEAR
