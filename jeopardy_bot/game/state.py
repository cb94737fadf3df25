# jeopardy_bot/game/state.py

from dataclasses import dataclass, field
from typing import Optional, Set

from jeopardy_bot.game.constants import ROUND_DOUBLE, ROUND_FINAL, ROUND_JEOPARDY
from jeopardy_bot.game.models import Board, Clue, FinalClue
from jeopardy_bot.utils.matching import (
    Verdict,
    WagerInput,
    apply_score,
    evaluate,
    evaluate_final,
    pass_verdict,
    resolve_final_wager,
    resolve_wager,
)

PHASE_BOARD = "board"
PHASE_WAGER = "wager"
PHASE_CLUE = "clue"
PHASE_FINAL_WAGER = "final_wager"
PHASE_FINAL_CLUE = "final_clue"
PHASE_OVER = "over"


class InvalidMove(Exception):
    """The player asked for something the current phase doesn't allow."""


@dataclass
class GameState:
    player_id: int
    board: Board
    score: int
    phase: str
    in_progress: bool

    answered: Set[int] = field(default_factory=set)
    current_clue: Optional[Clue] = None
    current_category: Optional[str] = None
    wager: Optional[int] = None

    final_clue: Optional[FinalClue] = None
    final_wager: Optional[int] = None

    # Bumped every time a clue opens so stale timers can tell they're stale
    clue_token: int = 0

    @classmethod
    def new(cls, player_id: int, board: Board) -> "GameState":
        return cls(
            player_id=player_id,
            board=board,
            score=0,
            phase=PHASE_BOARD,
            in_progress=True,
        )

    @property
    def show_id(self) -> int:
        return self.board.show_id

    @property
    def round_name(self) -> str:
        if self.phase in (PHASE_FINAL_WAGER, PHASE_FINAL_CLUE) or self.final_clue is not None:
            return ROUND_FINAL
        return self.board.round_name

    def next_round_name(self) -> Optional[str]:
        if self.round_name == ROUND_JEOPARDY:
            return ROUND_DOUBLE
        if self.round_name == ROUND_DOUBLE:
            return ROUND_FINAL
        return None

    def remaining_clues(self) -> int:
        return sum(1 for clue_id in self.board.clue_ids if clue_id not in self.answered)

    def round_complete(self) -> bool:
        return self.remaining_clues() == 0

    # -----------------------------
    # BOARD ROUNDS
    # -----------------------------
    def find_clue(self, category_number: int, value: int) -> Clue:
        """Look up a clue by 1-based category number and dollar value."""
        if not 1 <= category_number <= len(self.board.categories):
            raise InvalidMove(f"Pick a category between 1 and {len(self.board.categories)}.")

        category = self.board.categories[category_number - 1]
        clue = category.clue_for_value(value)
        if clue is None:
            raise InvalidMove(f"There's no ${value} clue in **{category.title}**.")
        if clue.id in self.answered:
            raise InvalidMove("That clue is already gone.")
        return clue

    def open_clue(self, category_number: int, value: int) -> Clue:
        if self.phase != PHASE_BOARD:
            raise InvalidMove("Finish the current clue first.")

        clue = self.find_clue(category_number, value)
        self.current_clue = clue
        self.current_category = self.board.categories[category_number - 1].title
        self.wager = None
        self.clue_token += 1
        self.phase = PHASE_WAGER if clue.is_daily_double else PHASE_CLUE
        return clue

    def place_wager(self, requested: WagerInput) -> int:
        if self.phase != PHASE_WAGER or self.current_clue is None:
            raise InvalidMove("There's no daily double to wager on.")

        self.wager = resolve_wager(requested, self.current_clue.value, self.score)
        self.phase = PHASE_CLUE
        return self.wager

    def max_wager(self) -> int:
        if self.current_clue is None:
            return self.score
        return max(self.score, self.current_clue.value)

    def answer(self, text: Optional[str]) -> Verdict:
        if self.phase != PHASE_CLUE or self.current_clue is None:
            raise InvalidMove("There's no clue open right now.")

        verdict = evaluate(text, self.current_clue, self.wager)
        self._close_clue(verdict)
        return verdict

    def pass_clue(self) -> Verdict:
        if self.phase not in (PHASE_CLUE, PHASE_WAGER) or self.current_clue is None:
            raise InvalidMove("There's no clue open right now.")

        verdict = pass_verdict(self.current_clue, self.wager)
        self._close_clue(verdict)
        return verdict

    def apply_verdict(self, verdict: Verdict) -> int:
        self.score = apply_score(self.score, verdict.score_delta)
        return self.score

    def _close_clue(self, verdict: Verdict) -> None:
        self.apply_verdict(verdict)
        self.answered.add(self.current_clue.id)
        self.current_clue = None
        self.current_category = None
        self.wager = None
        self.phase = PHASE_BOARD

    def load_round(self, board: Board) -> None:
        if self.phase != PHASE_BOARD:
            raise InvalidMove("Finish the current clue first.")
        self.board = board
        self.answered.clear()

    # -----------------------------
    # FINAL ROUND
    # -----------------------------
    def start_final(self, final_clue: FinalClue) -> None:
        if self.phase != PHASE_BOARD:
            raise InvalidMove("Finish the current clue first.")
        self.final_clue = final_clue
        self.final_wager = None
        self.clue_token += 1
        self.phase = PHASE_FINAL_WAGER

    def place_final_wager(self, requested: WagerInput) -> int:
        if self.phase != PHASE_FINAL_WAGER:
            raise InvalidMove("It's not time for the final wager.")

        self.final_wager = resolve_final_wager(requested, self.score)
        self.phase = PHASE_FINAL_CLUE
        return self.final_wager

    def answer_final(self, text: Optional[str]) -> Verdict:
        if self.phase != PHASE_FINAL_CLUE or self.final_clue is None:
            raise InvalidMove("There's no final clue open.")

        verdict = evaluate_final(text, self.final_clue, self.final_wager or 0)
        self.apply_verdict(verdict)
        self.phase = PHASE_OVER
        self.in_progress = False
        return verdict

    def end(self) -> None:
        self.in_progress = False
        self.phase = PHASE_OVER
        self.current_clue = None
