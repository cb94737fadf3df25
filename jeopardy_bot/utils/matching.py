import math
import re
from dataclasses import dataclass
from typing import Optional, Union

from jeopardy_bot.game.constants import MIN_WAGER

# Answers are stored as questions ("what is Paris"), players mostly type bare answers
QUESTION_PREFIXES = [
    re.compile(r"^what\s+is\s+"),
    re.compile(r"^what\s+are\s+"),
    re.compile(r"^who\s+is\s+"),
    re.compile(r"^who\s+are\s+"),
    re.compile(r"^where\s+is\s+"),
    re.compile(r"^where\s+are\s+"),
    re.compile(r"^when\s+is\s+"),
    re.compile(r"^when\s+are\s+"),
    re.compile(r"^how\s+is\s+"),
    re.compile(r"^how\s+are\s+"),
    re.compile(r"^which\s+is\s+"),
    re.compile(r"^which\s+are\s+"),
]

_PUNCTUATION = re.compile(r"[^\w\s]|_")
_LEADING_INT = re.compile(r"^\s*([+-]?)(\d+)")

# Longer digit runs saturate; any wager that size is clamped anyway
_MAX_DIGITS = 18
_MAX_AMOUNT = 10 ** _MAX_DIGITS

WagerInput = Union[int, str, None]


@dataclass(frozen=True)
class Verdict:
    is_correct: bool
    score_delta: int
    effective_value: int
    passed: bool = False


def normalize(text: Optional[str]) -> str:
    """Lowercase, drop punctuation, trim, strip one leading 'what is'-style prefix."""
    if not text:
        return ""

    text = text.strip().lower()
    text = _PUNCTUATION.sub("", text).strip()

    for prefix in QUESTION_PREFIXES:
        stripped = prefix.sub("", text, count=1)
        if stripped != text:
            text = stripped.strip()
            break

    return text


def _singular(text: str) -> str:
    return text[:-1] if text.endswith("s") else text


def is_equivalent(submitted: Optional[str], canonical: Optional[str]) -> bool:
    """
    Decide whether a typed answer should count as the canonical one.

    Deliberately lenient: a wrong answer slipping through is preferred
    over rejecting a right one in a single-player game.
    """
    if not submitted or not submitted.strip():
        return False

    ua = normalize(submitted)
    ca = normalize(canonical)

    if not ua:
        return False

    # Exact match
    if ua == ca:
        return True

    # Extra words on either side ("the eiffel tower" vs "eiffel tower")
    if ca in ua or ua in ca:
        return True

    # -----------------------------
    # PLURALS
    # -----------------------------
    ua_singular = _singular(ua)
    ca_singular = _singular(ca)

    if ua_singular == ca or ua == ca_singular:
        return True
    if ua_singular == ca_singular and ua_singular:
        return True
    if ua.endswith("s") and ua[:-1] == ca:
        return True
    if ca.endswith("s") and ca[:-1] == ua:
        return True

    return False


def parse_amount(raw: WagerInput) -> Optional[int]:
    """Read an integer out of a wager message ("500", " 500 dollars"), or None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if not math.isfinite(raw):
            return None
        return int(raw)

    match = _LEADING_INT.match(str(raw))
    if not match:
        return None

    sign, digits = match.groups()
    amount = int(digits) if len(digits) <= _MAX_DIGITS else _MAX_AMOUNT
    return -amount if sign == "-" else amount


def resolve_wager(requested: WagerInput, clue_value: int, current_score: int) -> int:
    """
    Clamp a daily double wager.

    The floor is MIN_WAGER, the ceiling is the larger of the bankroll and
    the clue's face value. Unreadable input wagers the face value.
    """
    max_wager = max(current_score, clue_value)

    amount = parse_amount(requested)
    if amount is None:
        amount = clue_value

    return max(MIN_WAGER, min(amount, max_wager))


def resolve_final_wager(requested: WagerInput, current_score: int) -> int:
    """Final round wager: anything from 0 up to the current score."""
    amount = parse_amount(requested)
    if amount is None:
        return 0
    return max(0, min(amount, max(current_score, 0)))


def score_delta(is_correct: bool, effective_value: int) -> int:
    return effective_value if is_correct else -effective_value


def apply_score(score: int, delta: int) -> int:
    """Running score never drops below zero."""
    return max(0, score + delta)


def effective_value(clue, wager: Optional[int] = None) -> int:
    if clue.is_daily_double and wager is not None:
        return wager
    return clue.value


def evaluate(submitted: Optional[str], clue, wager: Optional[int] = None) -> Verdict:
    """Judge a submission against a clue and work out the score change."""
    value = effective_value(clue, wager)
    correct = is_equivalent(submitted, clue.answer)
    return Verdict(
        is_correct=correct,
        score_delta=score_delta(correct, value),
        effective_value=value,
    )


def evaluate_final(submitted: Optional[str], final_clue, wager: int) -> Verdict:
    correct = is_equivalent(submitted, final_clue.answer)
    return Verdict(
        is_correct=correct,
        score_delta=score_delta(correct, wager),
        effective_value=wager,
    )


def pass_verdict(clue, wager: Optional[int] = None) -> Verdict:
    """A pass never moves the score but still counts as not correct."""
    return Verdict(
        is_correct=False,
        score_delta=0,
        effective_value=effective_value(clue, wager),
        passed=True,
    )
