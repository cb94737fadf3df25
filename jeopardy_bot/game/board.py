# jeopardy_bot/game/board.py

import re
from typing import Optional, Set, Tuple

from jeopardy_bot.game.constants import ROUND_TITLES
from jeopardy_bot.game.models import Board, Clue, FinalClue
from jeopardy_bot.utils.matching import Verdict

# "3 400", "3 for 400", "3 $400", "3 for $400"
_PICK_RE = re.compile(r"^\s*(\d+)\s+(?:for\s+)?\$?(\d+)\s*$", re.IGNORECASE)

EMPTY_SLOT = "·"


def parse_pick(text: str) -> Optional[Tuple[int, int]]:
    """Read a board pick typed as chat, e.g. '2 for 600' -> (2, 600)."""
    match = _PICK_RE.match(text or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def format_money(amount: int) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,}"


def render_board(board: Board, answered: Set[int], score: int) -> str:
    """Text board: one line per category, answered slots blanked out."""
    title = ROUND_TITLES.get(board.round_name, board.round_name)
    header = f"📺 **{title}**"
    if board.show_number:
        header += f"  ·  Show #{board.show_number}"
        if board.approx_year:
            header += f" (~{board.approx_year})"

    lines = [header, ""]
    for i, category in enumerate(board.categories, start=1):
        slots = []
        for clue in category.clues:
            if clue.id in answered:
                slots.append(EMPTY_SLOT)
            else:
                slots.append(f"${clue.value}")
        lines.append(f"**{i}. {category.title}** — {' '.join(slots) or EMPTY_SLOT}")

    lines.append("")
    lines.append(f"💰 Score: **{format_money(score)}**")
    lines.append("Pick with `/pick` or type `<category> <value>`, e.g. `2 400`.")
    return "\n".join(lines)


def render_clue(category: str, clue: Clue, wager: Optional[int] = None) -> str:
    value = wager if wager is not None else clue.value
    return (
        f"❓ **{category}** for **{format_money(value)}**\n"
        f"> {clue.question}\n\n"
        f"Type your answer, or `/pass`."
    )


def render_daily_double(category: str, score: int, max_wager: int) -> str:
    return (
        f"🎉 **DAILY DOUBLE!** in **{category}**\n"
        f"Current score: **{format_money(score)}**. "
        f"Type your wager (maximum {format_money(max_wager)})."
    )


def render_verdict(verdict: Verdict, canonical: str, score: int) -> str:
    if verdict.is_correct:
        msg = f"✅ **Correct!** You earned {format_money(verdict.effective_value)}."
    elif verdict.passed:
        msg = f"⏭️ **Passed.** The correct answer: **{canonical}**."
    else:
        msg = (
            f"❌ **Incorrect!** The correct answer: **{canonical}**.\n"
            f"You lost {format_money(verdict.effective_value)}."
        )
    return f"{msg}\n💰 Score: **{format_money(score)}**"


def render_final_intro(final_clue: FinalClue, score: int) -> str:
    return (
        f"🏁 **Final Jeopardy!** Category: **{final_clue.category}**\n"
        f"Current score: **{format_money(score)}**. "
        f"Type your wager (0 to {format_money(max(score, 0))})."
    )


def render_final_clue(final_clue: FinalClue, wager: int) -> str:
    return (
        f"🏁 **{final_clue.category}** — wagering **{format_money(wager)}**\n"
        f"> {final_clue.question}\n\n"
        f"Type your answer."
    )
