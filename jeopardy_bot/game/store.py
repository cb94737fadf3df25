"""
Game store (read path over shows -> rounds -> categories -> clues).

Behavior:
- A random game is always freshly scraped: shows no running game uses
  are cleared, the acquisition process runs, and the newest show not in
  play elsewhere is served.
- Boards hold at most six categories, clues ordered by row.
- Refreshes are serialized so two channels never scrape at once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from ..db import get_pool
from .acquisition import AcquisitionError, run_scraper
from .constants import MAX_CATEGORIES, ROUND_JEOPARDY
from .models import Board, Category, Clue, FinalClue, approx_year

logger = logging.getLogger(__name__)

# Serialize scrape + read
_refresh_lock = asyncio.Lock()


# -----------------------------
# SQL
# -----------------------------

_SQL_LATEST_GAME = """
SELECT s.id, s.show_number
FROM shows s
WHERE EXISTS (
  SELECT 1 FROM rounds r WHERE r.show_id = s.id AND r.name = 'jeopardy'
)
AND NOT (s.id = ANY($1::int[]))
ORDER BY s.id DESC
LIMIT 1
"""

_SQL_ANY_GAME = """
SELECT s.id, s.show_number
FROM shows s
WHERE EXISTS (
  SELECT 1 FROM rounds r WHERE r.show_id = s.id AND r.name = 'jeopardy'
)
AND NOT (s.id = ANY($1::int[]))
ORDER BY RANDOM()
LIMIT 1
"""

_SQL_SHOW = """
SELECT id, show_number FROM shows WHERE id = $1
"""

_SQL_CATEGORIES = """
SELECT c.id, c.position, c.name
FROM categories c
JOIN rounds r ON c.round_id = r.id
WHERE r.show_id = $1 AND r.name = $2
ORDER BY c.position
LIMIT $3
"""

_SQL_CLUES = """
SELECT id, category_id, question, answer, value, row_index, is_daily_double
FROM clues
WHERE category_id = ANY($1::int[])
ORDER BY category_id, row_index
"""

_SQL_FINAL = """
SELECT cl.id, cl.question, cl.answer, c.name AS category
FROM rounds r
JOIN categories c ON c.round_id = r.id
JOIN clues cl ON cl.category_id = c.id
WHERE r.show_id = $1 AND r.name = 'final'
LIMIT 1
"""

_SQL_DELETE_GAME = """
DELETE FROM shows WHERE id = $1
"""

_SQL_DELETE_ALL = """
DELETE FROM shows
"""

_SQL_DELETE_UNUSED = """
DELETE FROM shows WHERE NOT (id = ANY($1::int[]))
"""


# -----------------------------
# Helpers
# -----------------------------

def _row_to_clue(row: Mapping[str, Any]) -> Clue:
    return Clue(
        id=row["id"],
        question=row["question"] or "",
        answer=row["answer"] or "",
        value=row["value"] or 0,
        row_index=row["row_index"],
        is_daily_double=bool(row["is_daily_double"]),
    )


def build_categories(
    category_rows: Iterable[Mapping[str, Any]],
    clue_rows: Iterable[Mapping[str, Any]],
) -> List[Category]:
    """Group clue rows under their category, keeping category order."""
    clues_by_category: dict[int, List[Clue]] = {}
    for row in clue_rows:
        clues_by_category.setdefault(row["category_id"], []).append(_row_to_clue(row))

    categories = []
    for row in category_rows:
        clues = sorted(clues_by_category.get(row["id"], []), key=lambda c: c.row_index)
        categories.append(Category(title=row["name"], clues=clues))
    return categories


def _deleted_count(status: str) -> int:
    # asyncpg returns "DELETE <n>"
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


# -----------------------------
# Public API
# -----------------------------

async def get_latest_game(
    exclude: Iterable[int] = (),
) -> Optional[Tuple[int, Optional[int]]]:
    """Newest show with a jeopardy round, else any such show. Skips `exclude`."""
    excluded = list(exclude)
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(_SQL_LATEST_GAME, excluded)
        if row is None:
            row = await conn.fetchrow(_SQL_ANY_GAME, excluded)

    if row is None:
        logger.debug("No free games in store")
        return None
    return row["id"], row["show_number"]


async def get_round(show_id: int, round_name: str = ROUND_JEOPARDY) -> Optional[Board]:
    """Load one round's categories and clues for a show."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        show = await conn.fetchrow(_SQL_SHOW, show_id)
        if show is None:
            return None

        category_rows = await conn.fetch(_SQL_CATEGORIES, show_id, round_name, MAX_CATEGORIES)
        clue_rows = []
        if category_rows:
            clue_rows = await conn.fetch(_SQL_CLUES, [r["id"] for r in category_rows])

    show_number = show["show_number"]
    logger.debug(
        "Loaded %s round for show id=%s (%d categories)",
        round_name,
        show_id,
        len(category_rows),
    )
    return Board(
        show_id=show_id,
        round_name=round_name,
        categories=build_categories(category_rows, clue_rows),
        show_number=show_number,
        approx_year=approx_year(show_number),
    )


async def get_final_clue(show_id: int) -> Optional[FinalClue]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(_SQL_FINAL, show_id)

    if row is None:
        return None

    return FinalClue(
        id=row["id"],
        question=row["question"] or "",
        answer=row["answer"] or "",
        category=row["category"] or "",
    )


async def delete_game(show_id: int) -> bool:
    pool = await get_pool()
    async with pool.acquire() as conn:
        status = await conn.execute(_SQL_DELETE_GAME, show_id)

    deleted = _deleted_count(status) > 0
    if deleted:
        logger.info("Game %s deleted from store", show_id)
    return deleted


async def delete_all_games() -> int:
    pool = await get_pool()
    async with pool.acquire() as conn:
        status = await conn.execute(_SQL_DELETE_ALL)

    count = _deleted_count(status)
    logger.info("Deleted %d game(s) from store", count)
    return count


async def delete_unused_games(in_use: Iterable[int] = ()) -> int:
    """Delete every show except those in `in_use`."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        status = await conn.execute(_SQL_DELETE_UNUSED, list(in_use))

    count = _deleted_count(status)
    if count:
        logger.info("Deleted %d unused game(s) from store", count)
    return count


async def get_random_game(in_use: Iterable[int] = ()) -> Optional[Board]:
    """
    Scrape a fresh game and return its first round.

    `in_use` holds the show ids other channels are playing; those shows are
    neither deleted nor served.
    """
    in_use = list(in_use)

    async with _refresh_lock:
        await delete_unused_games(in_use)

        try:
            await run_scraper()
        except AcquisitionError:
            logger.exception("Scraping a new game failed")

        latest = await get_latest_game(exclude=in_use)
        if latest is None:
            return None

        show_id, _ = latest
        return await get_round(show_id, ROUND_JEOPARDY)
