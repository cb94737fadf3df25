# jeopardy_bot/scraper.py
"""
J! Archive scraper.

Run as `python -m jeopardy_bot.scraper` to pull one random game into the
store. The game flow runs this in a subprocess before serving a new board.
"""

import asyncio
import random
import re
import sys
from typing import Any, Dict, Optional

import aiohttp
from bs4 import BeautifulSoup

from jeopardy_bot.config import JARCHIVE_BASE_URL
from jeopardy_bot.db import close_pool, get_pool, init_schema
from jeopardy_bot.game.constants import (
    CLUES_PER_CATEGORY,
    HTTP_TIMEOUT_SECONDS,
    MAX_CATEGORIES,
    MAX_GAME_ID,
    MIN_GAME_ID,
    ROUND_DOUBLE,
    ROUND_FINAL,
    ROUND_JEOPARDY,
    SCRAPE_ATTEMPTS,
)

Game = Dict[str, Any]

# Page prefix and base clue value for each board round
_BOARD_ROUNDS = [
    (ROUND_JEOPARDY, "jeopardy_round", "J", 200),
    (ROUND_DOUBLE, "double_jeopardy_round", "DJ", 400),
]

_TITLE_RE = re.compile(r"Show #(\d+).*aired\s+(\d{4}-\d{2}-\d{2})")


def clean_html_text(element) -> str:
    """Element text with inline tags separated by single spaces."""
    if element is None:
        return ""
    text = element.get_text(separator=" ")
    return " ".join(text.split()).strip()


def _correct_response(soup: BeautifulSoup, element_id: str) -> str:
    answer_el = soup.find(id=element_id)
    if answer_el is None:
        return ""
    return clean_html_text(answer_el.find("em", class_="correct_response"))


def _is_daily_double(clue_el) -> bool:
    container = clue_el.find_parent("td", class_="clue")
    return bool(container and container.find(class_="clue_value_daily_double"))


def _parse_board_round(soup: BeautifulSoup, section_id: str, prefix: str, base_value: int):
    section = soup.find(id=section_id)
    if section is None:
        return []

    names = [clean_html_text(td) for td in section.find_all("td", class_="category_name")]
    categories = []

    for col, name in enumerate(names[:MAX_CATEGORIES], start=1):
        clues = []
        for row in range(1, CLUES_PER_CATEGORY + 1):
            clue_el = soup.find(id=f"clue_{prefix}_{col}_{row}")
            if clue_el is None or not clue_el.get_text(strip=True):
                continue

            clues.append(
                {
                    "question": clean_html_text(clue_el),
                    "answer": _correct_response(soup, f"clue_{prefix}_{col}_{row}_r"),
                    "value": row * base_value,
                    "row_index": row - 1,
                    "is_daily_double": _is_daily_double(clue_el),
                }
            )

        categories.append({"name": name, "position": col - 1, "clues": clues})

    return categories


def _parse_final_round(soup: BeautifulSoup):
    section = soup.find(id="final_jeopardy_round")
    if section is None:
        return []

    clue_el = soup.find(id="clue_FJ")
    if clue_el is None or not clue_el.get_text(strip=True):
        return []

    return [
        {
            "name": clean_html_text(section.find("td", class_="category_name")),
            "position": 0,
            "clues": [
                {
                    "question": clean_html_text(clue_el),
                    "answer": _correct_response(soup, "clue_FJ_r"),
                    "value": None,
                    "row_index": 0,
                    "is_daily_double": False,
                }
            ],
        }
    ]


def parse_game(html: str, game_id: int) -> Game:
    """Parse a showgame.php page into show info plus its three rounds."""
    soup = BeautifulSoup(html, "html.parser")

    show_number = None
    air_date = None
    title = soup.title.string if soup.title and soup.title.string else ""
    match = _TITLE_RE.search(title)
    if match:
        show_number = int(match.group(1))
        air_date = match.group(2)

    rounds = {
        name: _parse_board_round(soup, section_id, prefix, base_value)
        for name, section_id, prefix, base_value in _BOARD_ROUNDS
    }
    rounds[ROUND_FINAL] = _parse_final_round(soup)

    return {
        "external_id": str(game_id),
        "show_number": show_number,
        "air_date": air_date,
        "rounds": rounds,
    }


def count_clues(game: Game) -> int:
    return sum(
        len(category["clues"])
        for categories in game["rounds"].values()
        for category in categories
    )


def is_playable(game: Game) -> bool:
    """A game needs at least one answered clue in its first round."""
    return any(
        clue["answer"]
        for category in game["rounds"].get(ROUND_JEOPARDY, [])
        for clue in category["clues"]
    )


def pick_game_id(rng: Optional[random.Random] = None) -> int:
    rng = rng or random
    return rng.randint(MIN_GAME_ID, MAX_GAME_ID)


async def fetch_game_html(session: aiohttp.ClientSession, game_id: int) -> str:
    url = f"{JARCHIVE_BASE_URL}/showgame.php?game_id={game_id}"
    async with session.get(url) as resp:
        resp.raise_for_status()
        return await resp.text()


async def store_game(game: Game) -> Optional[int]:
    """
    Insert a parsed game and return the new show id.
    Returns None if the game was already stored.
    """
    pool = await get_pool()

    async with pool.acquire() as conn:
        async with conn.transaction():
            show_id = await conn.fetchval(
                """
                INSERT INTO shows (external_id, show_number, air_date)
                VALUES ($1, $2, $3)
                ON CONFLICT (external_id) DO NOTHING
                RETURNING id
                """,
                game["external_id"],
                game["show_number"],
                game["air_date"],
            )
            if show_id is None:
                return None

            for round_name, categories in game["rounds"].items():
                if not categories:
                    continue

                round_id = await conn.fetchval(
                    "INSERT INTO rounds (show_id, name) VALUES ($1, $2) RETURNING id",
                    show_id,
                    round_name,
                )

                for category in categories:
                    category_id = await conn.fetchval(
                        """
                        INSERT INTO categories (round_id, position, name)
                        VALUES ($1, $2, $3)
                        RETURNING id
                        """,
                        round_id,
                        category["position"],
                        category["name"],
                    )

                    await conn.executemany(
                        """
                        INSERT INTO clues (
                            category_id, question, answer, value,
                            row_index, is_daily_double
                        )
                        VALUES ($1, $2, $3, $4, $5, $6)
                        """,
                        [
                            (
                                category_id,
                                clue["question"],
                                clue["answer"],
                                clue["value"],
                                clue["row_index"],
                                clue["is_daily_double"],
                            )
                            for clue in category["clues"]
                        ],
                    )

    return show_id


async def scrape_random_game(session: aiohttp.ClientSession, attempts: int = SCRAPE_ATTEMPTS) -> Optional[int]:
    """Try random game ids until one playable game is stored."""
    for attempt in range(1, attempts + 1):
        game_id = pick_game_id()
        print(f"Fetching game {game_id} (attempt {attempt}/{attempts})...")

        try:
            html = await fetch_game_html(session, game_id)
        except aiohttp.ClientError as e:
            print(f"⚠ Could not fetch game {game_id}: {e!r}")
            continue

        game = parse_game(html, game_id)
        if not is_playable(game):
            print(f"⚠ Game {game_id} has no playable clues, skipping")
            continue

        show_id = await store_game(game)
        if show_id is None:
            print(f"⚠ Game {game_id} already stored, skipping")
            continue

        print(
            f"✅ Stored show #{game['show_number']} ({game['air_date']}) "
            f"as id={show_id} with {count_clues(game)} clues"
        )
        return show_id

    return None


async def main() -> int:
    await init_schema()

    timeout = aiohttp.ClientTimeout(total=HTTP_TIMEOUT_SECONDS)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            show_id = await scrape_random_game(session)
    finally:
        await close_pool()

    if show_id is None:
        print("❌ No game scraped", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
