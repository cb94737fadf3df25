# scripts/init_db.py
"""
Create the game tables.

    python scripts/init_db.py           # create missing tables
    python scripts/init_db.py --reset   # also delete every stored game
"""

import asyncio
import sys

from jeopardy_bot.db import close_pool, init_schema
from jeopardy_bot.game.store import delete_all_games


async def main(reset: bool):
    try:
        await init_schema()
        print("✅ Schema ready (shows, rounds, categories, clues)")

        if reset:
            count = await delete_all_games()
            print(f"🧹 Deleted {count} stored game(s)")
    finally:
        await close_pool()


if __name__ == "__main__":
    asyncio.run(main("--reset" in sys.argv[1:]))
