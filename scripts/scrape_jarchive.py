# scripts/scrape_jarchive.py
# Bulk-load games into the store: python scripts/scrape_jarchive.py [count]

import asyncio
import sys

import aiohttp

from jeopardy_bot.db import close_pool, init_schema
from jeopardy_bot.game.constants import HTTP_TIMEOUT_SECONDS
from jeopardy_bot.scraper import scrape_random_game

MAX_EMPTY_ROUNDS = 5  # stop after 5 tries in a row with nothing stored


async def main(count: int):
    await init_schema()

    empty_rounds = 0
    stored = 0
    timeout = aiohttp.ClientTimeout(total=HTTP_TIMEOUT_SECONDS)

    async with aiohttp.ClientSession(timeout=timeout) as session:
        while stored < count and empty_rounds < MAX_EMPTY_ROUNDS:
            print(f"\n📥 Game {stored + 1} of {count}...")
            show_id = await scrape_random_game(session)

            if show_id is None:
                empty_rounds += 1
                print(f"⚠ Nothing stored ({empty_rounds}/{MAX_EMPTY_ROUNDS})")
            else:
                empty_rounds = 0
                stored += 1

            await asyncio.sleep(1.0)  # be polite to the archive

    await close_pool()
    print(f"\n🎉 Done! Games stored: {stored}")


if __name__ == "__main__":
    n = int(sys.argv[1]) if len(sys.argv) > 1 else 1
    asyncio.run(main(n))
