# jeopardy_bot/game/acquisition.py

import asyncio
import logging
import sys

from .constants import SCRAPE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

SCRAPER_MODULE = "jeopardy_bot.scraper"


class AcquisitionError(RuntimeError):
    """The scraper process failed or timed out."""


async def run_scraper(timeout: float = SCRAPE_TIMEOUT_SECONDS) -> str:
    """
    Scrape one new game into the store in a separate process.
    Returns the scraper's stdout.
    """
    logger.info("Scraping new game...")

    proc = await asyncio.create_subprocess_exec(
        sys.executable,
        "-m",
        SCRAPER_MODULE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        proc.kill()
        await proc.wait()
        raise AcquisitionError(f"scraper timed out after {timeout}s") from e

    out = stdout.decode(errors="replace").strip()
    err = stderr.decode(errors="replace").strip()

    if err:
        logger.warning("Scraper stderr: %s", err)
    if out:
        logger.info("Scraper output: %s", out)

    if proc.returncode != 0:
        raise AcquisitionError(f"scraper exited with code {proc.returncode}")

    return out
