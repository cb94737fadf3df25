# jeopardy_bot/config.py

import os
from dotenv import load_dotenv

from jeopardy_bot.game.constants import JARCHIVE_DEFAULT_URL

# Load .env file if present (local development)
load_dotenv()

BOT_TOKEN = os.getenv("BOT_TOKEN")
DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_NAME = os.getenv("DB_NAME")
DB_HOST = os.getenv("DB_HOST")
DB_PORT = os.getenv("DB_PORT")
DB_ENABLE_SSL = os.getenv("DB_ENABLE_SSL")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")
JARCHIVE_BASE_URL = os.getenv("JARCHIVE_BASE_URL", JARCHIVE_DEFAULT_URL)


def require_bot_token() -> str:
    if not BOT_TOKEN:
        raise ValueError("BOT_TOKEN is missing. Add it to .env or environment variables.")
    return BOT_TOKEN
