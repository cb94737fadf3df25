# jeopardy_bot/game/constants.py

ROUND_JEOPARDY = "jeopardy"
ROUND_DOUBLE = "double"
ROUND_FINAL = "final"

ROUND_TITLES = {
    ROUND_JEOPARDY: "Jeopardy!",
    ROUND_DOUBLE: "Double Jeopardy!",
    ROUND_FINAL: "Final Jeopardy!",
}

# Board shape
MAX_CATEGORIES = 6
CLUES_PER_CATEGORY = 5

# Wagers
MIN_WAGER = 5

# -----------------------------
# TIMING (seconds)
# -----------------------------
CLUE_TIMEOUT_SECONDS = 45
WAGER_TIMEOUT_SECONDS = 60
FINAL_TIMEOUT_SECONDS = 90
RESULT_DELAY = 1.0

# -----------------------------
# SCRAPING
# -----------------------------
JARCHIVE_DEFAULT_URL = "https://j-archive.com"
MIN_GAME_ID = 1
MAX_GAME_ID = 9300
SCRAPE_ATTEMPTS = 5
SCRAPE_TIMEOUT_SECONDS = 120
HTTP_TIMEOUT_SECONDS = 30

# First aired season, roughly 230 shows per year since
FIRST_SEASON_YEAR = 1984
SHOWS_PER_YEAR = 230

# -----------------------------
# LLM EVENTS
# -----------------------------
EVENT_MENTION = "mention"
EVENT_GAME_OVER = "game_over"

KEY_TEXT = "text"
