# jeopardy_bot/llm_bot.py

import json
import logging

from openai import OpenAI, OpenAIError

from .config import OPENAI_API_KEY, OPENAI_MODEL
from .game.constants import EVENT_GAME_OVER, EVENT_MENTION

logger = logging.getLogger(__name__)

_client = None

SYSTEM_PROMPT = """
You are the host of a Jeopardy-style quiz game running in a Discord channel.

Personality summary:
- Warm, quick, a little theatrical — classic game-show host energy.
- Light teasing is fine; never mean, never personal.
- Keep everything short.

You will receive messages in this format:
EVENT: <event_name>
DATA: <JSON>

EVENTS AND HOW TO BEHAVE:

- event="mention":
  - Treat DATA["text"] as a normal chat message directed at you.
  - Do NOT mention clues, answers or scores unless the message asks about the game.
  - 1–2 sentences. One emoji allowed rarely.

- event="game_over":
  - DATA contains "score" (final score in dollars), "final_correct" (bool or null
    if the final round was not played) and "show_number" (may be null).
  - Deliver ONE sign-off line reacting to the final score.
  - Never mention any clue or correct answer.
  - ~25 words max.

- anything else:
  - Normal, helpful host. Keep it short.

General rules:
- Never include @mentions.
- Never reveal answers to clues.
- Avoid multi-paragraph text.
"""

FALLBACKS = {
    EVENT_MENTION: "The host is between takes right now. Try me again in a moment.",
    EVENT_GAME_OVER: "",
}


def _get_client() -> OpenAI:
    global _client
    if _client is None:
        _client = OpenAI(api_key=OPENAI_API_KEY)
    return _client


def generate_reply(event: str, data: dict | None = None) -> str:
    """
    Generic LLM interface for the host.
    event: "mention", "game_over", ...
    data: dict payload (e.g. {"text": "..."}).
    """
    if data is None:
        data = {}

    if not OPENAI_API_KEY:
        return FALLBACKS.get(event, "")

    payload = f"EVENT: {event}\nDATA: {json.dumps(data, ensure_ascii=False)}"

    try:
        response = _get_client().chat.completions.create(
            model=OPENAI_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": payload},
            ],
            timeout=10,
        )
        return (response.choices[0].message.content or "").strip()

    except OpenAIError:
        # The game never waits on commentary
        logger.warning("LLM reply failed for event=%s", event, exc_info=True)
        return FALLBACKS.get(event, "")
