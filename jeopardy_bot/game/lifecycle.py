# -----------------------------
# SINGLE-PLAYER GAME FLOW
# -----------------------------
import asyncio
import logging
from typing import Dict, Optional, Set, Tuple

import asyncpg
import discord

from jeopardy_bot.game.board import (
    format_money,
    parse_pick,
    render_board,
    render_clue,
    render_daily_double,
    render_final_clue,
    render_final_intro,
    render_verdict,
)
from jeopardy_bot.game.constants import (
    CLUE_TIMEOUT_SECONDS,
    EVENT_GAME_OVER,
    FINAL_TIMEOUT_SECONDS,
    RESULT_DELAY,
    ROUND_FINAL,
    ROUND_TITLES,
    WAGER_TIMEOUT_SECONDS,
)
from jeopardy_bot.game.state import (
    PHASE_BOARD,
    PHASE_CLUE,
    PHASE_FINAL_CLUE,
    PHASE_FINAL_WAGER,
    PHASE_WAGER,
    GameState,
    InvalidMove,
)
from jeopardy_bot.game.store import delete_game, get_final_clue, get_random_game, get_round
from jeopardy_bot.llm_bot import generate_reply
from jeopardy_bot.utils.matching import Verdict

logger = logging.getLogger(__name__)

# One game per (guild_id, channel_id)
GAMES: Dict[Tuple[int, int], GameState] = {}

# Database and network failures reported to the player instead of crashing a turn
STORE_ERRORS = (asyncpg.PostgresError, OSError)

STORE_ERROR_MESSAGE = "Something went wrong backstage. Try that again in a bit."


def game_key(channel: discord.abc.GuildChannel) -> Tuple[int, int]:
    return channel.guild.id, channel.id


def get_game(channel) -> Optional[GameState]:
    state = GAMES.get(game_key(channel))
    if state and state.in_progress:
        return state
    return None


def shows_in_play() -> Set[int]:
    return {state.show_id for state in GAMES.values() if state.in_progress}


async def start_game(channel: discord.TextChannel, player: discord.abc.User) -> Optional[GameState]:
    """Scrape a fresh game and put its first board up."""
    board = await get_random_game(in_use=shows_in_play())
    if board is None or not board.categories:
        await channel.send("I couldn't load a game right now. The archive is being shy.")
        return None

    state = GameState.new(player.id, board)
    GAMES[game_key(channel)] = state

    logger.info(
        "Game started: show id=%s player=%s channel=%s",
        board.show_id,
        player.id,
        channel.id,
    )
    await channel.send(f"🎮 {player.mention}, let's play!")
    await show_board(channel, state)
    return state


async def show_board(channel: discord.TextChannel, state: GameState):
    await channel.send(render_board(state.board, state.answered, state.score))


async def open_clue(channel: discord.TextChannel, state: GameState, category_number: int, value: int):
    try:
        clue = state.open_clue(category_number, value)
    except InvalidMove as e:
        await channel.send(str(e))
        return

    token = state.clue_token

    if state.phase == PHASE_WAGER:
        await channel.send(
            render_daily_double(state.current_category, state.score, state.max_wager())
        )
        asyncio.create_task(_expire_clue(channel, state, token, WAGER_TIMEOUT_SECONDS))
        return

    await channel.send(render_clue(state.current_category, clue))
    asyncio.create_task(_expire_clue(channel, state, token, CLUE_TIMEOUT_SECONDS))


async def place_wager(channel: discord.TextChannel, state: GameState, raw: str):
    try:
        wager = state.place_wager(raw)
    except InvalidMove as e:
        await channel.send(str(e))
        return

    await channel.send(f"Wager locked in: **{format_money(wager)}**.")
    await channel.send(render_clue(state.current_category, state.current_clue, wager))

    # Fresh timer for the answer itself
    state.clue_token += 1
    asyncio.create_task(
        _expire_clue(channel, state, state.clue_token, CLUE_TIMEOUT_SECONDS)
    )


async def submit_answer(channel: discord.TextChannel, state: GameState, text: str):
    canonical = state.current_clue.answer if state.current_clue else ""
    try:
        verdict = state.answer(text)
    except InvalidMove as e:
        await channel.send(str(e))
        return

    await _after_clue(channel, state, verdict, canonical)


async def pass_clue(channel: discord.TextChannel, state: GameState):
    canonical = state.current_clue.answer if state.current_clue else ""
    try:
        verdict = state.pass_clue()
    except InvalidMove as e:
        await channel.send(str(e))
        return

    await _after_clue(channel, state, verdict, canonical)


async def _after_clue(channel: discord.TextChannel, state: GameState, verdict: Verdict, canonical: str):
    await channel.send(render_verdict(verdict, canonical, state.score))
    await asyncio.sleep(RESULT_DELAY)

    if not state.in_progress:
        return

    if state.round_complete():
        await channel.send("That's the whole board!")
        await advance_round(channel, state)
    else:
        await show_board(channel, state)


async def _expire_clue(channel: discord.TextChannel, state: GameState, token: int, delay: float):
    """Auto-pass a clue nobody answered in time."""
    await asyncio.sleep(delay)

    if (
        not state.in_progress
        or state.clue_token != token
        or state.phase not in (PHASE_WAGER, PHASE_CLUE)
    ):
        return

    await channel.send("⏰ Time's up.")
    await pass_clue(channel, state)


async def advance_round(channel: discord.TextChannel, state: GameState):
    """jeopardy -> double -> final -> game over."""
    if state.phase != PHASE_BOARD:
        await channel.send("Finish the current clue first.")
        return

    next_round = state.next_round_name()
    if next_round is None:
        await end_game(channel, state)
        return

    if next_round != ROUND_FINAL:
        current_round = state.round_name
        try:
            board = await get_round(state.show_id, next_round)
        except STORE_ERRORS:
            logger.exception("Loading %s round failed for show id=%s", next_round, state.show_id)
            await channel.send(STORE_ERROR_MESSAGE)
            return

        # The game moved on while the round was loading
        if not state.in_progress or state.round_name != current_round:
            return

        if board is not None and board.categories:
            try:
                state.load_round(board)
            except InvalidMove as e:
                await channel.send(str(e))
                return
            await channel.send(f"➡️ On to **{ROUND_TITLES[next_round]}**")
            await show_board(channel, state)
            return
        logger.info("Show id=%s has no %s round, skipping", state.show_id, next_round)

    await start_final(channel, state)


async def start_final(channel: discord.TextChannel, state: GameState):
    try:
        final_clue = await get_final_clue(state.show_id)
    except STORE_ERRORS:
        logger.exception("Loading final clue failed for show id=%s", state.show_id)
        await channel.send(STORE_ERROR_MESSAGE)
        return

    if not state.in_progress:
        return

    if final_clue is None:
        await channel.send("This game has no final round on file.")
        await end_game(channel, state)
        return

    try:
        state.start_final(final_clue)
    except InvalidMove:
        # Another advance got here first
        logger.debug("Final round already started for show id=%s", state.show_id)
        return

    await channel.send(render_final_intro(final_clue, state.score))

    token = state.clue_token
    asyncio.create_task(_expire_final(channel, state, token))


async def place_final_wager(channel: discord.TextChannel, state: GameState, raw: Optional[str]):
    try:
        wager = state.place_final_wager(raw)
    except InvalidMove as e:
        await channel.send(str(e))
        return

    await channel.send(render_final_clue(state.final_clue, wager))

    state.clue_token += 1
    asyncio.create_task(_expire_final(channel, state, state.clue_token))


async def submit_final_answer(channel: discord.TextChannel, state: GameState, text: str):
    try:
        verdict = state.answer_final(text)
    except InvalidMove as e:
        await channel.send(str(e))
        return

    await channel.send(render_verdict(verdict, state.final_clue.answer, state.score))
    await end_game(channel, state, final_correct=verdict.is_correct)


async def _expire_final(channel: discord.TextChannel, state: GameState, token: int):
    await asyncio.sleep(FINAL_TIMEOUT_SECONDS)

    if not state.in_progress or state.clue_token != token:
        return

    await channel.send("⏰ Time's up.")

    if state.phase == PHASE_FINAL_WAGER:
        await place_final_wager(channel, state, None)
    elif state.phase == PHASE_FINAL_CLUE:
        await submit_final_answer(channel, state, "")


async def handle_player_message(channel: discord.TextChannel, state: GameState, text: str) -> bool:
    """
    Route a chat message from the player by game phase.
    Returns True if the message was consumed by the game.
    """
    if not text:
        return False

    if state.phase == PHASE_BOARD:
        pick = parse_pick(text)
        if pick is None:
            return False
        await open_clue(channel, state, *pick)
        return True

    if state.phase == PHASE_WAGER:
        await place_wager(channel, state, text)
        return True

    if state.phase == PHASE_CLUE:
        await submit_answer(channel, state, text)
        return True

    if state.phase == PHASE_FINAL_WAGER:
        await place_final_wager(channel, state, text)
        return True

    if state.phase == PHASE_FINAL_CLUE:
        await submit_final_answer(channel, state, text)
        return True

    return False


async def end_game(channel: discord.TextChannel, state: GameState, final_correct: Optional[bool] = None):
    """End the game, show the final score and clean up the store."""
    state.end()

    await channel.send(f"🎮 **Game over.** Final score: **{format_money(state.score)}**")

    try:
        await delete_game(state.show_id)
    except STORE_ERRORS:
        logger.exception("Could not delete show id=%s", state.show_id)

    data = {
        "score": state.score,
        "final_correct": final_correct,
        "show_number": state.board.show_number,
    }
    text = await asyncio.to_thread(generate_reply, EVENT_GAME_OVER, data)
    if text:
        await channel.send(text[:200])
