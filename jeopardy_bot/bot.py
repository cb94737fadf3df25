import asyncio
import logging

import discord
from discord.ext import commands
from discord import app_commands

from jeopardy_bot.game.board import format_money
from jeopardy_bot.game.constants import EVENT_MENTION, KEY_TEXT
from jeopardy_bot.game.lifecycle import (
    GAMES,
    STORE_ERROR_MESSAGE,
    STORE_ERRORS,
    advance_round,
    end_game,
    game_key,
    get_game,
    handle_player_message,
    open_clue,
    pass_clue,
    show_board,
    start_game,
)
from jeopardy_bot.game.state import PHASE_BOARD, PHASE_CLUE, PHASE_WAGER
from jeopardy_bot.llm_bot import generate_reply
from .config import require_bot_token
from .db import init_schema

logger = logging.getLogger(__name__)

intents = discord.Intents.default()
intents.message_content = True

bot = commands.Bot(
    command_prefix="!",
    intents=intents,
    help_command=None,
)

# Channels with a game currently being scraped
_starting: set = set()


# -----------------------------
# HELPERS
# -----------------------------
async def _require_player_game(interaction: discord.Interaction):
    """Return the channel's game if the caller is its player, else reply and return None."""
    if interaction.guild is None or interaction.channel is None:
        await interaction.response.send_message(
            "This command can only be used in a server.",
            ephemeral=True,
        )
        return None

    state = get_game(interaction.channel)
    if state is None:
        await interaction.response.send_message(
            "There's no game running here. Start one with `/jeopardy`.",
            ephemeral=True,
        )
        return None

    if state.player_id != interaction.user.id:
        await interaction.response.send_message(
            "This is someone else's game. Wait for your turn.",
            ephemeral=True,
        )
        return None

    return state


# -----------------------------
# BOT EVENTS
# -----------------------------
@bot.event
async def on_ready():
    logger.info("Logged in as %s (ID: %s)", bot.user, bot.user.id)

    await init_schema()

    try:
        synced = await bot.tree.sync()
        logger.info("Synced %d app commands.", len(synced))
    except discord.HTTPException:
        logger.exception("Error syncing app commands")


@bot.tree.error
async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
    original = getattr(error, "original", error)
    command = interaction.command.name if interaction.command else "?"
    logger.error("Command /%s failed", command, exc_info=original)

    if not interaction.response.is_done():
        await interaction.response.send_message(STORE_ERROR_MESSAGE, ephemeral=True)
    elif interaction.channel is not None:
        await interaction.channel.send(STORE_ERROR_MESSAGE)


# -----------------------------
# COMMANDS
# -----------------------------
@bot.tree.command(name="ping", description="Simple test command.")
async def ping(interaction: discord.Interaction):
    await interaction.response.send_message(
        "Pong! The studio lights are on.",
        ephemeral=True,
    )


@bot.tree.command(name="jeopardy", description="Start a new game.")
async def jeopardy(interaction: discord.Interaction):
    if interaction.guild is None or interaction.channel is None:
        await interaction.response.send_message(
            "I can only run games inside a server text channel.",
            ephemeral=True,
        )
        return

    channel = interaction.channel
    key = game_key(channel)

    if get_game(channel) is not None or key in _starting:
        await interaction.response.send_message(
            "There's already a game running in this channel.",
            ephemeral=True,
        )
        return

    _starting.add(key)
    await interaction.response.send_message("🔎 Pulling a game from the archive...")
    try:
        await start_game(channel, interaction.user)
    except (*STORE_ERRORS, ValueError):
        logger.exception("Starting a game failed in channel %s", channel.id)
        await channel.send("Something went wrong loading the game. Try again in a bit.")
    finally:
        _starting.discard(key)


@bot.tree.command(name="pick", description="Pick a clue from the board.")
@app_commands.describe(category="Category number (1-6)", value="Dollar value, e.g. 400")
async def pick(interaction: discord.Interaction, category: int, value: int):
    state = await _require_player_game(interaction)
    if state is None:
        return

    await interaction.response.send_message(f"**Category {category}** for **${value}**")
    await open_clue(interaction.channel, state, category, value)


@bot.tree.command(name="pass", description="Pass on the open clue.")
async def pass_command(interaction: discord.Interaction):
    state = await _require_player_game(interaction)
    if state is None:
        return

    if state.phase not in (PHASE_WAGER, PHASE_CLUE):
        await interaction.response.send_message("There's no clue open right now.", ephemeral=True)
        return

    await interaction.response.send_message("Pass.")
    await pass_clue(interaction.channel, state)


@bot.tree.command(name="board", description="Show the board again.")
async def board(interaction: discord.Interaction):
    state = await _require_player_game(interaction)
    if state is None:
        return

    await interaction.response.defer()
    await show_board(interaction.channel, state)
    await interaction.followup.send("Board's up.", ephemeral=True)


@bot.tree.command(name="score", description="Show your score.")
async def score(interaction: discord.Interaction):
    state = await _require_player_game(interaction)
    if state is None:
        return

    await interaction.response.send_message(
        f"💰 Score: **{format_money(state.score)}** "
        f"({state.remaining_clues()} clue(s) left this round)",
        ephemeral=True,
    )


@bot.tree.command(name="next_round", description="Skip to the next round.")
async def next_round(interaction: discord.Interaction):
    state = await _require_player_game(interaction)
    if state is None:
        return

    if state.phase != PHASE_BOARD:
        await interaction.response.send_message("Finish the current clue first.", ephemeral=True)
        return

    await interaction.response.send_message("⏩ Moving on.")
    await advance_round(interaction.channel, state)


@bot.tree.command(name="jeopardy_stop", description="Stop the game.")
async def jeopardy_stop(interaction: discord.Interaction):
    state = await _require_player_game(interaction)
    if state is None:
        return

    await interaction.response.send_message("⛔ **Game stopped.**")
    await end_game(interaction.channel, state)
    GAMES.pop(game_key(interaction.channel), None)


# -----------------------------
# MESSAGE LISTENER
# -----------------------------
@bot.event
async def on_message(message: discord.Message):
    if message.author.bot or message.guild is None:
        return

    channel = message.channel
    state = get_game(channel)

    if state and state.player_id == message.author.id:
        try:
            consumed = await handle_player_message(channel, state, message.content.strip())
        except STORE_ERRORS:
            logger.exception("Handling a move failed in channel %s", channel.id)
            await channel.send(STORE_ERROR_MESSAGE)
            return
        if consumed:
            return

    if bot.user and bot.user.mentioned_in(message):
        content = message.content.replace(bot.user.mention, "").strip() or \
                  "Someone mentioned you without saying anything."

        reply = await asyncio.to_thread(
            generate_reply,
            EVENT_MENTION,
            {KEY_TEXT: content},
        )
        if reply:
            await channel.send(reply)
        return

    await bot.process_commands(message)


# -----------------------------
# ENTRY POINT
# -----------------------------
def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    bot.run(require_bot_token(), log_handler=None)


if __name__ == "__main__":
    main()
