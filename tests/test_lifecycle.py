import asyncio
from types import SimpleNamespace

import pytest

from jeopardy_bot.game import lifecycle
from jeopardy_bot.game.models import Board, Category, Clue, FinalClue
from jeopardy_bot.game.state import PHASE_BOARD, PHASE_CLUE, PHASE_FINAL_WAGER, PHASE_OVER, PHASE_WAGER
from jeopardy_bot.utils.matching import Verdict


class FakeChannel:
    def __init__(self, channel_id=100):
        self.id = channel_id
        self.guild = SimpleNamespace(id=1)
        self.sent = []

    async def send(self, text):
        self.sent.append(text)


def make_board(round_name="jeopardy", show_id=5):
    clues = [
        Clue(id=1, question="Capital of France", answer="what is Paris", value=200, row_index=0),
        Clue(id=2, question="Largest cat", answer="what is a tiger", value=400, row_index=1,
             is_daily_double=True),
    ]
    return Board(show_id=show_id, round_name=round_name, categories=[Category("MIXED BAG", clues)])


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def patched(monkeypatch):
    deleted = []

    async def fake_random_game(in_use=()):
        return make_board()

    async def fake_get_round(show_id, round_name):
        return None

    async def fake_final(show_id):
        return FinalClue(id=9, question="Sailed around the world", answer="who is Magellan",
                         category="EXPLORERS")

    async def fake_delete(show_id):
        deleted.append(show_id)
        return True

    monkeypatch.setattr(lifecycle, "get_random_game", fake_random_game)
    monkeypatch.setattr(lifecycle, "get_round", fake_get_round)
    monkeypatch.setattr(lifecycle, "get_final_clue", fake_final)
    monkeypatch.setattr(lifecycle, "delete_game", fake_delete)
    monkeypatch.setattr(lifecycle, "generate_reply", lambda event, data: "")
    monkeypatch.setattr(lifecycle, "RESULT_DELAY", 0)
    monkeypatch.setattr(lifecycle, "GAMES", {})
    return deleted


async def start(channel, player_id=7):
    player = SimpleNamespace(id=player_id, mention=f"<@{player_id}>")
    return await lifecycle.start_game(channel, player)


@pytest.mark.asyncio
async def test_start_game_shows_board(channel, patched):
    state = await start(channel)

    assert state is not None
    assert lifecycle.get_game(channel) is state
    assert any("MIXED BAG" in msg for msg in channel.sent)


@pytest.mark.asyncio
async def test_start_game_without_board(channel, patched, monkeypatch):
    async def no_game(in_use=()):
        return None

    monkeypatch.setattr(lifecycle, "get_random_game", no_game)
    assert await start(channel) is None
    assert lifecycle.get_game(channel) is None


@pytest.mark.asyncio
async def test_full_game(channel, patched):
    state = await start(channel)

    # Regular clue
    assert await lifecycle.handle_player_message(channel, state, "1 200")
    assert state.phase == PHASE_CLUE
    await lifecycle.handle_player_message(channel, state, "Paris")
    assert state.score == 200
    assert any("Correct" in msg for msg in channel.sent)

    # Daily double
    await lifecycle.handle_player_message(channel, state, "1 400")
    assert state.phase == PHASE_WAGER
    await lifecycle.handle_player_message(channel, state, "150")
    assert state.wager == 150
    await lifecycle.handle_player_message(channel, state, "Tiger!")

    # Board cleared, no double round, straight to final
    assert state.score == 350
    assert state.phase == PHASE_FINAL_WAGER

    await lifecycle.handle_player_message(channel, state, "350")
    await lifecycle.handle_player_message(channel, state, "Magellan")

    assert state.score == 700
    assert state.phase == PHASE_OVER
    assert lifecycle.get_game(channel) is None
    assert patched == [5]
    assert "Final score: **$700**" in channel.sent[-1]


@pytest.mark.asyncio
async def test_chatter_on_board_is_ignored(channel, patched):
    state = await start(channel)
    assert await lifecycle.handle_player_message(channel, state, "hmm which one") is False
    assert await lifecycle.handle_player_message(channel, state, "") is False


@pytest.mark.asyncio
async def test_unanswered_clue_times_out(channel, patched, monkeypatch):
    monkeypatch.setattr(lifecycle, "CLUE_TIMEOUT_SECONDS", 0.01)
    state = await start(channel)

    await lifecycle.open_clue(channel, state, 1, 200)
    await asyncio.sleep(0.1)

    assert state.phase == PHASE_BOARD
    assert state.score == 0
    assert 1 in state.answered
    assert any("Passed" in msg for msg in channel.sent)


@pytest.mark.asyncio
async def test_stale_timer_does_nothing(channel, patched, monkeypatch):
    monkeypatch.setattr(lifecycle, "CLUE_TIMEOUT_SECONDS", 0.05)
    state = await start(channel)

    await lifecycle.open_clue(channel, state, 1, 200)
    await lifecycle.submit_answer(channel, state, "London")
    await asyncio.sleep(0.1)

    assert not any("Time's up" in msg for msg in channel.sent)


@pytest.mark.asyncio
async def test_second_channel_keeps_first_channels_show(patched, monkeypatch):
    requests = []
    next_show = iter([5, 6])

    async def fake_random_game(in_use=()):
        requests.append(set(in_use))
        return make_board(show_id=next(next_show))

    async def fake_get_round(show_id, round_name):
        return make_board(round_name, show_id=show_id)

    monkeypatch.setattr(lifecycle, "get_random_game", fake_random_game)
    monkeypatch.setattr(lifecycle, "get_round", fake_get_round)

    channel_a = FakeChannel(100)
    channel_b = FakeChannel(200)
    state_a = await start(channel_a, player_id=7)
    state_b = await start(channel_b, player_id=8)

    assert requests == [set(), {5}]
    assert state_b.show_id == 6

    await lifecycle.advance_round(channel_a, state_a)

    assert state_a.in_progress
    assert state_a.round_name == "double"
    assert state_a.show_id == 5
    assert lifecycle.get_game(channel_b) is state_b


@pytest.mark.asyncio
async def test_finished_game_frees_its_show(patched):
    state = await start(FakeChannel(100))
    assert lifecycle.shows_in_play() == {5}

    state.end()
    assert lifecycle.shows_in_play() == set()


@pytest.mark.asyncio
async def test_round_load_failure_is_reported(channel, patched, monkeypatch):
    async def broken_get_round(show_id, round_name):
        raise ConnectionResetError("database went away")

    monkeypatch.setattr(lifecycle, "get_round", broken_get_round)
    state = await start(channel)

    await lifecycle.advance_round(channel, state)

    assert channel.sent[-1] == lifecycle.STORE_ERROR_MESSAGE
    assert state.in_progress
    assert state.phase == PHASE_BOARD
    assert state.round_name == "jeopardy"


@pytest.mark.asyncio
async def test_final_clue_failure_is_reported(channel, patched, monkeypatch):
    async def broken_final(show_id):
        raise ConnectionResetError("database went away")

    monkeypatch.setattr(lifecycle, "get_final_clue", broken_final)
    state = await start(channel)

    await lifecycle.start_final(channel, state)

    assert channel.sent[-1] == lifecycle.STORE_ERROR_MESSAGE
    assert state.in_progress
    assert state.phase == PHASE_BOARD


@pytest.mark.asyncio
async def test_second_final_start_is_ignored(channel, patched):
    state = await start(channel)

    await lifecycle.start_final(channel, state)
    await lifecycle.start_final(channel, state)

    assert state.phase == PHASE_FINAL_WAGER
    assert sum("Final Jeopardy!" in msg for msg in channel.sent) == 1


@pytest.mark.asyncio
async def test_no_board_after_game_is_stopped(channel, patched):
    state = await start(channel)
    state.end()
    sent_before = len(channel.sent)

    verdict = Verdict(is_correct=False, score_delta=0, effective_value=200, passed=True)
    await lifecycle._after_clue(channel, state, verdict, "what is Paris")

    # Only the verdict itself
    assert len(channel.sent) == sent_before + 1
    assert "Passed" in channel.sent[-1]
