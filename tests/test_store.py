import pytest

from jeopardy_bot.game import store
from jeopardy_bot.game.acquisition import AcquisitionError


class FakeConn:
    def __init__(self, fetchrow_results=None, fetch_results=None, execute_result="DELETE 1"):
        self.fetchrow_results = list(fetchrow_results or [])
        self.fetch_results = list(fetch_results or [])
        self.execute_result = execute_result
        self.calls = []
        self.sql = []

    async def fetchrow(self, sql, *args):
        self.sql.append(sql)
        self.calls.append(("fetchrow", args))
        return self.fetchrow_results.pop(0) if self.fetchrow_results else None

    async def fetch(self, sql, *args):
        self.sql.append(sql)
        self.calls.append(("fetch", args))
        return self.fetch_results.pop(0) if self.fetch_results else []

    async def execute(self, sql, *args):
        self.sql.append(sql)
        self.calls.append(("execute", args))
        return self.execute_result


class FakeAcquire:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        return self.conn

    async def __aexit__(self, *exc):
        return False


class FakePool:
    def __init__(self, conn):
        self.conn = conn

    def acquire(self):
        return FakeAcquire(self.conn)


@pytest.fixture
def use_conn(monkeypatch):
    def install(conn):
        async def fake_get_pool():
            return FakePool(conn)

        monkeypatch.setattr(store, "get_pool", fake_get_pool)
        return conn

    return install


CATEGORY_ROWS = [
    {"id": 11, "position": 0, "name": "CAPITALS"},
    {"id": 12, "position": 1, "name": "ANIMALS"},
]

CLUE_ROWS = [
    {"id": 2, "category_id": 11, "question": "Peru", "answer": "Lima", "value": 400,
     "row_index": 1, "is_daily_double": False},
    {"id": 1, "category_id": 11, "question": "France", "answer": "Paris", "value": 200,
     "row_index": 0, "is_daily_double": False},
    {"id": 3, "category_id": 12, "question": "Big cat", "answer": None, "value": 200,
     "row_index": 0, "is_daily_double": True},
]


def test_build_categories_groups_and_orders():
    categories = store.build_categories(CATEGORY_ROWS, CLUE_ROWS)

    assert [c.title for c in categories] == ["CAPITALS", "ANIMALS"]
    assert [clue.id for clue in categories[0].clues] == [1, 2]
    assert categories[1].clues[0].is_daily_double is True
    assert categories[1].clues[0].answer == ""


def test_build_categories_empty_category():
    categories = store.build_categories([{"id": 99, "position": 0, "name": "EMPTY"}], CLUE_ROWS)
    assert categories[0].clues == []


@pytest.mark.asyncio
async def test_get_round(use_conn):
    conn = use_conn(
        FakeConn(
            fetchrow_results=[{"id": 5, "show_number": 461}],
            fetch_results=[CATEGORY_ROWS, CLUE_ROWS],
        )
    )

    board = await store.get_round(5, "double")

    assert board.show_id == 5
    assert board.round_name == "double"
    assert board.show_number == 461
    assert board.approx_year == 1986
    assert len(board.categories) == 2
    assert conn.calls[1] == ("fetch", (5, "double", 6))
    assert conn.calls[2] == ("fetch", ([11, 12],))


@pytest.mark.asyncio
async def test_get_round_missing_show(use_conn):
    use_conn(FakeConn())
    assert await store.get_round(404) is None


@pytest.mark.asyncio
async def test_get_latest_game_falls_back_to_random(use_conn):
    use_conn(FakeConn(fetchrow_results=[None, {"id": 8, "show_number": None}]))
    assert await store.get_latest_game() == (8, None)


@pytest.mark.asyncio
async def test_get_final_clue(use_conn):
    use_conn(
        FakeConn(
            fetchrow_results=[
                {"id": 30, "question": "Circumnavigation", "answer": "Magellan", "category": "EXPLORERS"}
            ]
        )
    )
    final = await store.get_final_clue(5)
    assert final.answer == "Magellan"
    assert final.category == "EXPLORERS"


@pytest.mark.asyncio
async def test_get_final_clue_missing(use_conn):
    use_conn(FakeConn())
    assert await store.get_final_clue(5) is None


@pytest.mark.asyncio
async def test_delete_game(use_conn):
    use_conn(FakeConn(execute_result="DELETE 1"))
    assert await store.delete_game(5) is True

    use_conn(FakeConn(execute_result="DELETE 0"))
    assert await store.delete_game(5) is False


@pytest.mark.asyncio
async def test_delete_all_games(use_conn):
    use_conn(FakeConn(execute_result="DELETE 3"))
    assert await store.delete_all_games() == 3


@pytest.mark.asyncio
async def test_get_random_game_scrapes_then_loads(use_conn, monkeypatch):
    conn = use_conn(
        FakeConn(
            fetchrow_results=[
                {"id": 5, "show_number": 8000},  # latest game
                {"id": 5, "show_number": 8000},  # show lookup
            ],
            fetch_results=[CATEGORY_ROWS, CLUE_ROWS],
        )
    )
    scraped = []

    async def fake_run_scraper():
        scraped.append(True)
        return "ok"

    monkeypatch.setattr(store, "run_scraper", fake_run_scraper)

    board = await store.get_random_game()

    assert scraped == [True]
    assert conn.calls[0] == ("execute", ([],))
    assert board.show_id == 5
    assert board.round_name == "jeopardy"


@pytest.mark.asyncio
async def test_get_random_game_survives_scrape_failure(use_conn, monkeypatch):
    use_conn(FakeConn())

    async def failing_scraper():
        raise AcquisitionError("boom")

    monkeypatch.setattr(store, "run_scraper", failing_scraper)

    assert await store.get_random_game() is None


@pytest.mark.asyncio
async def test_get_random_game_keeps_shows_in_play(use_conn, monkeypatch):
    conn = use_conn(
        FakeConn(
            fetchrow_results=[
                {"id": 9, "show_number": 8000},
                {"id": 9, "show_number": 8000},
            ],
            fetch_results=[CATEGORY_ROWS, CLUE_ROWS],
        )
    )

    async def fake_run_scraper():
        return "ok"

    monkeypatch.setattr(store, "run_scraper", fake_run_scraper)

    board = await store.get_random_game(in_use={5})

    assert board.show_id == 9
    # Shows other channels are playing are neither deleted nor served
    assert conn.calls[0] == ("execute", ([5],))
    assert "NOT (id = ANY" in conn.sql[0]
    assert conn.calls[1] == ("fetchrow", ([5],))
    assert "NOT (s.id = ANY" in conn.sql[1]


@pytest.mark.asyncio
async def test_get_latest_game_skips_excluded(use_conn):
    conn = use_conn(FakeConn(fetchrow_results=[None, None]))

    assert await store.get_latest_game(exclude=[5, 6]) is None
    assert conn.calls == [("fetchrow", ([5, 6],)), ("fetchrow", ([5, 6],))]


@pytest.mark.asyncio
async def test_delete_unused_games(use_conn):
    conn = use_conn(FakeConn(execute_result="DELETE 2"))

    assert await store.delete_unused_games({5}) == 2
    assert conn.calls == [("execute", ([5],))]
