"""Unit tests for FindOptions and SqlAlchemyStore dispatch (mocked sessions)."""

from contextlib import asynccontextmanager

import pytest

from batchcache.store.protocols import EntityStore, FindOptions
from batchcache.store.sqlalchemy_store import SqlAlchemyStore
from tests.fixtures.entities import Token
from tests.fixtures.store import RecordingStore


class FakeDatabase:
    def __init__(self, session):
        self.session = session
        self.transactions = 0

    @asynccontextmanager
    async def get_session(self):
        yield self.session

    @asynccontextmanager
    async def get_transaction(self):
        self.transactions += 1
        yield self.session


@pytest.mark.unit
class TestFindOptions:
    def test_ids_and_where_are_exclusive(self):
        with pytest.raises(ValueError):
            FindOptions(ids=("t1",), where=({"symbol": "DAI"},))

    def test_wildcard(self):
        assert FindOptions.everything().is_wildcard is True
        assert FindOptions.by_ids([]).is_wildcard is False

    def test_relations_are_tuples(self):
        options = FindOptions.by_ids(["t1"], ["token0"])

        assert options.ids == ("t1",)
        assert options.relations == ("token0",)

    def test_recording_store_satisfies_protocol(self):
        assert isinstance(RecordingStore(), EntityStore)


@pytest.mark.asyncio
@pytest.mark.unit
class TestSqlAlchemyStoreDispatch:
    async def test_ids_are_chunked(self, mocker):
        store = SqlAlchemyStore(FakeDatabase(mocker.MagicMock()), max_ids_per_query=2)
        repo = store.repository(Token)
        get_many = mocker.patch.object(repo, "get_many", return_value=[Token(id="t")])

        records = await store.find(Token, FindOptions.by_ids(["a", "b", "c", "d", "e"]))

        assert [call.args[1] for call in get_many.call_args_list] == [
            ["a", "b"],
            ["c", "d"],
            ["e"],
        ]
        assert len(records) == 3

    async def test_where_dispatch(self, mocker):
        store = SqlAlchemyStore(FakeDatabase(mocker.MagicMock()))
        repo = store.repository(Token)
        find_where = mocker.patch.object(repo, "find_many_where", return_value=[])

        await store.find(Token, FindOptions.matching([{"symbol": "DAI"}], ["x"]))

        find_where.assert_awaited_once()
        assert find_where.call_args.args[1] == ({"symbol": "DAI"},)
        assert find_where.call_args.args[2] == ("x",)

    async def test_wildcard_dispatch(self, mocker):
        store = SqlAlchemyStore(FakeDatabase(mocker.MagicMock()))
        find_all = mocker.patch.object(store.repository(Token), "find_all", return_value=[])

        await store.find(Token, FindOptions.everything())

        find_all.assert_awaited_once()

    async def test_empty_writes_open_no_transaction(self, mocker):
        database = FakeDatabase(mocker.MagicMock())
        store = SqlAlchemyStore(database)

        await store.save(Token, [])
        await store.remove(Token, [])

        assert database.transactions == 0

    async def test_save_runs_in_transaction(self, mocker):
        database = FakeDatabase(mocker.MagicMock())
        store = SqlAlchemyStore(database)
        save_many = mocker.patch.object(store.repository(Token), "save_many", return_value=None)

        await store.save(Token, [Token(id="t1")])

        assert database.transactions == 1
        save_many.assert_awaited_once()
