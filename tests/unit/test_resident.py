"""Unit tests for ResidentStore and its restartable views."""

import pytest

from batchcache.cache.resident import ResidentStore
from tests.fixtures.entities import Pool, Token


@pytest.mark.unit
class TestResidentStore:
    def test_get_miss_returns_none(self):
        resident = ResidentStore()

        assert resident.get(Token, "t1") is None
        assert resident.has(Token, "t1") is False

    def test_put_and_pop(self):
        resident = ResidentStore()
        token = Token(id="t1")

        resident.put(Token, "t1", token)
        popped = resident.pop(Token, "t1")

        assert popped is token
        assert resident.has(Token, "t1") is False
        assert resident.pop(Token, "t1") is None

    def test_entity_types_skips_empty_buckets(self):
        resident = ResidentStore()
        resident.put(Token, "t1", Token(id="t1"))
        resident.put(Pool, "p1", Pool(id="p1"))
        resident.pop(Pool, "p1")

        assert resident.entity_types() == (Token,)
        assert len(resident) == 1

    def test_clear(self):
        resident = ResidentStore()
        resident.put(Token, "t1", Token(id="t1"))

        resident.clear()

        assert len(resident) == 0
        assert list(resident.values(Token)) == []


@pytest.mark.unit
class TestResidentView:
    def test_insertion_order(self):
        resident = ResidentStore()
        for id_value in ("t3", "t1", "t2"):
            resident.put(Token, id_value, Token(id=id_value))

        assert [t.id for t in resident.values(Token)] == ["t3", "t1", "t2"]

    def test_view_is_restartable(self):
        resident = ResidentStore()
        resident.put(Token, "t1", Token(id="t1"))
        view = resident.values(Token)

        first = list(view)
        second = list(view)

        assert first == second
        assert len(view) == 1

    def test_view_reflects_later_inserts(self):
        resident = ResidentStore()
        view = resident.values(Token)

        resident.put(Token, "t1", Token(id="t1"))

        assert [t.id for t in view] == ["t1"]

    def test_mutation_during_iteration_is_safe(self):
        resident = ResidentStore()
        for id_value in ("t1", "t2"):
            resident.put(Token, id_value, Token(id=id_value))

        for token in resident.values(Token):
            resident.pop(Token, token.id)
            resident.put(Token, token.id + "x", Token(id=token.id + "x"))

        assert sorted(resident.ids(Token)) == ["t1x", "t2x"]

    def test_unknown_type_is_empty(self):
        assert list(ResidentStore().values(Pool)) == []
