import asyncio
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bathtub import EntityRepository, Item, PersistenceError, Player
from fake_mongo import FakeDatabase


def _repository() -> tuple[EntityRepository, FakeDatabase]:
    database = FakeDatabase()
    repository = EntityRepository(database)
    asyncio.run(repository.ensure_indexes())
    return repository, database


def test_ensure_indexes_marks_id_unique_everywhere() -> None:
    _, database = _repository()
    for name in ("BathtubPlayers", "BathtubItems", "BathtubStores"):
        assert database[name].unique_fields == ["id"]


def test_upsert_inserts_new_player() -> None:
    repository, database = _repository()

    async def scenario() -> None:
        await repository.save_player(Player(id="1234", charname="Aria"))
        stored = await repository.get_player("1234")
        assert stored == Player(id="1234", charname="Aria", gold=100, items=[])

    asyncio.run(scenario())
    assert len(database["BathtubPlayers"].documents) == 1


def test_upsert_overwrites_mutable_fields_without_duplicating() -> None:
    repository, database = _repository()

    async def scenario() -> None:
        await repository.save_player(Player(id="1234", charname="Aria"))
        await repository.save_player(Player(id="1234", charname="Bryn", gold=5, items=[3, 3, 1]))
        stored = await repository.get_player("1234")
        assert stored == Player(id="1234", charname="Bryn", gold=5, items=[3, 3, 1])

    asyncio.run(scenario())
    documents = database["BathtubPlayers"].documents
    assert len(documents) == 1
    assert documents[0]["id"] == "1234"
    assert documents[0]["_id"] == 1


def test_upsert_retries_after_concurrent_insert() -> None:
    repository, database = _repository()
    database["BathtubPlayers"].duplicate_inserts = 1

    async def scenario() -> None:
        await repository.save_player(Player(id="99", charname="Cato"))
        assert await repository.get_player("99") == Player(id="99", charname="Cato")

    asyncio.run(scenario())


def test_upsert_handles_items_too() -> None:
    repository, _ = _repository()

    async def scenario() -> None:
        await repository.save_item(Item(id=4, name="Rope", desc="Fifty feet", cost=1, sell=0))
        await repository.save_item(Item(id=4, name="Rope", desc="Frayed", cost=1, sell=0))
        item = await repository.get_item(4)
        assert item is not None
        assert item.desc == "Frayed"

    asyncio.run(scenario())


def test_next_id_starts_at_one_and_follows_maximum() -> None:
    repository, database = _repository()

    async def scenario() -> None:
        assert await repository.next_id("BathtubItems") == 1
        database["BathtubItems"].documents.extend(
            [{"id": 3, "name": "a"}, {"id": 11, "name": "b"}, {"id": 7, "name": "c"}]
        )
        assert await repository.next_id("BathtubItems") == 12

    asyncio.run(scenario())


def test_create_item_allocates_sequential_ids() -> None:
    repository, _ = _repository()

    async def scenario() -> None:
        first = await repository.create_item("Stick", "Just a stick", 10, 20)
        second = await repository.create_item("Stone", "Smooth", 1, 1)
        assert first == Item(id=1, name="Stick", desc="Just a stick", cost=10, sell=20)
        assert second.id == 2

    asyncio.run(scenario())


def test_create_item_reallocates_when_id_was_taken() -> None:
    repository, database = _repository()
    items = database["BathtubItems"]
    items.duplicate_inserts = 2

    async def scenario() -> None:
        item = await repository.create_item("Stick", "Just a stick", 10, 20)
        assert item.id == 1

    asyncio.run(scenario())
    assert len(items.documents) == 1


def test_create_item_gives_up_after_repeated_conflicts() -> None:
    repository, database = _repository()
    database["BathtubItems"].duplicate_inserts = 10

    with pytest.raises(PersistenceError):
        asyncio.run(repository.create_item("Stick", "Just a stick", 10, 20))


def test_store_failures_become_persistence_errors() -> None:
    repository, database = _repository()
    database.fail_all()

    with pytest.raises(PersistenceError) as excinfo:
        asyncio.run(repository.save_player(Player(id="1", charname="Aria")))
    assert "no servers available" in str(excinfo.value)

    with pytest.raises(PersistenceError):
        asyncio.run(repository.next_id("BathtubItems"))


def test_custom_collection_names_are_respected() -> None:
    database = FakeDatabase()
    repository = EntityRepository(database, player_collection="Players", item_collection="Items")

    async def scenario() -> None:
        await repository.save_player(Player(id="7", charname="Dane"))
        await repository.create_item("Cup", "Tin", 2, 1)

    asyncio.run(scenario())
    assert len(database["Players"].documents) == 1
    assert len(database["Items"].documents) == 1
