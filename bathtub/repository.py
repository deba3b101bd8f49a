"""Document store access for players and items."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, TypeVar

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from .errors import PersistenceError
from .models import Item, Player

log = logging.getLogger(__name__)

DEFAULT_PLAYER_COLLECTION = "BathtubPlayers"
DEFAULT_ITEM_COLLECTION = "BathtubItems"
DEFAULT_STORE_COLLECTION = "BathtubStores"

KEY_FIELD = "id"


class Document(Protocol):
    def to_document(self) -> Dict[str, object]:
        ...


EntityT = TypeVar("EntityT", bound=Document)


class EntityRepository:
    """Create and update entities stored in MongoDB collections keyed by ``id``.

    ``database`` is a :class:`pymongo.database.Database` (or anything that
    returns collections by subscription). Driver calls are blocking, so each
    one is pushed onto a worker thread.
    """

    def __init__(
        self,
        database: Any,
        *,
        player_collection: str = DEFAULT_PLAYER_COLLECTION,
        item_collection: str = DEFAULT_ITEM_COLLECTION,
        store_collection: str = DEFAULT_STORE_COLLECTION,
    ) -> None:
        self._database = database
        self.player_collection = player_collection
        self.item_collection = item_collection
        self.store_collection = store_collection

    async def _call(self, operation: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except DuplicateKeyError:
            raise
        except PyMongoError as exc:
            raise PersistenceError(f"{operation} failed: {exc}") from exc

    async def ensure_indexes(self) -> None:
        """Make the store enforce unique identifiers in every collection."""

        for name in (self.player_collection, self.item_collection, self.store_collection):
            collection = self._database[name]
            await self._call(
                f"index creation on {name}",
                collection.create_index,
                [(KEY_FIELD, ASCENDING)],
                unique=True,
            )
            log.info("Ensured unique %s index on %s", KEY_FIELD, name)

    async def get(self, collection_name: str, key: object) -> Optional[Mapping[str, Any]]:
        collection = self._database[collection_name]
        return await self._call(
            f"lookup in {collection_name}",
            collection.find_one,
            {KEY_FIELD: key},
            projection={"_id": False},
        )

    async def upsert(self, collection_name: str, entity: Document) -> None:
        """Insert ``entity`` or replace the mutable fields of its stored copy.

        The identifier is only ever used as the filter, so an existing
        record keeps its ``id``.
        """

        document = entity.to_document()
        key = document[KEY_FIELD]
        fields = {name: value for name, value in document.items() if name != KEY_FIELD}
        collection = self._database[collection_name]
        operation = f"upsert of {key!r} in {collection_name}"
        try:
            await self._call(operation, collection.update_one, {KEY_FIELD: key}, {"$set": fields}, upsert=True)
        except DuplicateKeyError:
            # A concurrent upsert inserted the same id first; this attempt now updates it.
            log.info("Retrying %s after concurrent insert", operation)
            try:
                await self._call(operation, collection.update_one, {KEY_FIELD: key}, {"$set": fields}, upsert=True)
            except DuplicateKeyError as exc:
                raise PersistenceError(f"{operation} failed: {exc}") from exc

    async def next_id(self, collection_name: str) -> int:
        """Return one more than the highest ``id`` in the collection, or 1 if it is empty."""

        collection = self._database[collection_name]
        highest = await self._call(
            f"id allocation in {collection_name}",
            collection.find_one,
            {},
            projection={KEY_FIELD: True, "_id": False},
            sort=[(KEY_FIELD, DESCENDING)],
        )
        if highest is None:
            return 1
        return int(highest[KEY_FIELD]) + 1

    async def insert_new(
        self,
        collection_name: str,
        factory: Callable[[int], EntityT],
        *,
        max_attempts: int = 5,
    ) -> EntityT:
        """Allocate an id, build the entity with ``factory`` and insert it.

        The unique index rejects an id that a concurrent caller claimed
        between allocation and insert, in which case a fresh id is allocated.
        """

        collection = self._database[collection_name]
        for attempt in range(1, max_attempts + 1):
            entity = factory(await self.next_id(collection_name))
            document = entity.to_document()
            try:
                await self._call(f"insert into {collection_name}", collection.insert_one, document)
            except DuplicateKeyError:
                log.warning(
                    "Identifier %s in %s was taken concurrently (attempt %s/%s)",
                    document[KEY_FIELD],
                    collection_name,
                    attempt,
                    max_attempts,
                )
                continue
            return entity
        raise PersistenceError(
            f"could not allocate a unique id in {collection_name} after {max_attempts} attempts"
        )

    async def save_player(self, player: Player) -> None:
        await self.upsert(self.player_collection, player)

    async def get_player(self, player_id: str) -> Optional[Player]:
        document = await self.get(self.player_collection, player_id)
        return Player.from_document(document) if document else None

    async def save_item(self, item: Item) -> None:
        await self.upsert(self.item_collection, item)

    async def get_item(self, item_id: int) -> Optional[Item]:
        document = await self.get(self.item_collection, item_id)
        return Item.from_document(document) if document else None

    async def create_item(self, name: str, desc: str, cost: int, sell: int) -> Item:
        return await self.insert_new(
            self.item_collection,
            lambda item_id: Item(id=item_id, name=name, desc=desc, cost=cost, sell=sell),
        )
