"""Persistent entities and their document representations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping

DEFAULT_STARTING_GOLD: int = 100


def _int_list(values: object) -> List[int]:
    if not values:
        return []
    return [int(value) for value in values]  # type: ignore[union-attr]


@dataclass
class Player:
    """A registered player keyed by their chat platform identity."""

    id: str
    charname: str
    gold: int = DEFAULT_STARTING_GOLD
    items: List[int] = field(default_factory=list)

    def to_document(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "charname": self.charname,
            "gold": self.gold,
            "items": list(self.items),
        }

    @classmethod
    def from_document(cls, data: Mapping[str, object]) -> "Player":
        return cls(
            id=str(data["id"]),
            charname=str(data.get("charname", "")),
            gold=int(data.get("gold", DEFAULT_STARTING_GOLD)),  # type: ignore[arg-type]
            items=_int_list(data.get("items")),
        )


@dataclass
class Item:
    """An item definition with a system assigned numeric identifier."""

    id: int
    name: str
    desc: str
    cost: int
    sell: int

    def to_document(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "desc": self.desc,
            "cost": self.cost,
            "sell": self.sell,
        }

    @classmethod
    def from_document(cls, data: Mapping[str, object]) -> "Item":
        return cls(
            id=int(data["id"]),  # type: ignore[arg-type]
            name=str(data.get("name", "")),
            desc=str(data.get("desc", "")),
            cost=int(data.get("cost", 0)),  # type: ignore[arg-type]
            sell=int(data.get("sell", 0)),  # type: ignore[arg-type]
        )


@dataclass
class Store:
    id: int
    name: str
    inv: List[int] = field(default_factory=list)

    def to_document(self) -> Dict[str, object]:
        return {"id": self.id, "name": self.name, "inv": list(self.inv)}

    @classmethod
    def from_document(cls, data: Mapping[str, object]) -> "Store":
        return cls(
            id=int(data["id"]),  # type: ignore[arg-type]
            name=str(data.get("name", "")),
            inv=_int_list(data.get("inv")),
        )
