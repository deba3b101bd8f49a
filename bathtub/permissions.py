"""Capability checks for privileged commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .config import BotConfig


@dataclass(frozen=True)
class PrivilegePolicy:
    """Users and roles allowed to create players and items.

    An empty policy grants nobody the capability.
    """

    user_ids: frozenset[str] = field(default_factory=frozenset)
    role_ids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_config(cls, config: BotConfig) -> "PrivilegePolicy":
        return cls(user_ids=config.privileged_user_ids, role_ids=config.privileged_role_ids)

    def can_manage_entities(self, actor_id: object, role_ids: Iterable[object] = ()) -> bool:
        if str(actor_id) in self.user_ids:
            return True
        return any(str(role_id) in self.role_ids for role_id in role_ids)
