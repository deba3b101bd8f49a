"""Prefix command dispatch for incoming chat messages."""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from .dice import format_roll, parse_integer, roll
from .errors import ParseError, PersistenceError
from .models import Player
from .permissions import PrivilegePolicy
from .repository import EntityRepository

log = logging.getLogger(__name__)

PONG_REPLY = "Pong!"
ITEM_CREATED_REPLY = "New item added successfully."

IGNORED = "ignored"
REPLIED = "replied"
COMPLETED = "completed"
REJECTED = "rejected"
DENIED = "denied"
FAILED = "failed"

_MENTION = re.compile(r"<@!?(?P<id>\d+)>")

Reply = Callable[[str], Awaitable[object]]
Handler = Callable[["IncomingMessage", str, Reply], Awaitable["CommandOutcome"]]


@dataclass(frozen=True)
class IncomingMessage:
    """The parts of a chat message the router looks at."""

    author_id: str
    channel_id: str
    content: str
    author_role_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class CommandOutcome:
    status: str
    command: Optional[str] = None
    reason: Optional[str] = None


def parse_player_arguments(arguments: str) -> tuple[str, str]:
    """Return ``(player_id, name)`` from ``"<id> <name>"``.

    A mention such as ``<@1234>`` is reduced to the bare identifier.
    """

    tokens = arguments.split()
    if len(tokens) != 2:
        raise ParseError("usage: newplayer <@userID> Name")
    target, name = tokens
    mention = _MENTION.fullmatch(target)
    if mention:
        target = mention.group("id")
    return target, name


def parse_item_arguments(arguments: str) -> tuple[str, str, int, int]:
    """Parse ``<name><desc><cost><sell>`` into its four fields."""

    payload = arguments.strip()
    if not (payload.startswith("<") and payload.endswith(">")) or len(payload) < 2:
        raise ParseError("usage: newitem <name><desc><cost><sell>")
    fields = payload[1:-1].split("><")
    if len(fields) != 4:
        raise ParseError(f"expected 4 item fields, got {len(fields)}")
    name, desc, cost_text, sell_text = fields
    cost = parse_integer(cost_text, "item cost")
    sell = parse_integer(sell_text, "item sell value")
    return name, desc, cost, sell


class CommandRouter:
    """Match prefixed commands and run their handlers.

    The router keeps no state between messages, so concurrent dispatches
    share nothing but the repository.
    """

    def __init__(
        self,
        repository: EntityRepository,
        policy: PrivilegePolicy,
        *,
        prefix: str = "!",
        rng: random.Random | None = None,
    ) -> None:
        self.repository = repository
        self.policy = policy
        self.prefix = prefix
        self._rng = rng
        self._routes: Sequence[tuple[str, Handler, bool]] = (
            ("roll", self._handle_roll, False),
            ("newplayer", self._handle_new_player, True),
            ("newitem", self._handle_new_item, True),
        )

    async def dispatch(
        self,
        message: IncomingMessage,
        reply: Reply,
        *,
        self_id: Optional[str] = None,
    ) -> CommandOutcome:
        outcome = await self._route(message, reply, self_id)
        self._record(message, outcome)
        return outcome

    async def _route(
        self, message: IncomingMessage, reply: Reply, self_id: Optional[str]
    ) -> CommandOutcome:
        if self_id is not None and str(message.author_id) == str(self_id):
            return CommandOutcome(IGNORED, reason="own message")
        if not message.content.startswith(self.prefix):
            return CommandOutcome(IGNORED)

        command_line = message.content[len(self.prefix):]
        if command_line == "ping":
            await reply(PONG_REPLY)
            return CommandOutcome(REPLIED, "ping")

        for name, handler, privileged in self._routes:
            if not command_line.startswith(name + " "):
                continue
            if privileged and not self.policy.can_manage_entities(
                message.author_id, message.author_role_ids
            ):
                return CommandOutcome(DENIED, name, "author lacks entity management rights")
            arguments = command_line[len(name) + 1:]
            try:
                return await handler(message, arguments, reply)
            except ParseError as exc:
                return CommandOutcome(REJECTED, name, str(exc))
            except PersistenceError as exc:
                return CommandOutcome(FAILED, name, str(exc))

        return CommandOutcome(IGNORED, reason="unknown command")

    def _record(self, message: IncomingMessage, outcome: CommandOutcome) -> None:
        if outcome.command is None:
            return
        extra = {
            "command": outcome.command,
            "status": outcome.status,
            "author_id": message.author_id,
            "channel_id": message.channel_id,
        }
        args = (
            outcome.command,
            outcome.status,
            message.author_id,
            message.channel_id,
            outcome.reason or "-",
        )
        text = "Command %s %s (author %s, channel %s): %s"
        if outcome.status in (REPLIED, COMPLETED):
            log.info(text, *args, extra=extra)
        elif outcome.status == FAILED:
            log.error(text, *args, extra=extra)
        else:
            log.warning(text, *args, extra=extra)

    async def _handle_roll(
        self, message: IncomingMessage, arguments: str, reply: Reply
    ) -> CommandOutcome:
        result = roll(arguments, self._rng)
        await reply(format_roll(result))
        return CommandOutcome(REPLIED, "roll")

    async def _handle_new_player(
        self, message: IncomingMessage, arguments: str, reply: Reply
    ) -> CommandOutcome:
        player_id, name = parse_player_arguments(arguments)
        await self.repository.save_player(Player(id=player_id, charname=name))
        return CommandOutcome(COMPLETED, "newplayer")

    async def _handle_new_item(
        self, message: IncomingMessage, arguments: str, reply: Reply
    ) -> CommandOutcome:
        name, desc, cost, sell = parse_item_arguments(arguments)
        item = await self.repository.create_item(name, desc, cost, sell)
        log.info("Created item %s (%s)", item.id, item.name)
        await reply(ITEM_CREATED_REPLY)
        return CommandOutcome(REPLIED, "newitem")
