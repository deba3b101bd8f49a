"""Listener that feeds guild messages into the command router."""

from __future__ import annotations

import logging

import discord
from discord.ext import commands

from bathtub import CommandRouter, IncomingMessage, PrivilegePolicy

log = logging.getLogger(__name__)


def to_incoming(message: discord.Message) -> IncomingMessage:
    roles = getattr(message.author, "roles", None) or ()
    return IncomingMessage(
        author_id=str(message.author.id),
        channel_id=str(message.channel.id),
        content=message.content,
        author_role_ids=tuple(str(role.id) for role in roles),
    )


class PrefixCommands(commands.Cog):
    """Answer prefixed text commands such as ``!roll 3d6``."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot
        config = bot.config  # type: ignore[attr-defined]
        self.router = CommandRouter(
            bot.repository,  # type: ignore[attr-defined]
            PrivilegePolicy.from_config(config),
            prefix=config.prefix,
        )

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        self_id = str(self.bot.user.id) if self.bot.user else None

        async def reply(text: str) -> None:
            try:
                await message.channel.send(text)
            except discord.HTTPException as exc:
                log.warning("Error sending message to %s: %s", message.channel.id, exc)

        try:
            await self.router.dispatch(to_incoming(message), reply, self_id=self_id)
        except Exception:
            log.exception("Unhandled error while processing message %s", message.id)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(PrefixCommands(bot))
