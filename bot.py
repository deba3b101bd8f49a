import logging
import os
from pathlib import Path

import discord
from discord.ext import commands
from pymongo import MongoClient
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi

from bathtub import BotConfig, EntityRepository, PersistenceError, load_config


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def get_cog_module_names(cogs_path: Path) -> list[str]:
    module_names: list[str] = []
    for path in cogs_path.glob("*.py"):
        if path.name.startswith("__"):
            continue
        module_names.append(f"cogs.{path.stem}")
    return module_names


def connect_database(config: BotConfig) -> MongoClient:
    client: MongoClient = MongoClient(config.mongo_uri, server_api=ServerApi("1"))
    try:
        client[config.database_name].command("ping")
    except PyMongoError as exc:
        client.close()
        raise PersistenceError(f"Unable to reach MongoDB: {exc}") from exc
    logging.info("Connected to MongoDB database %s", config.database_name)
    return client


def create_repository(config: BotConfig, client: MongoClient) -> EntityRepository:
    return EntityRepository(
        client[config.database_name],
        player_collection=config.player_collection,
        item_collection=config.item_collection,
        store_collection=config.store_collection,
    )


async def load_cogs(bot: commands.Bot, cogs_path: Path) -> None:
    module_names = get_cog_module_names(cogs_path)
    for module_name in module_names:
        await bot.load_extension(module_name)
        logging.info("Loaded cog: %s", module_name)


class BathtubBot(commands.Bot):
    """Bot whose text commands are handled by the command router cog."""

    def __init__(self, config: BotConfig, client: MongoClient) -> None:
        intents = discord.Intents.default()
        intents.guild_messages = True
        intents.message_content = True
        super().__init__(
            command_prefix=config.prefix,
            intents=intents,
            help_command=None,
        )
        self.config = config
        self.mongo_client = client
        self.repository = create_repository(config, client)
        self._cogs_path = Path(__file__).parent / "cogs"

    async def setup_hook(self) -> None:  # type: ignore[override]
        await self.repository.ensure_indexes()
        await load_cogs(self, self._cogs_path)
        logging.info("All cogs loaded")

    async def process_commands(self, message: discord.Message) -> None:  # type: ignore[override]
        """Prefix commands are routed by the cog listener instead."""
        return

    async def close(self) -> None:
        await super().close()
        self.mongo_client.close()
        logging.info("Closed MongoDB connection")


def create_bot(config: BotConfig, client: MongoClient) -> commands.Bot:
    return BathtubBot(config, client)


def main() -> None:
    configure_logging()
    config = load_config()
    logging.info("Command prefix: %s", config.prefix)
    client = connect_database(config)
    bot = create_bot(config, client)

    try:
        bot.run(config.token, log_handler=None)
    except KeyboardInterrupt:
        logging.info("Shutting down bot")


if __name__ == "__main__":
    main()
