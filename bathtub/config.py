"""Runtime configuration loaded from the environment and an optional YAML file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional
from urllib.parse import quote_plus

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .repository import (
    DEFAULT_ITEM_COLLECTION,
    DEFAULT_PLAYER_COLLECTION,
    DEFAULT_STORE_COLLECTION,
)

DEFAULT_PREFIX = "!"
DEFAULT_DATABASE = "bathtub"
CONFIG_PATH_VARIABLE = "BATHTUB_CONFIG"


@dataclass(frozen=True)
class BotConfig:
    token: str
    mongo_uri: str
    prefix: str = DEFAULT_PREFIX
    database_name: str = DEFAULT_DATABASE
    player_collection: str = DEFAULT_PLAYER_COLLECTION
    item_collection: str = DEFAULT_ITEM_COLLECTION
    store_collection: str = DEFAULT_STORE_COLLECTION
    privileged_user_ids: frozenset[str] = field(default_factory=frozenset)
    privileged_role_ids: frozenset[str] = field(default_factory=frozenset)


def _split_ids(value: object) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        parts: Iterable[object] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        parts = value
    else:
        parts = [value]
    return frozenset(str(part).strip() for part in parts if str(part).strip())


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file {path} is not valid YAML: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return loaded


def build_mongo_uri(
    *,
    scheme: str,
    host: str,
    user: Optional[str] = None,
    password: Optional[str] = None,
    options: Optional[str] = None,
) -> str:
    """Assemble a connection string from its parts, quoting the credentials."""

    credentials = ""
    if user:
        credentials = quote_plus(user)
        if password:
            credentials += ":" + quote_plus(password)
        credentials += "@"
    uri = f"{scheme}://{credentials}{host}/"
    if options:
        uri += "?" + options.lstrip("?")
    return uri


def load_config(
    env: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
) -> BotConfig:
    """Build the bot configuration.

    Values from the YAML file act as defaults and environment variables
    override them. When ``env`` is omitted the process environment is used
    after loading ``.env``.
    """

    if env is None:
        load_dotenv()
        env = os.environ

    path_value = config_path or env.get(CONFIG_PATH_VARIABLE)
    file_values = _read_yaml(Path(path_value)) if path_value else {}
    collections = file_values.get("collections") or {}
    db_parts = file_values.get("db") or {}

    def pick(variable: str, file_value: object, default: object = None) -> Any:
        value = env.get(variable)
        if value not in (None, ""):
            return value
        if file_value not in (None, ""):
            return file_value
        return default

    token = pick("DISCORD_TOKEN", file_values.get("token"))
    if not token:
        raise ConfigError(
            "DISCORD_TOKEN environment variable is required. "
            "Set it in the .env file before starting the bot."
        )

    prefix = pick("COMMAND_PREFIX", file_values.get("prefix"), DEFAULT_PREFIX)
    if not str(prefix).strip():
        raise ConfigError("Command prefix must not be empty")

    mongo_uri = pick("MONGODB_URI", file_values.get("mongo_uri"))
    if not mongo_uri:
        host = pick("MONGODB_HOST", db_parts.get("host"))
        if not host:
            raise ConfigError("Set MONGODB_URI or MONGODB_HOST to locate the database")
        mongo_uri = build_mongo_uri(
            scheme=str(pick("MONGODB_SCHEME", db_parts.get("scheme"), "mongodb")),
            host=str(host),
            user=pick("MONGODB_USER", db_parts.get("user")),
            password=pick("MONGODB_PASSWORD", db_parts.get("password")),
            options=pick("MONGODB_OPTIONS", db_parts.get("options")),
        )

    return BotConfig(
        token=str(token),
        mongo_uri=str(mongo_uri),
        prefix=str(prefix),
        database_name=str(pick("MONGODB_DATABASE", file_values.get("database"), DEFAULT_DATABASE)),
        player_collection=str(collections.get("players") or DEFAULT_PLAYER_COLLECTION),
        item_collection=str(collections.get("items") or DEFAULT_ITEM_COLLECTION),
        store_collection=str(collections.get("stores") or DEFAULT_STORE_COLLECTION),
        privileged_user_ids=_split_ids(pick("PRIVILEGED_USER_IDS", file_values.get("privileged_users"))),
        privileged_role_ids=_split_ids(pick("PRIVILEGED_ROLE_IDS", file_values.get("privileged_roles"))),
    )
