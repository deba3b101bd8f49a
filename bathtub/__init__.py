"""Command routing and persistence for the Bathtub chat bot."""

from .config import BotConfig, load_config
from .dice import DiceRoll, format_roll, roll
from .errors import BathtubError, ConfigError, ParseError, PersistenceError
from .models import Item, Player, Store
from .permissions import PrivilegePolicy
from .repository import EntityRepository
from .router import CommandOutcome, CommandRouter, IncomingMessage

__all__ = [
    "BathtubError",
    "BotConfig",
    "CommandOutcome",
    "CommandRouter",
    "ConfigError",
    "DiceRoll",
    "EntityRepository",
    "IncomingMessage",
    "Item",
    "ParseError",
    "PersistenceError",
    "Player",
    "PrivilegePolicy",
    "Store",
    "format_roll",
    "load_config",
    "roll",
]
