"""Exception hierarchy shared by the bot's command and storage layers."""

from __future__ import annotations


class BathtubError(Exception):
    """Base class for all bot errors."""


class ParseError(BathtubError, ValueError):
    """Raised when a command's arguments cannot be parsed."""


class PersistenceError(BathtubError):
    """Raised when the document store rejects a read or write."""


class ConfigError(BathtubError, RuntimeError):
    """Raised when the bot configuration is missing or invalid."""
