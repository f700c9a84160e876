"""Exception types raised by the ghost chain layer."""

from __future__ import annotations


class GhostError(Exception):
    """Base class for ghostchain errors."""


class ChainContractError(GhostError, TypeError):
    """A chain was built or evaluated against the wrong kind of value.

    Raised synchronously at the point of misuse and never cached.
    """


class ConfigError(GhostError, ValueError):
    """Configuration payload failed validation."""
