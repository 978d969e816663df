"""Exception hierarchy for the changelog engine.

Every error raised by the engine derives from ChangelogError so the command
line can turn it into a single failure message. None of these are caught
inside the engine: a malformed tag or an unreadable snapshot must fail the
invoking command rather than produce a silently wrong changelog.
"""

from __future__ import annotations


class ChangelogError(Exception):
    """Base class for all engine errors."""


class MalformedTagError(ChangelogError):
    """A tag name does not fit the configured naming convention."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Malformed build tag '{name}': {reason}")
        self.name = name


class InvalidTagPatternError(ChangelogError):
    """The configured tag naming convention itself is unusable."""


class SnapshotParseError(ChangelogError):
    """A persisted tag snapshot is unreadable or has a bad field."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class VcsQueryError(ChangelogError):
    """A version-control query failed or referenced an unknown commit."""


class TagNotFoundError(VcsQueryError):
    """A tag captured earlier is no longer present in the history."""


class TagOrderError(ChangelogError):
    """Tag creation order contradicts build number order."""


class ConfigError(ChangelogError):
    """Settings are invalid or a variant cannot be resolved."""
