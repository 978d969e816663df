"""Changelog settings.

Settings live in the [tool.build-changelog] table of pyproject.toml:

    [tool.build-changelog]
    message-key = "[CHANGELOG]"
    reference-pattern = "[A-Z][A-Z0-9]+-\\\\d+"
    variants = ["app", "beta"]

    [tool.build-changelog.overrides.beta]
    max-entries = 10

An override table is picked for a variant by trying the variant name and
then each fallback key ("default") in order.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .commits import DEFAULT_REVERT_MARKER
from .errors import ConfigError
from .models import ChatLimits
from .render import ESCAPE_PRESETS
from .tags import DEFAULT_TAG_PATTERN, TagConvention
from .toml import get_tool_table, load_pyproject

DEFAULT_FALLBACKS = ("default",)

# Tag discovery and commit extraction are shared by all variants.
_SHARED_KEYS = frozenset(
    {"overrides", "variants", "build-tag-pattern", "tag-glob", "revert-marker"}
)

T = TypeVar("T")


def _kebab(name: str) -> str:
    return name.replace("_", "-")


def resolve(
    mapping: Mapping[str, T], name: str, fallbacks: Sequence[str] = DEFAULT_FALLBACKS
) -> T:
    """Look up `name`, then each fallback key in order.

    Raises:
        ConfigError: If none of the keys is present.
    """
    for key in (name, *fallbacks):
        if key in mapping:
            return mapping[key]
    tried = ", ".join(repr(k) for k in (name, *fallbacks))
    raise ConfigError(f"No configuration for variant '{name}' (tried {tried})")


class ChangelogSettings(BaseModel):
    """Validated [tool.build-changelog] settings.

    Attributes:
        message_key: Only subjects containing this text are kept.
        strip_message_key: Remove the key from kept subjects.
        build_tag_pattern: Tag template or regex (see build_changelog.tags).
        tag_glob: Git glob for candidate tags; needed for regex patterns.
        reference_pattern: Regex finding issue keys in subjects.
        issue_url_prefix: Chat links point at prefix + issue key.
        max_entries: Chat payload entry cap.
        max_chars_per_entry: Chat payload per-entry character cap.
        escape_rules: Preset name ("markdown-v2", "slack", "none") or an
            explicit character-to-replacement table.
        revert_marker: Subjects starting with this are dropped.
        variants: Known build variants.
        overrides: Per-variant tables using the same keys.
    """

    model_config = ConfigDict(
        alias_generator=_kebab, populate_by_name=True, extra="forbid", frozen=True
    )

    message_key: str | None = None
    strip_message_key: bool = False
    build_tag_pattern: str = DEFAULT_TAG_PATTERN
    tag_glob: str | None = None
    reference_pattern: str | None = None
    issue_url_prefix: str | None = None
    max_entries: int = Field(default=50, ge=1)
    max_chars_per_entry: int = Field(default=3000, ge=2)
    escape_rules: str | dict[str, str] = "markdown-v2"
    revert_marker: str = DEFAULT_REVERT_MARKER
    variants: list[str] = Field(default_factory=list)
    overrides: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @field_validator("reference_pattern")
    @classmethod
    def _check_reference_pattern(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"not a valid regex: {exc}") from exc
        return value

    @field_validator("escape_rules")
    @classmethod
    def _check_escape_rules(cls, value: str | dict[str, str]) -> str | dict[str, str]:
        if isinstance(value, str):
            if value not in ESCAPE_PRESETS:
                presets = ", ".join(ESCAPE_PRESETS)
                raise ValueError(
                    f"unknown preset '{value}' (expected one of {presets})"
                )
        elif any(len(ch) != 1 for ch in value):
            raise ValueError("escape table keys must be single characters")
        return value

    @field_validator("overrides")
    @classmethod
    def _check_overrides(
        cls, value: dict[str, dict[str, Any]]
    ) -> dict[str, dict[str, Any]]:
        for name, table in value.items():
            shared = sorted(_SHARED_KEYS.intersection(table))
            if shared:
                raise ValueError(
                    f"override '{name}' cannot set {', '.join(shared)}; "
                    "these apply to all variants"
                )
        return value

    @property
    def escape_table(self) -> dict[str, str]:
        if isinstance(self.escape_rules, str):
            return ESCAPE_PRESETS[self.escape_rules]
        return self.escape_rules

    @property
    def chat_limits(self) -> ChatLimits:
        return ChatLimits(
            max_entries=self.max_entries, max_chars_per_entry=self.max_chars_per_entry
        )

    def convention(self) -> TagConvention:
        """The tag naming convention these settings describe.

        Raises:
            InvalidTagPatternError: If build-tag-pattern is unusable.
        """
        return TagConvention(self.build_tag_pattern, self.tag_glob)

    def for_variant(
        self, name: str, fallbacks: Sequence[str] = DEFAULT_FALLBACKS
    ) -> ChangelogSettings:
        """Settings for one variant, with its override table applied.

        Returns self when no override matches.

        Raises:
            ConfigError: If the merged settings are invalid.
        """
        if not any(key in self.overrides for key in (name, *fallbacks)):
            return self
        override = resolve(self.overrides, name, fallbacks)
        merged = self.model_dump(by_alias=True, exclude={"overrides"})
        merged.update(override)
        try:
            return ChangelogSettings.model_validate(merged)
        except ValidationError as exc:
            raise ConfigError(f"Invalid settings for variant '{name}':\n{exc}") from exc


def parse_settings(table: Mapping[str, Any]) -> ChangelogSettings:
    """Validate a raw [tool.build-changelog] table.

    Raises:
        ConfigError: If the table is invalid.
    """
    try:
        settings = ChangelogSettings.model_validate(dict(table))
    except ValidationError as exc:
        raise ConfigError(f"Invalid [tool.build-changelog] settings:\n{exc}") from exc
    # Surface bad overrides at load time rather than on first use.
    for name in settings.overrides:
        settings.for_variant(name)
    return settings


def load_settings(path: Path | None = None) -> ChangelogSettings:
    """Load settings from a TOML file.

    Args:
        path: File to read; defaults to ./pyproject.toml. A missing default
              file means default settings, a missing explicit file is an error.

    Raises:
        ConfigError: If the file cannot be read or the settings are invalid.
    """
    if path is None:
        path = Path("pyproject.toml")
        if not path.exists():
            return ChangelogSettings()
    return parse_settings(get_tool_table(load_pyproject(path)))
