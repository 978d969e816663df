"""TOML reading utilities.

Uses tomlkit, the same parser used to edit pyproject.toml files, so that
settings are read exactly as they are written there.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from .errors import ConfigError

TOOL_TABLE = "build-changelog"


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml (or any TOML) file.

    Raises:
        ConfigError: If the file cannot be read or is not valid TOML.
    """
    try:
        return tomlkit.parse(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc
    except TOMLKitError as exc:
        raise ConfigError(f"{path} is not valid TOML: {exc}") from exc


def get_tool_table(doc: tomlkit.TOMLDocument, name: str = TOOL_TABLE) -> dict[str, Any]:
    """Extract [tool.<name>] as plain Python values.

    Returns an empty dict when the table is absent, so a project without
    configuration runs on defaults.

    Raises:
        ConfigError: If tool.<name> exists but is not a table.
    """
    table = doc.get("tool", {}).get(name)
    if table is None:
        return {}
    if not isinstance(table, dict):
        raise ConfigError(f"[tool.{name}] must be a table")
    return table.unwrap() if hasattr(table, "unwrap") else dict(table)
