"""Build tag snapshot files.

The snapshot captures the build tag that was current when a build started,
so that later commands operate on the same tag even if the repository's
tags change in between (common on CI). The file is a small UTF-8 JSON
object:

    {"name": "app/13", "commitSha": "...", "message": "",
     "buildVariant": "app", "buildNumber": 13}
"""

from __future__ import annotations

import json
from pathlib import Path

from .errors import SnapshotParseError
from .models import BuildTag

# Checked in this order; the first bad one is reported.
_REQUIRED_FIELDS: tuple[tuple[str, type], ...] = (
    ("name", str),
    ("commitSha", str),
    ("buildVariant", str),
    ("buildNumber", int),
)


def serialize_snapshot(tag: BuildTag) -> str:
    """Serialize a build tag to snapshot JSON."""
    return json.dumps(tag.model_dump(by_alias=True), indent=2, ensure_ascii=False)


def deserialize_snapshot(text: str) -> BuildTag:
    """Parse snapshot JSON back into a BuildTag.

    Raises:
        SnapshotParseError: If the text is not a JSON object, or a required
            field is missing or has the wrong type. The error names the
            first offending field.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotParseError(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SnapshotParseError("Snapshot must be a JSON object")

    for field, expected in _REQUIRED_FIELDS:
        if field not in data:
            raise SnapshotParseError(f"Snapshot field '{field}' not found", field)
        value = data[field]
        # bool is an int subclass, but true/false is never a build number
        if not isinstance(value, expected) or isinstance(value, bool):
            raise SnapshotParseError(
                f"Snapshot field '{field}' must be {expected.__name__}, "
                f"got {type(value).__name__}",
                field,
            )

    message = data.get("message")
    if message is None:
        message = ""
    elif not isinstance(message, str):
        raise SnapshotParseError(
            f"Snapshot field 'message' must be str, got {type(message).__name__}",
            "message",
        )

    return BuildTag(
        name=data["name"],
        commit_sha=data["commitSha"],
        message=message,
        build_variant=data["buildVariant"],
        build_number=data["buildNumber"],
    )


def write_snapshot(path: Path, tag: BuildTag) -> None:
    """Write the snapshot file, replacing any previous one."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_snapshot(tag) + "\n", encoding="utf-8")


def read_snapshot(path: Path) -> BuildTag:
    """Read a snapshot file written by write_snapshot().

    Raises:
        SnapshotParseError: If the file cannot be read or parsed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SnapshotParseError(f"Cannot read snapshot file {path}: {exc}") from exc
    try:
        return deserialize_snapshot(text)
    except SnapshotParseError as exc:
        raise SnapshotParseError(f"{path}: {exc}", exc.field) from exc
