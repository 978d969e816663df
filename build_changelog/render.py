"""Changelog rendering.

Pure functions turning changelog entries into text for a destination:
plain text for logs and files, escaped markup for chat bots that parse
Markdown (Telegram MarkdownV2 by default), and Slack-style block payloads
that respect the service's size limits.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from .models import ChangelogEntry, ChatLimits

ELLIPSIS = "…"
HEADER_MAX_CHARS = 150

MARKDOWN_V2_ESCAPE_RULES: dict[str, str] = {
    ch: "\\" + ch for ch in "\\_*[]()~`>#+-=|{}.!"
}
SLACK_ESCAPE_RULES: dict[str, str] = {"&": "&amp;", "<": "&lt;", ">": "&gt;"}

ESCAPE_PRESETS: dict[str, dict[str, str]] = {
    "markdown-v2": MARKDOWN_V2_ESCAPE_RULES,
    "slack": SLACK_ESCAPE_RULES,
    "none": {},
}


def escape(text: str, escape_rules: Mapping[str, str]) -> str:
    """Replace every character that has a rule, in a single pass.

    Replacements are never escaped again, so "\\" in a rule's output is
    safe even when "\\" itself has a rule.
    """
    if not escape_rules:
        return text
    return text.translate(str.maketrans(dict(escape_rules)))


def ellipsize(text: str, size: int) -> str:
    """Cut text to at most `size` characters, ending in an ellipsis if cut."""
    if size < 1:
        raise ValueError(f"size must be at least 1, got {size}")
    if len(text) <= size:
        return text
    return text[: size - 1] + ELLIPSIS


def render_plain_text(entries: Sequence[ChangelogEntry]) -> str:
    return "\n".join(entry.text for entry in entries)


def render_markup(
    entries: Sequence[ChangelogEntry],
    escape_rules: Mapping[str, str] = MARKDOWN_V2_ESCAPE_RULES,
) -> str:
    """Escaped entries, one per line."""
    return "\n".join(escape(entry.text, escape_rules) for entry in entries)


def _link_references(text: str, references: Sequence[str], url_prefix: str) -> str:
    if not references:
        return text
    alternatives = sorted(references, key=len, reverse=True)
    regex = re.compile("|".join(re.escape(ref) for ref in alternatives))
    return regex.sub(lambda m: f"<{url_prefix}{m.group(0)}|{m.group(0)}>", text)


def render_chat_blocks(
    entries: Sequence[ChangelogEntry],
    limits: ChatLimits,
    title: str | None = None,
    issue_url_prefix: str | None = None,
) -> dict:
    """Build a Slack-style block payload.

    Args:
        entries: Changelog entries, newest first.
        limits: At most `max_entries` entries are kept, each cut to
            `max_chars_per_entry` characters before escaping.
        title: Optional header text.
        issue_url_prefix: When set, references become links to
            prefix + reference.

    Returns:
        {"blocks": [...]}, ending with a context block counting the
        dropped entries when there are more entries than max_entries.
    """
    blocks: list[dict] = []
    if title:
        blocks.append(
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": ellipsize(title, HEADER_MAX_CHARS),
                },
            }
        )

    for entry in entries[: limits.max_entries]:
        text = ellipsize(entry.text, limits.max_chars_per_entry)
        text = escape(text, SLACK_ESCAPE_RULES)
        if issue_url_prefix:
            text = _link_references(text, entry.references, issue_url_prefix)
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": text}})

    dropped = len(entries) - limits.max_entries
    if dropped > 0:
        blocks.append(
            {
                "type": "context",
                "elements": [
                    {"type": "mrkdwn", "text": f"{ELLIPSIS} and {dropped} more"}
                ],
            }
        )
    return {"blocks": blocks}
