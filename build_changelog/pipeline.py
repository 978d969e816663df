"""Changelog pipeline: resolve → extract → filter → reference → render.

This module wires the engine together:
1. Resolve the build tag range of a variant (or the range ending at a
   snapshot tag)
2. Extract commit subjects in that range, dropping merges and reverts
3. Filter by message key and deduplicate
4. Parse issue references
5. Render the result as plain text, escaped markup or a chat payload

When a variant has no build tag yet, the whole history up to HEAD is used.
"""

from __future__ import annotations

import json
from collections.abc import Mapping

from loguru import logger as default_logger

from .commits import CommitExtractor, deduplicate, filter_by_key, strip_message_key
from .models import BuildTag, Changelog, ChangelogEntry, CommitRange, TagRange
from .references import extract_references
from .render import (
    SLACK_ESCAPE_RULES,
    escape,
    render_chat_blocks,
    render_markup,
    render_plain_text,
)
from .resolver import TagRangeResolver
from .settings import ChangelogSettings

FORMATS = ("plain", "markup", "chat")


class ChangelogBuilder:
    """Builds Changelog values for variants.

    Args:
        resolver: Finds the tag range to cover.
        extractor: Reads commit subjects for a range.
        settings: Base settings; per-variant overrides are applied here.
        logger: Loguru-compatible logger.
    """

    def __init__(
        self,
        resolver: TagRangeResolver,
        extractor: CommitExtractor,
        settings: ChangelogSettings,
        logger=default_logger,
    ) -> None:
        self.resolver = resolver
        self.extractor = extractor
        self.settings = settings
        self.logger = logger

    def build(self, variant: str) -> Changelog:
        """Changelog of the variant's current build tag."""
        tag_range = self.resolver.find_tag_range(variant)
        if tag_range is None:
            self.logger.warning(
                "no build tag for variant {}; using the full history", variant
            )
            commit_range = CommitRange.full_history()
        else:
            commit_range = tag_range.as_commit_range()
        return self._assemble(variant, tag_range, commit_range)

    def build_for_tag(self, tag: BuildTag) -> Changelog:
        """Changelog of a previously captured (snapshot) build tag."""
        tag_range = self.resolver.find_tag_range_for(tag)
        return self._assemble(tag.build_variant, tag_range, tag_range.as_commit_range())

    def _assemble(
        self, variant: str, tag_range: TagRange | None, commit_range: CommitRange
    ) -> Changelog:
        settings = self.settings.for_variant(variant)
        subjects = self.extractor.extract_subjects(commit_range)
        subjects = deduplicate(filter_by_key(subjects, settings.message_key))
        references = extract_references(subjects, settings.reference_pattern)

        entries = []
        for subject in subjects:
            text = subject
            if settings.strip_message_key:
                text = strip_message_key(subject, settings.message_key)
            refs = references.get(subject, []) if references else []
            entries.append(ChangelogEntry(text=text, references=refs))

        self.logger.info(
            "{}: {} entr{} from {}",
            variant,
            len(entries),
            "y" if len(entries) == 1 else "ies",
            commit_range,
        )
        return Changelog(
            variant=variant,
            tag_range=tag_range,
            commit_range=commit_range,
            entries=entries,
            references=references,
        )


def annotated_heading(
    message: str, escape_rules: Mapping[str, str] | None = None
) -> str:
    """The annotated tag message as a bold heading."""
    return f"*{escape(message, escape_rules or {})}*"


def no_changes_message(
    previous: BuildTag | None,
    escape_rules: Mapping[str, str] | None = None,
    markup: bool = True,
) -> str:
    """Message used instead of an empty changelog.

    Names the previous build tag, or the start of the repository when
    there is none. With markup=False the text carries no emphasis or code
    markers and nothing is escaped.
    """
    if not markup:
        if previous is None:
            return "\n".join(
                [
                    "🌱 No changes detected",
                    "Starting point of the repository",
                    "",
                    "There are no commits to include yet.",
                    "This usually means this is the first build.",
                ]
            )
        return "\n".join(
            [
                "🔁 No changes detected",
                f"Since build {previous.name}",
                "",
                "No new commits or configuration updates were found.",
            ]
        )

    rules = escape_rules or {}
    if previous is None:
        return "\n".join(
            [
                "🌱 *No changes detected*",
                f"_{escape('Starting point of the repository', rules)}_",
                "",
                escape("There are no commits to include yet.", rules),
                escape("This usually means this is the first build.", rules),
            ]
        )
    # Inside code spans only ` and \ are special.
    code_rules = {ch: r for ch, r in rules.items() if ch in "`\\"}
    return "\n".join(
        [
            "🔁 *No changes detected*",
            f"_{escape('Since build ', rules)}`{escape(previous.name, code_rules)}`_",
            "",
            escape("No new commits or configuration updates were found.", rules),
        ]
    )


def compose_text(
    changelog: Changelog,
    escape_rules: Mapping[str, str] | None = None,
    markup: bool = True,
) -> str:
    """Full changelog text: tag heading and entries, or the no-changes message.

    Args:
        changelog: The changelog to compose.
        escape_rules: Applied to commit and tag text; the bold and italic
            markers themselves are never escaped.
        markup: False gives a no-changes message without emphasis markers.
    """
    tag_range = changelog.tag_range
    if not changelog.entries:
        previous = tag_range.previous if tag_range else None
        return no_changes_message(previous, escape_rules, markup=markup)

    if escape_rules:
        body = render_markup(changelog.entries, escape_rules)
    else:
        body = render_plain_text(changelog.entries)
    if tag_range is not None and tag_range.current.message:
        return f"{annotated_heading(tag_range.current.message, escape_rules)}\n\n{body}"
    return body


def render(changelog: Changelog, fmt: str, settings: ChangelogSettings) -> str:
    """Render a changelog in one of FORMATS.

    The chat format is the JSON text of a Slack-style block payload.

    Raises:
        ValueError: If fmt is not one of FORMATS.
    """
    if fmt == "plain":
        return compose_text(changelog, markup=False)
    if fmt == "markup":
        return compose_text(changelog, settings.escape_table)
    if fmt == "chat":
        tag_range = changelog.tag_range
        title = tag_range.current.message if tag_range else None
        if changelog.entries:
            payload = render_chat_blocks(
                changelog.entries,
                settings.chat_limits,
                title=title or None,
                issue_url_prefix=settings.issue_url_prefix,
            )
        else:
            previous = tag_range.previous if tag_range else None
            text = no_changes_message(previous, SLACK_ESCAPE_RULES)
            section = {"type": "section", "text": {"type": "mrkdwn", "text": text}}
            payload = {"blocks": [section]}
        return json.dumps(payload, indent=2, ensure_ascii=False)
    raise ValueError(f"Unknown format '{fmt}' (expected one of {', '.join(FORMATS)})")
