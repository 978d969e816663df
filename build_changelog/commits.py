"""Commit subject extraction and filtering.

Subjects come from the executor newest first. Merge and revert commits are
dropped; the remaining subjects can be narrowed to a message key (e.g.
"[CHANGELOG]") and deduplicated before they become changelog entries.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from loguru import logger as default_logger

from .models import CommitRange
from .vcs import VcsExecutor

MERGE_PREFIXES = (
    "Merge branch",
    "Merge pull request",
    "Merge remote-tracking branch",
    "Merge tag",
    "Merge commit",
)
DEFAULT_REVERT_MARKER = 'Revert "'


class CommitExtractor:
    """Reads commit subjects for a commit range.

    Args:
        executor: Source of commit subjects.
        revert_marker: Subjects starting with this are dropped.
        merge_prefixes: Subjects starting with any of these are dropped.
        logger: Loguru-compatible logger.
    """

    def __init__(
        self,
        executor: VcsExecutor,
        revert_marker: str = DEFAULT_REVERT_MARKER,
        merge_prefixes: Sequence[str] = MERGE_PREFIXES,
        logger=default_logger,
    ) -> None:
        self.executor = executor
        self.revert_marker = revert_marker
        self.merge_prefixes = tuple(merge_prefixes)
        self.logger = logger

    def extract_subjects(self, commit_range: CommitRange) -> list[str]:
        """Subjects of the commits in the range, newest first.

        Raises:
            VcsQueryError: If the executor query fails.
        """
        if commit_range.is_empty:
            self.logger.debug("empty commit range {}", commit_range)
            return []
        subjects = self.executor.commit_subjects(
            commit_range.from_sha, commit_range.to_sha
        )
        kept = [s for s in subjects if not self._is_noise(s)]
        self.logger.debug(
            "{}: {} commit(s), {} after dropping merges and reverts",
            commit_range,
            len(subjects),
            len(kept),
        )
        return kept

    def _is_noise(self, subject: str) -> bool:
        if subject.startswith(self.merge_prefixes):
            return True
        return bool(self.revert_marker) and subject.startswith(self.revert_marker)


def filter_by_key(subjects: Iterable[str], message_key: str | None) -> list[str]:
    """Keep subjects containing message_key (case-sensitive).

    An empty or missing key keeps everything.
    """
    if not message_key:
        return list(subjects)
    return [s for s in subjects if message_key in s]


def deduplicate(subjects: Iterable[str]) -> list[str]:
    """Drop repeated subjects, keeping the first occurrence."""
    return list(dict.fromkeys(subjects))


def strip_message_key(subject: str, message_key: str | None) -> str:
    """Remove the message key and a colon following it from a subject.

    >>> strip_message_key("[CL]: Fix login", "[CL]")
    'Fix login'
    """
    if not message_key:
        return subject
    stripped = re.sub(rf"\s*{re.escape(message_key)}:?\s*", " ", subject)
    return stripped.strip()
