"""Version-control executor interface and its git implementation.

The engine never shells out by itself: resolver and extractor receive a
VcsExecutor, which keeps them testable with an in-memory fake and leaves
timeouts and process handling to the executor.
"""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from loguru import logger as default_logger

from .errors import VcsQueryError
from .models import GitTagRef
from .shell import git

_FIELD_SEP = "\x00"
_RECORD_SEP = "\x1e"
# name, tag object type, object sha, peeled commit sha (annotated only), message.
# NUL-separated: str.strip() counts \x1c-\x1f as whitespace.
_TAG_FORMAT = (
    "%(refname:strip=2)%00%(objecttype)%00%(objectname)%00%(*objectname)"
    "%00%(contents)%1e"
)


class VcsExecutor(ABC):
    """Read-only queries the changelog engine needs from version control."""

    @abstractmethod
    def find_build_tags(
        self, globs: Sequence[str], limit: int | None
    ) -> list[GitTagRef] | None:
        """List tags matching any of the globs, newest first.

        Order is tag creation order (tagger date for annotated tags, commit
        date for lightweight ones), never lexical order.

        Args:
            globs: Tag name globs (e.g. "app/*").
            limit: Maximum number of tags to return; None for all.

        Returns:
            The matching tags, or None when there are none.

        Raises:
            VcsQueryError: If the query fails.
        """

    @abstractmethod
    def commit_subjects(self, from_sha: str | None, to_sha: str) -> list[str]:
        """List commit subjects in from_sha..to_sha, newest first.

        Args:
            from_sha: Exclusive start; None means the root of history.
            to_sha: Inclusive end.

        Raises:
            VcsQueryError: If the query fails, e.g. on an unknown commit.
        """


class GitExecutor(VcsExecutor):
    """VcsExecutor backed by the git command line.

    Args:
        repo: Repository directory; defaults to the current directory.
        logger: Loguru-compatible logger.
    """

    def __init__(self, repo: Path | None = None, logger=default_logger) -> None:
        self.repo = repo
        self.logger = logger

    def _git(self, *args: str) -> str:
        self.logger.debug("git {}", " ".join(args))
        try:
            return git(*args, cwd=self.repo)
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            raise VcsQueryError(
                f"git {' '.join(args)} failed with exit code {exc.returncode}"
                + (f": {stderr}" if stderr else "")
            ) from exc
        except OSError as exc:
            raise VcsQueryError(f"Cannot run git: {exc}") from exc

    def find_build_tags(
        self, globs: Sequence[str], limit: int | None
    ) -> list[GitTagRef] | None:
        output = self._git(
            "tag", "--list", "--sort=-creatordate", f"--format={_TAG_FORMAT}", *globs
        )
        tags = [_parse_tag_record(r) for r in output.split(_RECORD_SEP) if r.strip()]
        if limit is not None:
            tags = tags[:limit]
        self.logger.debug("tags for {}: {}", list(globs), [t.name for t in tags])
        return tags or None

    def commit_subjects(self, from_sha: str | None, to_sha: str) -> list[str]:
        rev = f"{from_sha}..{to_sha}" if from_sha else to_sha
        output = self._git("log", "--no-merges", "--format=%s", rev, "--")
        return output.splitlines() if output else []


def _parse_tag_record(record: str) -> GitTagRef:
    fields = record.lstrip("\n").split(_FIELD_SEP, 4)
    if len(fields) != 5:
        raise VcsQueryError(f"Unexpected git tag record: {record!r}")
    name, object_type, object_sha, peeled_sha, contents = fields
    # Only annotated tags carry their own message; for lightweight tags
    # %(contents) is the commit message, which is not a tag annotation.
    annotated = object_type == "tag"
    return GitTagRef(
        name=name,
        commit_sha=peeled_sha if annotated and peeled_sha else object_sha,
        message=contents.strip() if annotated else "",
    )
