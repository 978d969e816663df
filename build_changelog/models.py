"""Data models for build-changelog.

These Pydantic models are the values handed between the engine's
components. Tags and ranges are frozen: the resolver produces them and
nothing downstream mutates them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GitTagRef(BaseModel):
    """A tag as reported by the version-control executor.

    Attributes:
        name: Tag name, e.g. "app/13".
        commit_sha: The commit the tag points at (peeled for annotated tags).
        message: Annotation text, empty for lightweight tags.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    commit_sha: str
    message: str = ""


class TagName(BaseModel):
    """The parts a build tag name decomposes into."""

    model_config = ConfigDict(frozen=True)

    variant: str
    build_number: int
    suffix: str = ""


class BuildTag(BaseModel):
    """A tag marking one released build of one variant.

    Field aliases match the keys of the persisted snapshot file.

    Attributes:
        name: Raw tag name.
        commit_sha: The commit the tag points at.
        message: Annotation text, empty when absent.
        build_variant: Variant the build belongs to.
        build_number: Monotonic build number within the variant.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    commit_sha: str = Field(alias="commitSha")
    message: str = ""
    build_variant: str = Field(alias="buildVariant")
    build_number: int = Field(alias="buildNumber")


class CommitRange(BaseModel):
    """Commits reachable from to_sha but not from from_sha.

    from_sha is exclusive; None means "from the root of history".
    """

    model_config = ConfigDict(frozen=True)

    from_sha: str | None
    to_sha: str

    @classmethod
    def full_history(cls, to_ref: str = "HEAD") -> CommitRange:
        """Range used when a variant has no build tag yet."""
        return cls(from_sha=None, to_sha=to_ref)

    @property
    def is_empty(self) -> bool:
        return self.from_sha == self.to_sha

    def __str__(self) -> str:
        return f"{self.from_sha}..{self.to_sha}" if self.from_sha else self.to_sha


class TagRange(BaseModel):
    """The current build tag of a variant and the one before it.

    Attributes:
        current: The newest build tag.
        previous: The build tag before it, or None if current is the
                  first tag ever created for the variant.
    """

    model_config = ConfigDict(frozen=True)

    current: BuildTag
    previous: BuildTag | None = None

    @property
    def points_same_commit(self) -> bool:
        return (
            self.previous is not None
            and self.previous.commit_sha == self.current.commit_sha
        )

    def as_commit_range(self) -> CommitRange:
        from_sha = self.previous.commit_sha if self.previous else None
        return CommitRange(from_sha=from_sha, to_sha=self.current.commit_sha)


class ChangelogEntry(BaseModel):
    """One filtered, deduplicated commit subject.

    Attributes:
        text: The subject line as it will be displayed.
        references: Issue keys found in the subject, in order of appearance.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    references: list[str] = Field(default_factory=list)


class ChatLimits(BaseModel):
    """Size caps imposed by chat services on a block payload."""

    model_config = ConfigDict(frozen=True)

    max_entries: int = Field(default=50, ge=1)
    max_chars_per_entry: int = Field(default=3000, ge=2)


class Changelog(BaseModel):
    """The changelog of one variant release.

    Attributes:
        variant: Build variant the changelog belongs to.
        tag_range: Bounding build tags, or None before the first release.
        commit_range: Commits the entries were taken from.
        entries: Filtered, deduplicated entries, newest first.
        references: Issue keys per subject, or None when no reference
                    pattern is configured.
    """

    model_config = ConfigDict(frozen=True)

    variant: str
    tag_range: TagRange | None
    commit_range: CommitRange
    entries: list[ChangelogEntry] = Field(default_factory=list)
    references: dict[str, list[str]] | None = None
