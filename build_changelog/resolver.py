"""Tag range resolution.

Finds the two most recent build tags of a variant. Order comes from the
executor (tag creation order). Build numbers are not fixed-width, so
sorting names lexically would put "app/10" before "app/9"; the only
reordering done here is the tie-break between tags on the same commit.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger as default_logger

from .errors import TagNotFoundError, TagOrderError
from .models import BuildTag, TagRange
from .tags import TagConvention
from .vcs import VcsExecutor

TAG_RANGE_SIZE = 2


class TagRangeResolver:
    """Discovers build tag pairs for build variants.

    Args:
        executor: Source of tag listings.
        convention: Naming convention used to select and parse tags.
        variants: All configured variants, for variant-independent queries.
        logger: Loguru-compatible logger.
    """

    def __init__(
        self,
        executor: VcsExecutor,
        convention: TagConvention,
        variants: Sequence[str] = (),
        logger=default_logger,
    ) -> None:
        self.executor = executor
        self.convention = convention
        self.variants = tuple(variants)
        self.logger = logger

    def _build_tags(self, variant: str, limit: int | None) -> list[BuildTag]:
        refs = self.executor.find_build_tags([self.convention.glob(variant)], limit)
        return [self.convention.parse_ref(ref, variant=variant) for ref in refs or []]

    def find_tag_range(self, variant: str) -> TagRange | None:
        """Find the current and previous build tags of a variant.

        Returns:
            The tag range, or None when the variant has no build tag yet
            (first release; the changelog then covers the full history).

        Raises:
            MalformedTagError: If a candidate tag does not fit the convention.
            TagOrderError: If the newer tag has a lower build number.
        """
        tags = self._build_tags(variant, TAG_RANGE_SIZE)
        if not tags:
            self.logger.info("no build tags for variant {}", variant)
            return None
        tag_range = _make_range(tags[0], tags[1] if len(tags) > 1 else None)
        self.logger.info(
            "tag range for {}: {} -> {}",
            variant,
            tag_range.previous.name if tag_range.previous else "<start>",
            tag_range.current.name,
        )
        return tag_range

    def find_tag_range_for(self, tag: BuildTag) -> TagRange:
        """Find the range that ends at a previously captured tag.

        Raises:
            TagNotFoundError: If the tag is no longer in the history.
            MalformedTagError: If a candidate tag does not fit the convention.
            TagOrderError: If the tag's predecessor has a higher build number.
        """
        tags = self._build_tags(tag.build_variant, None)
        for index, candidate in enumerate(tags):
            if candidate.name == tag.name:
                break
        else:
            available = ", ".join(t.name for t in tags) or "<none>"
            raise TagNotFoundError(
                f"Build tag '{tag.name}' ({tag.commit_sha}) not found in the "
                f"history. Tags matching '{self.convention.glob(tag.build_variant)}': "
                f"{available}"
            )

        # A tag sharing the commit with a higher build number is a later
        # build of the same code; skip past it to the real predecessor.
        previous = None
        for other in tags[index + 1 :]:
            if (
                other.commit_sha != tag.commit_sha
                or other.build_number < tag.build_number
            ):
                previous = other
                break
        return _make_range(tag, previous)

    def find_recent_build_tag(self) -> BuildTag | None:
        """The most recent build tag across all configured variants."""
        if not self.variants:
            return None
        refs = self.executor.find_build_tags(
            self.convention.globs(self.variants), TAG_RANGE_SIZE
        )
        if not refs:
            return None
        tags = [self.convention.parse_ref(ref) for ref in refs]
        tag = tags[0]
        if len(tags) > 1:
            # Variants number their builds independently, so only the
            # same-commit tie-break applies here, not the order check.
            tag, _ = _order_same_commit(tags[0], tags[1])
        self.logger.info("most recent build tag: {}", tag.name)
        return tag


def _order_same_commit(newest: BuildTag, older: BuildTag) -> tuple[BuildTag, BuildTag]:
    """On a shared commit the higher build number is the newer tag."""
    if (
        newest.commit_sha == older.commit_sha
        and older.build_number > newest.build_number
    ):
        return older, newest
    return newest, older


def _make_range(newest: BuildTag, older: BuildTag | None) -> TagRange:
    """Build a TagRange, applying the same-commit tie-break and order check."""
    if older is None:
        return TagRange(current=newest)
    if newest.commit_sha == older.commit_sha:
        newest, older = _order_same_commit(newest, older)
        return TagRange(current=newest, previous=older)
    if newest.build_number <= older.build_number:
        raise TagOrderError(
            "Incorrect tag order detected: the newer tag does not carry a "
            "higher build number.\n"
            f"  Newer tag: {newest.name} (commit {newest.commit_sha}, "
            f"build {newest.build_number})\n"
            f"  Older tag: {older.name} (commit {older.commit_sha}, "
            f"build {older.build_number})"
        )
    return TagRange(current=newest, previous=older)
