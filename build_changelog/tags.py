"""Build tag naming conventions.

A convention decides which tags are build tags and how a tag name splits
into variant, build number and an optional suffix. It is configured either
as a template or as a regular expression:

- Template (default "{variant}/{build_number}"): literal text with the
  placeholders {variant}, {build_number} and optionally {suffix}. Templates
  can also format names back, e.g. to announce the next build tag.
- Regex: any pattern with the named groups (?P<variant>...) and
  (?P<build_number>\\d+), optionally (?P<suffix>...). Which tags are
  considered is then controlled by an explicit git glob.

Parsing is strict. A name that does not fit raises MalformedTagError
instead of being skipped, since a silently skipped tag could hide a real
release.
"""

from __future__ import annotations

import re

from .errors import InvalidTagPatternError, MalformedTagError
from .models import BuildTag, GitTagRef, TagName

DEFAULT_TAG_PATTERN = "{variant}/{build_number}"

_PLACEHOLDER = re.compile(r"\{(variant|build_number|suffix)\}")
_REQUIRED = ("variant", "build_number")
_GROUPS = {
    "variant": r"(?P<variant>[A-Za-z0-9_-]+)",
    "build_number": r"(?P<build_number>\d+)",
    "suffix": r"(?P<suffix>[A-Za-z0-9_.+-]*)",
}


def _is_template(pattern: str) -> bool:
    return "{build_number}" in pattern or "{variant}" in pattern


def _compile_template(template: str) -> re.Pattern[str]:
    """Translate a template into an anchored regex."""
    keys = _PLACEHOLDER.findall(template)
    for key in _REQUIRED:
        if keys.count(key) != 1:
            raise InvalidTagPatternError(
                f"Tag template '{template}' must contain {{{key}}} exactly once"
            )
    if keys.count("suffix") > 1:
        raise InvalidTagPatternError(
            f"Tag template '{template}' may contain {{suffix}} at most once"
        )

    parts: list[str] = []
    pos = 0
    for m in _PLACEHOLDER.finditer(template):
        parts.append(re.escape(template[pos : m.start()]))
        parts.append(_GROUPS[m.group(1)])
        pos = m.end()
    parts.append(re.escape(template[pos:]))
    return re.compile("".join(parts))


def _compile_regex(pattern: str) -> re.Pattern[str]:
    try:
        regex = re.compile(pattern)
    except re.error as exc:
        raise InvalidTagPatternError(
            f"Tag pattern '{pattern}' is not a valid regex: {exc}"
        ) from exc
    missing = [key for key in _REQUIRED if key not in regex.groupindex]
    if missing:
        groups = ", ".join(f"(?P<{key}>...)" for key in missing)
        raise InvalidTagPatternError(
            f"Tag pattern '{pattern}' is missing named group(s) {groups}"
        )
    return regex


class TagConvention:
    """Parses and formats build tag names.

    Args:
        pattern: Template or regex; defaults to DEFAULT_TAG_PATTERN.
        glob: Git glob selecting candidate tags, may contain {variant}.
              Derived automatically for templates; defaults to "*" for
              regex patterns.

    Raises:
        InvalidTagPatternError: If the pattern lacks a required placeholder
            or named group, or does not compile.
    """

    def __init__(self, pattern: str | None = None, glob: str | None = None) -> None:
        self.pattern = pattern or DEFAULT_TAG_PATTERN
        self.is_template = _is_template(self.pattern)
        if self.is_template:
            self._regex = _compile_template(self.pattern)
        else:
            self._regex = _compile_regex(self.pattern)
        self._glob = glob

    def __repr__(self) -> str:
        return f"TagConvention({self.pattern!r})"

    def glob(self, variant: str | None = None) -> str:
        """Git glob matching the candidate tags of a variant (or all variants)."""
        if self._glob is not None:
            return self._glob.replace("{variant}", variant or "*")
        if not self.is_template:
            return "*"

        def repl(m: re.Match[str]) -> str:
            if m.group(1) == "variant" and variant is not None:
                return variant
            return "*"

        return re.sub(r"\*+", "*", _PLACEHOLDER.sub(repl, self.pattern))

    def globs(self, variants: list[str] | tuple[str, ...]) -> list[str]:
        """Distinct globs for several variants, in the given order."""
        return list(dict.fromkeys(self.glob(v) for v in variants))

    def matches(self, name: str) -> bool:
        return self._regex.fullmatch(name) is not None

    def decompose(self, name: str) -> TagName:
        """Split a tag name into its parts.

        Raises:
            MalformedTagError: If the name does not fit the convention.
        """
        m = self._regex.fullmatch(name)
        if m is None:
            raise MalformedTagError(name, f"does not match pattern '{self.pattern}'")
        return TagName(
            variant=m.group("variant"),
            build_number=int(m.group("build_number")),
            suffix=m.groupdict().get("suffix") or "",
        )

    def parse(
        self,
        name: str,
        commit_sha: str,
        message: str = "",
        variant: str | None = None,
    ) -> BuildTag:
        """Parse a tag name into a BuildTag.

        Args:
            name: Raw tag name.
            commit_sha: Commit the tag points at.
            message: Annotation text.
            variant: When given, the tag must belong to this variant.

        Raises:
            MalformedTagError: If the name does not fit the convention or
                belongs to a different variant.
        """
        parts = self.decompose(name)
        if variant is not None and parts.variant != variant:
            raise MalformedTagError(
                name, f"belongs to variant '{parts.variant}', expected '{variant}'"
            )
        return BuildTag(
            name=name,
            commit_sha=commit_sha,
            message=message,
            build_variant=parts.variant,
            build_number=parts.build_number,
        )

    def parse_ref(self, ref: GitTagRef, variant: str | None = None) -> BuildTag:
        return self.parse(ref.name, ref.commit_sha, ref.message, variant=variant)

    def format_name(self, variant: str, build_number: int, suffix: str = "") -> str:
        """Build a tag name from its parts.

        Raises:
            InvalidTagPatternError: If the convention is a regex.
            MalformedTagError: If the parts produce a name the convention
                would not accept (e.g. a variant containing "/").
        """
        if not self.is_template:
            raise InvalidTagPatternError(
                f"Cannot format tag names with regex pattern '{self.pattern}'"
            )
        values = {
            "variant": variant,
            "build_number": str(build_number),
            "suffix": suffix,
        }
        name = _PLACEHOLDER.sub(lambda m: values[m.group(1)], self.pattern)
        if self.decompose(name) != TagName(
            variant=variant,
            build_number=build_number,
            suffix=suffix if "{suffix}" in self.pattern else "",
        ):
            raise MalformedTagError(name, "does not decompose back into its parts")
        return name

    def next_name(self, tag: BuildTag | None, variant: str) -> str:
        """Name of the tag following `tag`, or the first tag of `variant`."""
        build_number = tag.build_number + 1 if tag else 1
        return self.format_name(variant, build_number)


def parse_tag(
    name: str,
    pattern: str | None = None,
    *,
    commit_sha: str,
    message: str = "",
    variant: str | None = None,
) -> BuildTag:
    """Parse a tag name under the given pattern (default convention if None)."""
    return TagConvention(pattern).parse(name, commit_sha, message, variant=variant)
