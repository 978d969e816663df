"""Issue reference extraction.

A reference pattern such as r"[A-Z][A-Z0-9]+-\\d+" finds issue keys
("PROJ-123") in commit subjects. The whole match is the reference, so the
pattern may use groups freely.
"""

from __future__ import annotations

import re
from collections.abc import Iterable


def extract_references(
    subjects: Iterable[str], pattern: str | re.Pattern[str] | None
) -> dict[str, list[str]] | None:
    """Map each subject to the references it mentions.

    Returns:
        None when no pattern is configured. Otherwise a dict holding only
        the subjects with at least one match, each mapped to its distinct
        references in order of appearance; empty when nothing matched.
    """
    if pattern is None:
        return None
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    found: dict[str, list[str]] = {}
    for subject in subjects:
        refs = list(dict.fromkeys(m.group(0) for m in regex.finditer(subject)))
        if refs:
            found[subject] = refs
    return found


def collect_references(mapping: dict[str, list[str]] | None) -> list[str]:
    """Distinct references across all subjects, in first-seen order."""
    if not mapping:
        return []
    return list(dict.fromkeys(ref for refs in mapping.values() for ref in refs))
