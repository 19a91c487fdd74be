"""URL slug generation."""

import re

_WHITESPACE_RE = re.compile(r"\s+")
_INVALID_RE = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUN_RE = re.compile(r"-{2,}")


def slugify(text: str) -> str:
    """Lowercase, hyphenate whitespace, drop everything outside [a-z0-9-].

    >>> slugify("How to Restore Old Photos (2025 Guide)!")
    'how-to-restore-old-photos-2025-guide'
    """
    slug = _WHITESPACE_RE.sub("-", text.strip().lower())
    slug = _INVALID_RE.sub("", slug)
    slug = _HYPHEN_RUN_RE.sub("-", slug)
    return slug.strip("-")
