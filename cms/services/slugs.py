"""Slug normalization and unique slug assignment."""

import re
import unicodedata
from collections.abc import Iterable

_SEPARATOR_RE = re.compile(r"[\s_]+")
_INVALID_RE = re.compile(r"[^a-z0-9-]")
_DASHES_RE = re.compile(r"-+")

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"

DEFAULT_SLUG = "post"


def slugify(text: str) -> str:
    """Normalize a title into a URL-safe slug.

    Lowercases, folds accented characters to ASCII, turns whitespace and
    underscore runs into ``-``, drops anything outside ``[a-z0-9-]`` and
    collapses repeated dashes. May return an empty string.
    """
    folded = unicodedata.normalize("NFKD", text.strip().lower())
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    slug = _SEPARATOR_RE.sub("-", folded)
    slug = _INVALID_RE.sub("", slug)
    slug = _DASHES_RE.sub("-", slug)
    return slug.strip("-")


def unique_slug(
    base: str,
    taken: Iterable[str],
    *,
    fallback: str = DEFAULT_SLUG,
) -> str:
    """Return the first free slug among ``base``, ``base-2``, ``base-3``, ...

    ``taken`` holds the slugs of every *other* entry; callers editing an
    entry must leave that entry's own slug out.
    """
    base = base or fallback
    used = set(taken)
    slug = base
    suffix = 1
    while slug in used:
        suffix += 1
        slug = f"{base}-{suffix}"
    return slug
