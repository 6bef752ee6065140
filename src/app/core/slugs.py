"""Slug helpers for workflow URLs."""

import re
from typing import Final

MAX_WORKFLOW_SLUG_LENGTH: Final[int] = 50
DEFAULT_WORKFLOW_SLUG: Final[str] = "workflow"

_NON_ALNUM_PATTERN: Final[re.Pattern[str]] = re.compile(r"[^a-z0-9]+")


def generate_slug(name: str) -> str:
    """Derive a URL slug from a display name.

    Lowercases, collapses runs of non-alphanumerics into a single hyphen,
    trims edge hyphens and caps the length. Names without any usable
    characters fall back to ``workflow``.

    Examples:
        >>> generate_slug("Lead Intake: Q3!")
        'lead-intake-q3'
    """
    slug = _NON_ALNUM_PATTERN.sub("-", name.lower()).strip("-")
    slug = slug[:MAX_WORKFLOW_SLUG_LENGTH].rstrip("-")
    return slug or DEFAULT_WORKFLOW_SLUG


def with_suffix(slug: str, counter: int) -> str:
    """Append ``-<counter>`` while staying within the slug length limit."""
    suffix = f"-{counter}"
    base = slug[: MAX_WORKFLOW_SLUG_LENGTH - len(suffix)].rstrip("-")
    return f"{base}{suffix}"
