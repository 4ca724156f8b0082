"""Slug format validation."""

import re

# Letters, digits and hyphens only. Rejects path traversal and whitespace.
SLUG_PATTERN = re.compile(r"[A-Za-z0-9-]+")


def is_valid_slug(slug: str | None) -> bool:
    return bool(slug) and SLUG_PATTERN.fullmatch(slug) is not None
