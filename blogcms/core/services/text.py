"""
Text helpers for post content: slugs, reading time, search tokens.

Search tokens back a deterministic array-contains search: lowercase words
from the title, excerpt and taxonomy, punctuation stripped, deduplicated and
sorted.
"""

from __future__ import annotations

import math
import re

from blogcms.core.entities import BlogPost

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
MAX_SLUG_LENGTH = 100
WORDS_PER_MINUTE = 225

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def is_valid_slug(slug: str, pattern: str = SLUG_PATTERN) -> bool:
    """Check if slug is valid (lowercase alphanumeric + hyphens)."""
    return bool(re.match(pattern, slug))


def generate_slug(title: str) -> str:
    """Create URL-safe slug from a title."""
    if not title:
        return ""
    slug = title.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug, flags=re.ASCII)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return slug[:MAX_SLUG_LENGTH].rstrip("-")


def estimate_reading_time(html_content: str) -> int:
    """Estimated reading time in minutes (0 for empty content)."""
    if not html_content:
        return 0
    text = _WS_RE.sub(" ", _TAG_RE.sub(" ", html_content)).strip()
    word_count = len([w for w in text.split(" ") if w])
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def compute_search_tokens(post: BlogPost, lang: str) -> list[str]:
    """Tokens for full-text search of one language of a post."""
    content = post.languages.get(lang)
    if content is None:
        return []

    sources = [
        content.title,
        content.excerpt,
        " ".join(post.tags),
        post.category.replace("-", " "),
        " ".join(post.keywords),
        " ".join(post.currency_tags),
        " ".join(post.event_tags),
    ]
    text = " ".join(sources).lower()

    tokens = (re.sub(r"[^\w]", "", t, flags=re.ASCII) for t in _WS_RE.split(text))
    return sorted({t for t in tokens if t})
