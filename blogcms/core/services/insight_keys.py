"""
Insight keys for blog posts.

Standardized string keys used to join posts with calendar events:
- "post:{postId}"
- "event:{eventSlug}"            canonical event
- "eventNameKey:{normalized}"    fallback for unmapped event names
- "currency:{CODE}"
- "eventCurrency:{eventSlug}_{CODE}"
"""

from __future__ import annotations

import re
from collections.abc import Iterable

BLOG_ECONOMIC_EVENTS = [
    "nfp", "fomc", "cpi", "ppi", "rba", "ecb", "boe", "boj", "snb", "rbnz",
    "china-gdp", "china-pmi", "eurozone-gdp", "eurozone-pmi",
    "uk-gdp", "uk-pmi", "japan-gdp", "japan-pmi", "canada-gdp", "ism-pmi",
    "unemployment", "retail-sales", "housing-starts", "consumer-sentiment", "oil-inventory",
]  # fmt: skip

BLOG_CURRENCIES = [
    "USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD", "NZD",
    "CNY", "SGD", "HKD", "INR", "MXN", "BRL", "KRW", "SEK", "NOK",
]  # fmt: skip


def normalize_key(value: str) -> str:
    """Normalize a string for slug matching (hyphen separated)."""
    if not value:
        return ""
    key = value.lower().strip()
    key = re.sub(r"\s+", "-", key)
    key = key.replace("_", "-")
    key = re.sub(r"[^a-z0-9-]", "", key)
    key = re.sub(r"-+", "-", key)
    return key.strip("-")


def find_canonical_slug(event_name: str) -> str | None:
    """Look up the canonical event slug for an event name."""
    if not event_name:
        return None
    normalized = normalize_key(event_name)
    if normalized in BLOG_ECONOMIC_EVENTS:
        return normalized
    for slug in BLOG_ECONOMIC_EVENTS:
        if slug in normalized or normalized in slug:
            return slug
    return None


def compute_blog_insight_keys(
    post_id: str | None,
    event_tags: Iterable[str] = (),
    currency_tags: Iterable[str] = (),
) -> list[str]:
    keys: list[str] = []
    event_tags = list(event_tags)
    currency_tags = list(currency_tags)

    if post_id:
        keys.append(f"post:{post_id}")

    for tag in event_tags:
        normalized = normalize_key(tag)
        if normalized in BLOG_ECONOMIC_EVENTS:
            keys.append(f"event:{normalized}")
        elif normalized:
            keys.append(f"eventNameKey:{normalized}")

    currencies = [c.upper() for c in currency_tags if c.upper() in BLOG_CURRENCIES]
    keys.extend(f"currency:{code}" for code in currencies)

    for tag in event_tags:
        event = normalize_key(tag)
        if event in BLOG_ECONOMIC_EVENTS:
            keys.extend(f"eventCurrency:{event}_{code}" for code in currencies)

    # Ordered dedupe
    return list(dict.fromkeys(keys))
