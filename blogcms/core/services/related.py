"""
Related post scoring.

Deterministic relevance score between a post and a candidate:
- category match, per-item overlap of event/currency/tag/keyword lists
- recency bonus for candidates published within the recency window
- engagement bonus from views and likes (capped)

Key behaviors:
- Scores of zero are not relevant and are dropped by callers
- Preview scoring exposes each component for the CMS and leaves out
  engagement
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime

from blogcms.core.entities import BlogPost

# --- Configuration ---


@dataclass(frozen=True)
class RelatedWeights:
    """Scoring weights from rules."""

    category_match: float = 3
    event_overlap: float = 2
    currency_overlap: float = 2
    tag_overlap: float = 1
    keyword_overlap: float = 0.5

    recency_per_day: float = 0.1
    recency_window_days: int = 30

    view_weight: float = 0.01
    view_cap: float = 2
    like_weight: float = 0.1
    like_cap: float = 2


DEFAULT_WEIGHTS = RelatedWeights()


@dataclass
class ScoreBreakdown:
    category: float = 0
    events: float = 0
    currencies: float = 0
    tags: float = 0
    keywords: float = 0
    recency: float = 0
    event_matches: list[str] = field(default_factory=list)
    currency_matches: list[str] = field(default_factory=list)
    tag_matches: list[str] = field(default_factory=list)
    keyword_matches: list[str] = field(default_factory=list)
    days_since_publish: int | None = None

    @property
    def total(self) -> float:
        return (
            self.category + self.events + self.currencies + self.tags + self.keywords + self.recency
        )


def _overlap(mine: list[str], theirs: list[str]) -> list[str]:
    return [item for item in mine if item in theirs]


def days_since(published_at: datetime, now: datetime) -> int:
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=UTC)
    return math.floor((now - published_at).total_seconds() / 86400)


def recency_bonus(
    published_at: datetime | None,
    now: datetime,
    weights: RelatedWeights = DEFAULT_WEIGHTS,
) -> float:
    if published_at is None:
        return 0
    days = days_since(published_at, now)
    if days > weights.recency_window_days:
        return 0
    return max(0, (weights.recency_window_days - days) * weights.recency_per_day)


def score_breakdown(
    post: BlogPost,
    candidate: BlogPost,
    now: datetime,
    weights: RelatedWeights = DEFAULT_WEIGHTS,
) -> ScoreBreakdown:
    """Per-component relevance of ``candidate`` to ``post``."""
    b = ScoreBreakdown()

    if candidate.category and candidate.category == post.category:
        b.category = weights.category_match

    b.event_matches = _overlap(post.event_tags, candidate.event_tags)
    b.events = len(b.event_matches) * weights.event_overlap

    b.currency_matches = _overlap(post.currency_tags, candidate.currency_tags)
    b.currencies = len(b.currency_matches) * weights.currency_overlap

    b.tag_matches = _overlap(post.tags, candidate.tags)
    b.tags = len(b.tag_matches) * weights.tag_overlap

    b.keyword_matches = _overlap(post.keywords, candidate.keywords)
    b.keywords = len(b.keyword_matches) * weights.keyword_overlap

    if candidate.published_at is not None:
        b.days_since_publish = days_since(candidate.published_at, now)
        b.recency = round(recency_bonus(candidate.published_at, now, weights), 2)

    return b


def engagement_bonus(candidate: BlogPost, weights: RelatedWeights = DEFAULT_WEIGHTS) -> float:
    views = min(candidate.view_count * weights.view_weight, weights.view_cap)
    likes = min(candidate.like_count * weights.like_weight, weights.like_cap)
    return views + likes


def relevance_score(
    post: BlogPost,
    candidate: BlogPost,
    now: datetime,
    weights: RelatedWeights = DEFAULT_WEIGHTS,
) -> float:
    """Total score used for ranking (includes engagement, unrounded recency)."""
    b = score_breakdown(post, candidate, now, weights)
    base = b.category + b.events + b.currencies + b.tags + b.keywords
    return base + recency_bonus(candidate.published_at, now, weights) + engagement_bonus(
        candidate, weights
    )
