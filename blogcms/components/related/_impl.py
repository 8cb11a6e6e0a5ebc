"""
RelatedPostsService - Related posts for a post page and the CMS preview.

Key behaviors:
- Manually related published posts come first (in their listed order)
- Remaining slots are filled from the most recent published posts, scored
  by taxonomy overlap, recency and engagement; zero scores are dropped
- Posts the reader has already read are only used when unread ones run out
- The CMS preview scores an unsaved draft and shows each score component
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from blogcms.components.posts import BlogPostService
from blogcms.core.entities import POST_STATUS_PUBLISHED, BlogPost, CoverImage
from blogcms.core.ports.time import TimePort
from blogcms.core.services.related import (
    DEFAULT_WEIGHTS,
    RelatedWeights,
    ScoreBreakdown,
    relevance_score,
    score_breakdown,
)

if TYPE_CHECKING:
    from blogcms.rules.models import Rules


@dataclass(frozen=True)
class RelatedConfig:
    weights: RelatedWeights = DEFAULT_WEIGHTS
    candidate_pool: int = 50
    max_related: int = 6
    preview_max_candidates: int = 20


def build_related_config(rules: Rules | None) -> RelatedConfig:
    """Build related-posts config from rules."""
    if rules is None:
        return RelatedConfig()
    r = rules.related_posts
    return RelatedConfig(
        weights=RelatedWeights(
            category_match=r.weights.category_match,
            event_overlap=r.weights.event_overlap,
            currency_overlap=r.weights.currency_overlap,
            tag_overlap=r.weights.tag_overlap,
            keyword_overlap=r.weights.keyword_overlap,
            recency_per_day=r.recency.per_day,
            recency_window_days=r.recency.window_days,
            view_weight=r.engagement.view_weight,
            view_cap=r.engagement.view_cap,
            like_weight=r.engagement.like_weight,
            like_cap=r.engagement.like_cap,
        ),
        candidate_pool=r.candidate_pool,
        max_related=r.max_related,
        preview_max_candidates=r.preview_max_candidates,
    )


@dataclass
class RelatedPost:
    post: BlogPost
    score: float = 0
    manually_related: bool = False


@dataclass
class RelatedPreview:
    """A candidate as shown in the CMS related-posts panel."""

    id: str
    title: str
    slug: str
    category: str
    event_tags: list[str]
    currency_tags: list[str]
    published_at: datetime | None
    cover_image: CoverImage | None
    total_score: float
    breakdown: ScoreBreakdown
    is_manually_selected: bool
    has_language: bool


class RelatedPostsService:
    def __init__(
        self,
        posts: BlogPostService,
        clock: TimePort,
        config: RelatedConfig | None = None,
    ) -> None:
        self._posts = posts
        self._clock = clock
        self._config = config or RelatedConfig()

    async def _candidates(self) -> list[BlogPost]:
        page = await self._posts.list_posts(page_size=self._config.candidate_pool)
        return page.posts

    async def get_related_posts(
        self,
        post_id: str,
        lang: str,
        max_related: int | None = None,
        read_post_ids: Iterable[str] = (),
    ) -> list[RelatedPost]:
        max_related = max_related or self._config.max_related
        read = set(read_post_ids)

        post = await self._posts.get_post(post_id)
        if post is None:
            return []

        related: list[RelatedPost] = []
        for related_id in post.related_post_ids[:max_related]:
            if related_id == post.id:
                continue
            candidate = await self._posts.get_post(related_id)
            if (
                candidate is not None
                and candidate.status == POST_STATUS_PUBLISHED
                and lang in candidate.languages
            ):
                related.append(RelatedPost(post=candidate, manually_related=True))
            if len(related) >= max_related:
                return related

        taken = {r.post.id for r in related} | {post.id}
        now = self._clock.now_utc()
        scored = [
            RelatedPost(post=c, score=relevance_score(post, c, now, self._config.weights))
            for c in await self._candidates()
            if c.id not in taken and lang in c.languages
        ]
        scored = sorted((s for s in scored if s.score > 0), key=lambda s: s.score, reverse=True)

        unread = [s for s in scored if s.post.id not in read]
        already_read = [s for s in scored if s.post.id in read]
        related.extend([*unread, *already_read][: max_related - len(related)])
        return related[:max_related]

    async def get_related_posts_preview(
        self,
        post: BlogPost,
        lang: str = "en",
        max_candidates: int | None = None,
    ) -> list[RelatedPreview]:
        """Score every recent published post against an (unsaved) draft."""
        max_candidates = max_candidates or self._config.preview_max_candidates
        now = self._clock.now_utc()

        previews: list[RelatedPreview] = []
        for candidate in await self._candidates():
            if post.id and candidate.id == post.id:
                continue
            breakdown = score_breakdown(post, candidate, now, self._config.weights)
            content = candidate.languages.get(lang) or candidate.languages.get("en")
            previews.append(
                RelatedPreview(
                    id=candidate.id,
                    title=(content.title if content else "") or "Untitled",
                    slug=content.slug if content else "",
                    category=candidate.category,
                    event_tags=candidate.event_tags,
                    currency_tags=candidate.currency_tags,
                    published_at=candidate.published_at,
                    cover_image=content.cover_image if content else None,
                    total_score=round(breakdown.total, 2),
                    breakdown=breakdown,
                    is_manually_selected=candidate.id in post.related_post_ids,
                    has_language=lang in candidate.languages,
                )
            )

        previews.sort(key=lambda p: (not p.is_manually_selected, -p.total_score))
        return previews[:max_candidates]
