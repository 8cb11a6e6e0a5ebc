"""
Related posts component unit tests.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from blogcms.adapters.clock import FixedClock
from blogcms.adapters.memory_store import InMemoryDocumentStore
from blogcms.components.posts import BlogPostService
from blogcms.components.related import RelatedConfig, RelatedPostsService
from blogcms.core.entities import Author, BlogPost

AUTHOR = Author(uid="u", display_name="Editor")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 3, 1, tzinfo=UTC))


@pytest.fixture
def posts(clock: FixedClock) -> BlogPostService:
    return BlogPostService(InMemoryDocumentStore(clock))


@pytest.fixture
def related(posts: BlogPostService, clock: FixedClock) -> RelatedPostsService:
    return RelatedPostsService(posts, clock, RelatedConfig(max_related=3))


async def _published(posts: BlogPostService, slug: str, **fields: Any) -> str:
    data = {
        "languages": {"en": {"title": slug.title(), "slug": slug, "contentHtml": "<p>x</p>"}},
        **fields,
    }
    post_id = await posts.create_post(data, AUTHOR)
    await posts.publish_post(post_id)
    return post_id


class TestGetRelatedPosts:
    @pytest.mark.asyncio
    async def test_ranks_by_relevance(self, posts, related, clock) -> None:
        old = await _published(posts, "old-news", category="news")
        clock.advance(days=40)
        main = await _published(posts, "main", category="education", tags=["risk"])
        close = await _published(posts, "close", category="education", tags=["risk"])
        recent = await _published(posts, "recent", category="news")

        result = await related.get_related_posts(main, "en")

        ids = [r.post.id for r in result]
        assert ids == [close, recent]
        assert old not in ids
        assert result[0].score > result[1].score
        assert all(not r.manually_related for r in result)

    @pytest.mark.asyncio
    async def test_manual_first_and_read_posts_last(self, posts, related) -> None:
        main = await _published(posts, "main", category="education", tags=["risk"])
        a = await _published(posts, "a", category="education", tags=["risk"])
        b = await _published(posts, "b", category="education")
        manual = await _published(posts, "manual", category="news")
        draft = await posts.create_post(
            {"languages": {"en": {"title": "D", "slug": "draft"}}}, AUTHOR
        )
        await posts.update_post(main, {"relatedPostIds": [draft, manual]})

        result = await related.get_related_posts(main, "en", read_post_ids=[a])

        assert result[0].post.id == manual
        assert result[0].manually_related is True
        assert [r.post.id for r in result[1:]] == [b, a]
        assert draft not in [r.post.id for r in result]

    @pytest.mark.asyncio
    async def test_language_filter_and_missing_post(self, posts, related) -> None:
        main = await _published(posts, "main", category="education")
        await posts.create_post(
            {
                "category": "education",
                "status": "published",
                "languages": {"es": {"title": "Solo", "slug": "solo", "contentHtml": "<p>x</p>"}},
            },
            AUTHOR,
        )

        assert await related.get_related_posts(main, "en") == []
        assert await related.get_related_posts("missing", "en") == []


class TestPreview:
    @pytest.mark.asyncio
    async def test_preview_scores_unsaved_draft(self, posts, related) -> None:
        nfp = await _published(posts, "nfp-preview", category="market-analysis", event_tags=["nfp"])
        other = await _published(posts, "other", category="news")
        draft = BlogPost(category="market-analysis", event_tags=["nfp"], related_post_ids=[other])

        previews = await related.get_related_posts_preview(draft, "en")

        assert [p.id for p in previews] == [other, nfp]
        assert previews[0].is_manually_selected is True
        top = previews[1]
        assert top.title == "Nfp-Preview"
        assert top.slug == "nfp-preview"
        assert top.breakdown.category == 3
        assert top.breakdown.event_matches == ["nfp"]
        assert top.has_language is True
        assert top.total_score == pytest.approx(round(top.breakdown.total, 2))
