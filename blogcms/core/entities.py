"""
Domain entities for blog posts and the slug index.

Documents are persisted with camelCase field names (``contentHtml``,
``publishedAt``, ``postId``); the entities expose snake_case attributes and
accept either spelling on input.

Collections:
- blogPosts/{postId}         -> BlogPost
- blogSlugIndex/{lang_slug}  -> SlugIndexEntry
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PostStatus = Literal["draft", "published", "unpublished"]

POST_STATUS_DRAFT: PostStatus = "draft"
POST_STATUS_PUBLISHED: PostStatus = "published"
POST_STATUS_UNPUBLISHED: PostStatus = "unpublished"

BLOG_CATEGORIES = [
    "trading-tips",
    "market-analysis",
    "platform-updates",
    "education",
    "news",
]
DEFAULT_CATEGORY = "trading-tips"


class DocumentModel(BaseModel):
    """Base for entities stored as documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self, *, exclude: set[str] | None = None) -> dict[str, Any]:
        """Serialize to the persisted (camelCase) shape."""
        return self.model_dump(by_alias=True, exclude=exclude)


# --- Post content ---


class CoverImage(DocumentModel):
    url: str = ""
    alt: str = ""


class LanguageContent(DocumentModel):
    """
    Content for one language of a post.

    Owned by exactly one post. ``slug`` is unique per language across all
    posts and mirrored in the slug index.
    """

    title: str = ""
    slug: str = ""
    excerpt: str = ""
    content_html: str = ""
    seo_title: str = ""
    seo_description: str = ""
    cover_image: CoverImage = Field(default_factory=CoverImage)
    reading_time_min: int = 0
    search_tokens: list[str] = Field(default_factory=list)

    def is_publishable(self) -> bool:
        return bool(self.title and self.slug and self.content_html)


class PostAuthor(DocumentModel):
    uid: str
    display_name: str


class Author(BaseModel):
    """Authenticated identity performing a write."""

    uid: str
    display_name: str | None = None
    email: str | None = None

    def stamp(self) -> PostAuthor:
        return PostAuthor(
            uid=self.uid,
            display_name=self.display_name or self.email or "Unknown",
        )


class BlogPost(DocumentModel):
    id: str = ""
    status: PostStatus = POST_STATUS_DRAFT

    published_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    author: PostAuthor | None = None
    author_ids: list[str] = Field(default_factory=list)

    # Taxonomy
    category: str = DEFAULT_CATEGORY
    tags: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    related_post_ids: list[str] = Field(default_factory=list)
    event_tags: list[str] = Field(default_factory=list)
    currency_tags: list[str] = Field(default_factory=list)

    languages: dict[str, LanguageContent] = Field(default_factory=dict)

    # Derived
    insight_keys: list[str] = Field(default_factory=list)

    # Engagement
    view_count: int = 0
    like_count: int = 0

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> BlogPost:
        return cls.model_validate({**data, "id": doc_id})

    def claimed_slugs(self) -> dict[str, str]:
        """Map of language -> non-empty slug."""
        return {lang: c.slug for lang, c in self.languages.items() if c.slug}


# --- Slug index ---


class SlugIndexEntry(DocumentModel):
    """Secondary index document keyed by ``<lang>_<slug>``."""

    post_id: str
    lang: str
    slug: str
    claimed_at: datetime | None = None
