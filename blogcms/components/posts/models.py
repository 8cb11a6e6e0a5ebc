"""
Posts component errors and input/output models.

Every protocol failure is a distinct exception type carrying the offending
language, slug and/or post id, so callers can build a precise message.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from blogcms.core.entities import Author, BlogPost
from blogcms.core.ports.store import DocumentSnapshot

# --- Errors ---


@dataclass(frozen=True)
class PostFieldError:
    """Single field-level problem."""

    code: str
    message: str
    field: str | None = None


class BlogPostError(Exception):
    """Base class for post lifecycle failures."""

    code = "error"

    def field_errors(self) -> list[PostFieldError]:
        return [PostFieldError(code=self.code, message=str(self))]


class SlugTakenError(BlogPostError):
    """Raised when a (lang, slug) pair is claimed by a different post."""

    code = "slug_taken"

    def __init__(self, lang: str, slug: str, owner_post_id: str | None = None) -> None:
        self.lang = lang
        self.slug = slug
        self.owner_post_id = owner_post_id
        super().__init__(f'Slug "{slug}" is already taken for language "{lang}"')

    def field_errors(self) -> list[PostFieldError]:
        return [PostFieldError(self.code, str(self), f"languages.{self.lang}.slug")]


class PostNotFoundError(BlogPostError):
    """Raised when the referenced post document does not exist."""

    code = "not_found"

    def __init__(self, post_id: str) -> None:
        self.post_id = post_id
        super().__init__(f"Post {post_id} not found")


class PostValidationError(BlogPostError):
    """Raised when post data fails validation (including publish guards)."""

    code = "validation_failed"

    def __init__(self, errors: list[PostFieldError]) -> None:
        self.errors = errors
        messages = [e.message for e in errors]
        super().__init__(f"Post validation failed: {'; '.join(messages)}")

    def field_errors(self) -> list[PostFieldError]:
        return list(self.errors)


class SlugAllocationExhaustedError(BlogPostError):
    """Raised when no free copy slug was found within the attempt bound."""

    code = "slug_exhausted"

    def __init__(self, lang: str, base_slug: str, attempts: int) -> None:
        self.lang = lang
        self.base_slug = base_slug
        self.attempts = attempts
        super().__init__(
            f'Unable to generate unique slug for "{base_slug}" in language "{lang}" '
            f"after {attempts} attempts"
        )

    def field_errors(self) -> list[PostFieldError]:
        return [PostFieldError(self.code, str(self), f"languages.{self.lang}.slug")]


class LastLanguageRemovalError(BlogPostError):
    """Raised when removing the only remaining language of a post."""

    code = "last_language"

    def __init__(self, post_id: str, lang: str) -> None:
        self.post_id = post_id
        self.lang = lang
        super().__init__(f'Cannot remove the last language "{lang}" from post {post_id}')

    def field_errors(self) -> list[PostFieldError]:
        return [PostFieldError(self.code, str(self), f"languages.{self.lang}")]


# --- Query results ---


@dataclass
class PostPage:
    """One page of posts plus the cursor for the next page."""

    posts: list[BlogPost]
    last_doc: DocumentSnapshot | None = None
    has_more: bool = False


@dataclass
class SlugIndexAudit:
    """Consistency report between posts and the slug index."""

    entries_checked: int = 0
    posts_checked: int = 0
    # Index keys whose post no longer exists
    orphan_entries: list[str] = field(default_factory=list)
    # Index keys whose post no longer carries that slug
    stale_entries: list[str] = field(default_factory=list)
    # Index keys a post needs but which are absent or owned elsewhere
    missing_entries: list[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not (self.orphan_entries or self.stale_entries or self.missing_entries)


# --- Input Models ---


@dataclass(frozen=True)
class CreatePostInput:
    post: BlogPost | Mapping[str, Any]
    author: Author


@dataclass(frozen=True)
class UpdatePostInput:
    post_id: str
    updates: Mapping[str, Any]


@dataclass(frozen=True)
class DeletePostInput:
    post_id: str


@dataclass(frozen=True)
class PublishPostInput:
    post_id: str


@dataclass(frozen=True)
class UnpublishPostInput:
    post_id: str


@dataclass(frozen=True)
class DuplicatePostInput:
    post_id: str
    author: Author


@dataclass(frozen=True)
class AddLanguageInput:
    post_id: str
    lang: str
    content: Mapping[str, Any]


@dataclass(frozen=True)
class RemoveLanguageInput:
    post_id: str
    lang: str


@dataclass(frozen=True)
class GetPostInput:
    """Input for retrieving a post by id or by (lang, slug)."""

    post_id: str | None = None
    lang: str | None = None
    slug: str | None = None


# --- Output Models ---


@dataclass(frozen=True)
class PostOutput:
    post: BlogPost | None
    errors: list[PostFieldError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class PostOperationOutput:
    """Output for mutating operations."""

    post_id: str | None = None
    errors: list[PostFieldError] = field(default_factory=list)
    success: bool = True
