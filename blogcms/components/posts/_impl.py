"""
BlogPostService - Post lifecycle with a transactional slug index.

Maintains blogSlugIndex/{lang_slug} -> postId alongside blogPosts/{postId}.

Invariants:
- I1: A live index entry for (lang, slug) is owned by exactly one post, and
      that post's languages[lang].slug equals slug
- I2: Every non-empty languages[lang].slug has an index entry pointing back
      at its post
- I3: Index entries are only written inside a transaction that also read
      them; there are no blind index writes

Transactions follow the store rule that all reads precede all writes:
Phase 1 gathers every snapshot the operation depends on, Phase 2 derives
and buffers the writes from those snapshots. A conflict in Phase 2 raises
before anything is committed, so callers never see partial state.

Slug collisions are first-committer-wins. Nothing here retries; callers
that need resilience against contention retry the whole operation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from blogcms.core.entities import (
    POST_STATUS_DRAFT,
    POST_STATUS_PUBLISHED,
    POST_STATUS_UNPUBLISHED,
    Author,
    BlogPost,
    LanguageContent,
    SlugIndexEntry,
)
from blogcms.core.ports.store import SERVER_TIMESTAMP, DocumentNotFoundError, FieldFilter
from blogcms.core.services.insight_keys import compute_blog_insight_keys
from blogcms.core.services.text import (
    MAX_SLUG_LENGTH,
    SLUG_PATTERN,
    compute_search_tokens,
    estimate_reading_time,
    is_valid_slug,
)

from .models import (
    LastLanguageRemovalError,
    PostFieldError,
    PostNotFoundError,
    PostPage,
    PostValidationError,
    SlugAllocationExhaustedError,
    SlugIndexAudit,
    SlugTakenError,
)
from .ports import DocumentSnapshot, DocumentStorePort, TransactionPort

if TYPE_CHECKING:
    from blogcms.rules.models import Rules

logger = logging.getLogger(__name__)

# Fields that update_post never writes; status moves via publish/unpublish.
PROTECTED_FIELDS = frozenset({"id", "created_at", "updated_at", "status", "published_at"})

# --- Configuration ---


@dataclass(frozen=True)
class PostsConfig:
    """Posts configuration from rules."""

    posts_collection: str = "blogPosts"
    slug_index_collection: str = "blogSlugIndex"

    slug_pattern: str = SLUG_PATTERN
    slug_max_length: int = MAX_SLUG_LENGTH

    copy_suffix: str = "-copy"
    copy_title_suffix: str = " (Copy)"
    duplicate_max_attempts: int = 100

    cms_page_size: int = 10
    public_page_size: int = 12


DEFAULT_CONFIG = PostsConfig()


def build_config(rules: Rules | None) -> PostsConfig:
    """Build posts config from rules."""
    if rules is None:
        return PostsConfig()
    blog = rules.blog
    return PostsConfig(
        posts_collection=blog.collections.posts,
        slug_index_collection=blog.collections.slug_index,
        slug_pattern=blog.slug.pattern,
        slug_max_length=blog.slug.max,
        copy_suffix=blog.duplicate.copy_suffix,
        copy_title_suffix=blog.duplicate.title_suffix,
        duplicate_max_attempts=blog.duplicate.max_attempts,
        cms_page_size=blog.listing.cms_page_size,
        public_page_size=blog.listing.public_page_size,
    )


# --- Helpers ---


def slug_key(lang: str, slug: str) -> str:
    """Index document id for a (lang, slug) pair."""
    return f"{lang}_{slug}"


@dataclass(frozen=True)
class SlugChange:
    """Difference in one language's slug between stored and new post."""

    lang: str
    old_slug: str
    new_slug: str


def plan_slug_changes(current: BlogPost, updated: BlogPost) -> list[SlugChange]:
    """
    Slug changes between two versions of a post.

    Covers changed slugs, cleared slugs, removed languages and new
    languages. Languages whose slug is unchanged are omitted.
    """
    changes: list[SlugChange] = []
    langs = list(dict.fromkeys([*current.languages, *updated.languages]))
    for lang in langs:
        old = current.languages[lang].slug if lang in current.languages else ""
        new = updated.languages[lang].slug if lang in updated.languages else ""
        if old != new:
            changes.append(SlugChange(lang=lang, old_slug=old, new_slug=new))
    return changes


def _field_names() -> dict[str, str]:
    """Map persisted and attribute spellings to attribute names."""
    names: dict[str, str] = {}
    for name, info in BlogPost.model_fields.items():
        names[name] = name
        if info.alias:
            names[info.alias] = name
    return names


_FIELD_NAMES = _field_names()


def _schema_errors(e: ValidationError) -> list[PostFieldError]:
    return [
        PostFieldError(
            code="schema_invalid",
            message=f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}",
            field=".".join(str(p) for p in err["loc"]) or None,
        )
        for err in e.errors()
    ]


# --- Service ---


class BlogPostService:
    """Blog post lifecycle over a transactional document store."""

    def __init__(self, store: DocumentStorePort, config: PostsConfig = DEFAULT_CONFIG) -> None:
        self._store = store
        self._config = config

    @property
    def config(self) -> PostsConfig:
        return self._config

    # --- validation / derivation ---

    def _validate_slugs(self, slugs: Mapping[str, str]) -> None:
        errors: list[PostFieldError] = []
        for lang, slug in slugs.items():
            if not slug:
                continue
            if len(slug) > self._config.slug_max_length or not is_valid_slug(
                slug, self._config.slug_pattern
            ):
                errors.append(
                    PostFieldError(
                        code="slug_invalid",
                        message=(
                            f'Slug "{slug}" for language "{lang}" must contain only lowercase '
                            f"letters, numbers, and hyphens (max {self._config.slug_max_length})"
                        ),
                        field=f"languages.{lang}.slug",
                    )
                )
        if errors:
            raise PostValidationError(errors)

    @staticmethod
    def _derive(post: BlogPost) -> None:
        """Recompute reading time, search tokens and insight keys in place."""
        for lang, content in post.languages.items():
            content.reading_time_min = estimate_reading_time(content.content_html)
            content.search_tokens = compute_search_tokens(post, lang)
        post.insight_keys = compute_blog_insight_keys(
            post.id, post.event_tags, post.currency_tags
        )

    @staticmethod
    def _coerce_post(post_data: BlogPost | Mapping[str, Any]) -> BlogPost:
        if isinstance(post_data, BlogPost):
            return post_data.model_copy(deep=True)
        try:
            return BlogPost.model_validate(dict(post_data))
        except ValidationError as e:
            raise PostValidationError(_schema_errors(e)) from e

    def _coerce_updates(self, updates: Mapping[str, Any]) -> dict[str, Any]:
        normalized: dict[str, Any] = {}
        unknown: list[PostFieldError] = []
        for key, value in updates.items():
            name = _FIELD_NAMES.get(key)
            if name is None:
                unknown.append(
                    PostFieldError(
                        code="unknown_field", message=f"Unknown field '{key}'", field=key
                    )
                )
                continue
            if name in PROTECTED_FIELDS:
                continue
            normalized[name] = value
        if unknown:
            raise PostValidationError(unknown)

        if "languages" in normalized:
            languages: dict[str, LanguageContent] = {}
            try:
                for lang, content in (normalized["languages"] or {}).items():
                    if isinstance(content, LanguageContent):
                        languages[lang] = content.model_copy(deep=True)
                    else:
                        languages[lang] = LanguageContent.model_validate(content)
            except ValidationError as e:
                raise PostValidationError(_schema_errors(e)) from e
            normalized["languages"] = languages
        return normalized

    # --- index primitives (transaction-bound, never suspend) ---

    def _claim(self, txn: TransactionPort, post_id: str, lang: str, slug: str) -> None:
        entry = SlugIndexEntry(post_id=post_id, lang=lang, slug=slug).to_document()
        entry["claimedAt"] = SERVER_TIMESTAMP
        txn.set(self._config.slug_index_collection, slug_key(lang, slug), entry)

    def _release(
        self,
        txn: TransactionPort,
        post_id: str,
        lang: str,
        slug: str,
        entry: DocumentSnapshot,
    ) -> None:
        """Delete an index entry read in Phase 1, only if this post owns it."""
        if not entry.exists:
            return
        owner = entry.get("postId")
        if owner != post_id:
            logger.warning(
                "Not releasing slug %s: owned by post %s, not %s",
                slug_key(lang, slug),
                owner,
                post_id,
            )
            return
        txn.delete(self._config.slug_index_collection, slug_key(lang, slug))

    async def _read_entry(self, txn: TransactionPort, lang: str, slug: str) -> DocumentSnapshot:
        return await txn.get(self._config.slug_index_collection, slug_key(lang, slug))

    async def _insert_post(
        self,
        txn: TransactionPort,
        post_id: str,
        document: dict[str, Any],
        slugs: Mapping[str, str],
    ) -> None:
        """Claim every slug of a new post and write it (shared by create/duplicate)."""
        # Phase 1: all reads
        entries: list[tuple[str, str, DocumentSnapshot]] = []
        for lang, slug in slugs.items():
            entries.append((lang, slug, await self._read_entry(txn, lang, slug)))

        for lang, slug, entry in entries:
            if entry.exists:
                raise SlugTakenError(lang, slug, entry.get("postId"))

        # Phase 2: all writes
        for lang, slug, _ in entries:
            self._claim(txn, post_id, lang, slug)
        txn.set(self._config.posts_collection, post_id, document)

    # --- Queries ---

    async def is_slug_available(
        self,
        lang: str,
        slug: str,
        exclude_post_id: str | None = None,
    ) -> bool:
        """
        Best-effort availability pre-check (non-transactional).

        An entry owned by ``exclude_post_id`` counts as available. The
        authoritative check happens inside the mutating transaction.
        """
        entry = await self._store.get(self._config.slug_index_collection, slug_key(lang, slug))
        if not entry.exists:
            return True
        return exclude_post_id is not None and entry.get("postId") == exclude_post_id

    async def get_post(self, post_id: str) -> BlogPost | None:
        snap = await self._store.get(self._config.posts_collection, post_id)
        if not snap.exists:
            return None
        return BlogPost.from_document(snap.id, snap.to_dict())

    async def get_post_by_slug(self, lang: str, slug: str) -> BlogPost | None:
        entry = await self._store.get(self._config.slug_index_collection, slug_key(lang, slug))
        if not entry.exists:
            return None
        return await self.get_post(entry.get("postId"))

    async def list_posts(
        self,
        *,
        status: str | None = None,
        category: str | None = None,
        tag: str | None = None,
        page_size: int | None = None,
        start_after: DocumentSnapshot | None = None,
        include_all_statuses: bool = False,
    ) -> PostPage:
        """
        List posts, newest update first.

        Only published posts unless ``include_all_statuses`` (CMS), in which
        case ``status`` optionally narrows the result.
        """
        page_size = page_size or self._config.cms_page_size
        where: list[FieldFilter] = []
        if not include_all_statuses:
            where.append(FieldFilter("status", "==", POST_STATUS_PUBLISHED))
        elif status:
            where.append(FieldFilter("status", "==", status))
        if category:
            where.append(FieldFilter("category", "==", category))
        if tag:
            where.append(FieldFilter("tags", "array-contains", tag))

        snaps = await self._store.query(
            self._config.posts_collection,
            where=where,
            order_by="updatedAt",
            descending=True,
            limit=page_size,
            start_after=start_after,
        )
        return PostPage(
            posts=[BlogPost.from_document(s.id, s.to_dict()) for s in snaps],
            last_doc=snaps[-1] if snaps else None,
            has_more=len(snaps) == page_size,
        )

    async def list_published_posts(
        self,
        *,
        lang: str = "en",
        category: str | None = None,
        tag: str | None = None,
        limit: int | None = None,
        start_after: DocumentSnapshot | None = None,
    ) -> PostPage:
        """Published posts that carry ``lang``; cursor and has_more follow the raw page."""
        page = await self.list_posts(
            category=category,
            tag=tag,
            page_size=limit or self._config.public_page_size,
            start_after=start_after,
        )
        page.posts = [p for p in page.posts if lang in p.languages]
        return page

    # --- Mutations ---

    async def create_post(self, post_data: BlogPost | Mapping[str, Any], author: Author) -> str:
        """
        Create a post and claim all of its slugs atomically.

        Raises:
            SlugTakenError: any declared (lang, slug) is already claimed;
                nothing is written.
            PostValidationError: malformed post data or slug.
        """
        post = self._coerce_post(post_data)
        post_id = self._store.new_id(self._config.posts_collection)
        post.id = post_id
        post.author = author.stamp()

        slugs = post.claimed_slugs()
        self._validate_slugs(slugs)
        self._derive(post)

        document = post.to_document()
        document["createdAt"] = SERVER_TIMESTAMP
        document["updatedAt"] = SERVER_TIMESTAMP
        if post.status == POST_STATUS_PUBLISHED and post.published_at is None:
            document["publishedAt"] = SERVER_TIMESTAMP

        async def _create(txn: TransactionPort) -> None:
            await self._insert_post(txn, post_id, document, slugs)

        try:
            await self._store.run_transaction(_create)
        except SlugTakenError as e:
            logger.warning(
                "Create rejected: slug %s taken by %s", slug_key(e.lang, e.slug), e.owner_post_id
            )
            raise

        logger.info("Created post %s with slugs %s", post_id, sorted(slugs.items()))
        return post_id

    async def update_post(self, post_id: str, updates: Mapping[str, Any]) -> None:
        """
        Update a post, moving slug claims in the same transaction.

        When ``languages`` is part of ``updates`` it replaces the whole
        language map: languages left out are removed and their slugs
        released. Without it every language and claim is kept.

        Raises:
            PostNotFoundError: the post does not exist.
            SlugTakenError: a new slug is owned by another post; the post
                and the index are left unchanged.
            LastLanguageRemovalError: ``languages`` would leave no language.
            PostValidationError: unknown fields, bad schema or slug.
        """
        changes_in = self._coerce_updates(updates)
        posts = self._config.posts_collection

        async def _update(txn: TransactionPort) -> list[SlugChange]:
            # Phase 1: all reads (post, then every index entry touched)
            snap = await txn.get(posts, post_id)
            if not snap.exists:
                raise PostNotFoundError(post_id)
            current = BlogPost.from_document(post_id, snap.to_dict())

            try:
                updated = BlogPost.model_validate({**current.model_dump(), **changes_in})
            except ValidationError as e:
                raise PostValidationError(_schema_errors(e)) from e

            if current.languages and not updated.languages:
                raise LastLanguageRemovalError(post_id, next(iter(current.languages)))

            changes = plan_slug_changes(current, updated)
            self._validate_slugs({c.lang: c.new_slug for c in changes})

            claims: list[tuple[SlugChange, DocumentSnapshot]] = []
            releases: list[tuple[SlugChange, DocumentSnapshot]] = []
            for change in changes:
                if change.new_slug:
                    entry = await self._read_entry(txn, change.lang, change.new_slug)
                    claims.append((change, entry))
                if change.old_slug:
                    entry = await self._read_entry(txn, change.lang, change.old_slug)
                    releases.append((change, entry))

            # Phase 2: decide from the gathered reads, then write
            for change, entry in claims:
                if entry.exists and entry.get("postId") != post_id:
                    raise SlugTakenError(change.lang, change.new_slug, entry.get("postId"))

            for change, entry in releases:
                self._release(txn, post_id, change.lang, change.old_slug, entry)
            for change, _ in claims:
                self._claim(txn, post_id, change.lang, change.new_slug)

            self._derive(updated)
            patch = updated.model_dump(
                by_alias=True, include={*changes_in, "languages", "insight_keys"}
            )
            patch["updatedAt"] = SERVER_TIMESTAMP
            txn.update(posts, post_id, patch)
            return changes

        try:
            changes = await self._store.run_transaction(_update)
        except SlugTakenError as e:
            logger.warning(
                "Update of %s rejected: slug %s taken by %s",
                post_id,
                slug_key(e.lang, e.slug),
                e.owner_post_id,
            )
            raise

        logger.info("Updated post %s (%d slug changes)", post_id, len(changes))

    async def delete_post(self, post_id: str) -> None:
        """Delete a post and release every slug it owns."""
        posts = self._config.posts_collection

        async def _delete(txn: TransactionPort) -> int:
            # Phase 1: all reads
            snap = await txn.get(posts, post_id)
            if not snap.exists:
                raise PostNotFoundError(post_id)
            post = BlogPost.from_document(post_id, snap.to_dict())

            entries: list[tuple[str, str, DocumentSnapshot]] = []
            for lang, slug in post.claimed_slugs().items():
                entries.append((lang, slug, await self._read_entry(txn, lang, slug)))

            # Phase 2: all writes
            for lang, slug, entry in entries:
                self._release(txn, post_id, lang, slug, entry)
            txn.delete(posts, post_id)
            return len(entries)

        released = await self._store.run_transaction(_delete)
        logger.info("Deleted post %s (released %d slugs)", post_id, released)

    async def publish_post(self, post_id: str) -> None:
        """
        Publish a post.

        Reads and writes the post in one transaction; slugs are untouched.
        ``publishedAt`` is set only on the first publish.

        Raises:
            PostNotFoundError: the post does not exist.
            PostValidationError: no language has title, slug and content.
        """
        posts = self._config.posts_collection

        async def _publish(txn: TransactionPort) -> None:
            snap = await txn.get(posts, post_id)
            if not snap.exists:
                raise PostNotFoundError(post_id)
            post = BlogPost.from_document(post_id, snap.to_dict())

            if not any(content.is_publishable() for content in post.languages.values()):
                raise PostValidationError(
                    [
                        PostFieldError(
                            code="no_publishable_language",
                            message=(
                                "Post must have at least one language with title, slug, "
                                "and content"
                            ),
                            field="languages",
                        )
                    ]
                )

            self._derive(post)
            patch = post.model_dump(by_alias=True, include={"languages", "insight_keys"})
            patch["status"] = POST_STATUS_PUBLISHED
            patch["updatedAt"] = SERVER_TIMESTAMP
            if post.published_at is None:
                patch["publishedAt"] = SERVER_TIMESTAMP
            txn.update(posts, post_id, patch)

        await self._store.run_transaction(_publish)
        logger.info("Published post %s", post_id)

    async def unpublish_post(self, post_id: str) -> None:
        try:
            await self._store.update(
                self._config.posts_collection,
                post_id,
                {"status": POST_STATUS_UNPUBLISHED, "updatedAt": SERVER_TIMESTAMP},
            )
        except DocumentNotFoundError as e:
            raise PostNotFoundError(post_id) from e
        logger.info("Unpublished post %s", post_id)

    def _copy_slug_candidates(self, base: str) -> Iterator[str]:
        """Yield base-copy, base-copy-1, ...; the base is cut to stay within slug_max_length."""
        suffix = self._config.copy_suffix
        tails = [suffix]
        tails.extend(f"{suffix}-{n}" for n in range(1, self._config.duplicate_max_attempts + 1))
        for tail in tails:
            room = self._config.slug_max_length - len(tail)
            if room < 1:
                return
            yield f"{base[:room].rstrip('-')}{tail}"

    async def _allocate_copy_slug(self, lang: str, base: str) -> str:
        """Probe -copy, -copy-1, ... until a free slug is found (best effort)."""
        attempts = 0
        for candidate in self._copy_slug_candidates(base):
            attempts += 1
            logger.debug("Probing copy slug %s", slug_key(lang, candidate))
            if await self.is_slug_available(lang, candidate):
                return candidate
        raise SlugAllocationExhaustedError(lang, base, attempts)

    async def duplicate_post(self, source_post_id: str, author: Author) -> str:
        """
        Copy a post as a new draft with fresh slugs.

        Slug suffixes are probed outside the claiming transaction, so a
        concurrent writer can take a probed slug first. The claiming
        transaction re-checks every slug and raises SlugTakenError in that
        case; the caller retries.
        """
        source = await self.get_post(source_post_id)
        if source is None:
            raise PostNotFoundError(source_post_id)

        new_id = self._store.new_id(self._config.posts_collection)

        languages: dict[str, LanguageContent] = {}
        for lang, content in source.languages.items():
            copied = content.model_copy(deep=True)
            if content.slug:
                copied.slug = await self._allocate_copy_slug(lang, content.slug)
            if content.title:
                copied.title = f"{content.title}{self._config.copy_title_suffix}"
            languages[lang] = copied

        post = source.model_copy(deep=True)
        post.id = new_id
        post.status = POST_STATUS_DRAFT
        post.published_at = None
        post.languages = languages
        post.author = author.stamp()
        post.related_post_ids = []
        self._derive(post)

        document = post.to_document(exclude={"view_count"})
        document["createdAt"] = SERVER_TIMESTAMP
        document["updatedAt"] = SERVER_TIMESTAMP
        slugs = post.claimed_slugs()
        self._validate_slugs(slugs)

        async def _duplicate(txn: TransactionPort) -> None:
            await self._insert_post(txn, new_id, document, slugs)

        try:
            await self._store.run_transaction(_duplicate)
        except SlugTakenError as e:
            logger.warning(
                "Duplicate of %s lost race for slug %s", source_post_id, slug_key(e.lang, e.slug)
            )
            raise

        logger.info("Duplicated post %s as %s", source_post_id, new_id)
        return new_id

    async def add_post_language(
        self,
        post_id: str,
        lang: str,
        content: LanguageContent | Mapping[str, Any],
    ) -> None:
        """Add or replace one language; its slug is claimed through update_post."""
        post = await self.get_post(post_id)
        if post is None:
            raise PostNotFoundError(post_id)

        if isinstance(content, LanguageContent):
            block = content.model_copy(deep=True)
        else:
            try:
                block = LanguageContent.model_validate(dict(content))
            except ValidationError as e:
                raise PostValidationError(_schema_errors(e)) from e
        block.reading_time_min = estimate_reading_time(block.content_html)

        languages = dict(post.languages)
        languages[lang] = block
        await self.update_post(post_id, {"languages": languages})

    async def remove_post_language(self, post_id: str, lang: str) -> None:
        """Remove one language and release its slug; the last language stays."""
        post = await self.get_post(post_id)
        if post is None:
            raise PostNotFoundError(post_id)
        if lang not in post.languages:
            logger.debug("Post %s has no language %s; nothing to remove", post_id, lang)
            return
        if len(post.languages) <= 1:
            raise LastLanguageRemovalError(post_id, lang)

        languages = {code: c for code, c in post.languages.items() if code != lang}
        await self.update_post(post_id, {"languages": languages})

    # --- Maintenance ---

    async def audit_slug_index(self) -> SlugIndexAudit:
        """Compare every post's slugs with the index (read-only)."""
        post_snaps = await self._store.query(self._config.posts_collection)
        entry_snaps = await self._store.query(self._config.slug_index_collection)

        posts = {s.id: BlogPost.from_document(s.id, s.to_dict()) for s in post_snaps}
        entries = {s.id: s for s in entry_snaps}
        audit = SlugIndexAudit(entries_checked=len(entries), posts_checked=len(posts))

        for key, snap in entries.items():
            post = posts.get(snap.get("postId"))
            if post is None:
                audit.orphan_entries.append(key)
                continue
            content = post.languages.get(snap.get("lang"))
            if content is None or content.slug != snap.get("slug"):
                audit.stale_entries.append(key)

        for post in posts.values():
            for lang, slug in post.claimed_slugs().items():
                key = slug_key(lang, slug)
                entry = entries.get(key)
                if entry is None or entry.get("postId") != post.id:
                    audit.missing_entries.append(key)

        if not audit.is_consistent:
            logger.warning(
                "Slug index inconsistent: %d orphan, %d stale, %d missing",
                len(audit.orphan_entries),
                len(audit.stale_entries),
                len(audit.missing_entries),
            )
        return audit


def create_post_service(
    store: DocumentStorePort,
    rules: Rules | None = None,
) -> BlogPostService:
    """Factory for BlogPostService."""
    return BlogPostService(store, build_config(rules))
