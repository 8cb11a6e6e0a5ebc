"""
Regression invariants for the slug index.

- Uniqueness: no two posts carry the same (lang, slug)
- No orphans: every index entry points at a post that carries that slug,
  and every non-empty slug of every post has its entry
- Atomicity: rejected operations leave posts and index unchanged
"""

from __future__ import annotations

import asyncio
import random
from collections import Counter

import pytest

from blogcms.components.posts import BlogPostError, BlogPostService
from blogcms.core.entities import BlogPost
from blogcms.core.ports.store import TransactionAbortedError

LANGS = ["en", "es", "fr"]
SLUGS = ["alpha", "beta", "gamma", "delta"]


async def _all_posts(store) -> list[BlogPost]:
    return [BlogPost.from_document(s.id, s.to_dict()) for s in await store.query("blogPosts")]


async def _assert_invariants(service: BlogPostService, store) -> None:
    audit = await service.audit_slug_index()
    assert audit.is_consistent, audit

    claims = Counter(
        (lang, slug)
        for post in await _all_posts(store)
        for lang, slug in post.claimed_slugs().items()
    )
    duplicated = [pair for pair, n in claims.items() if n > 1]
    assert duplicated == []
    assert audit.entries_checked == len(claims)


async def _random_op(service: BlogPostService, rng: random.Random, make_post, author) -> None:
    page = await service.list_posts(include_all_statuses=True, page_size=100)
    posts = [p.id for p in page.posts]
    lang = rng.choice(LANGS)
    slug = rng.choice(SLUGS)
    op = rng.choice(["create", "update", "delete", "duplicate", "add", "remove", "publish"])

    if op == "create" or not posts:
        await service.create_post(make_post({lang: slug}), author)
        return

    post_id = rng.choice(posts)
    if op == "update":
        await service.update_post(post_id, {"languages": make_post({lang: slug})["languages"]})
    elif op == "delete":
        await service.delete_post(post_id)
    elif op == "duplicate":
        await service.duplicate_post(post_id, author)
    elif op == "add":
        await service.add_post_language(post_id, lang, {"title": "T", "slug": slug})
    elif op == "remove":
        await service.remove_post_language(post_id, lang)
    else:
        await service.publish_post(post_id)


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", [1, 7, 42])
async def test_index_consistent_after_random_sequences(service, store, make_post, author, seed):
    rng = random.Random(seed)
    for _ in range(60):
        try:
            await _random_op(service, rng, make_post, author)
        except BlogPostError:
            pass
        await _assert_invariants(service, store)


@pytest.mark.asyncio
async def test_index_consistent_under_concurrency(service, store, make_post, author):
    rng = random.Random(3)

    async def worker() -> None:
        for _ in range(15):
            try:
                await _random_op(service, rng, make_post, author)
            except (BlogPostError, TransactionAbortedError):
                pass

    await asyncio.gather(*(worker() for _ in range(4)))
    await _assert_invariants(service, store)


@pytest.mark.asyncio
async def test_rejected_operations_change_nothing(service, store, make_post, author):
    await service.create_post(make_post({"en": "alpha", "es": "alfa"}), author)
    victim = await service.create_post(make_post({"en": "beta"}), author)

    async def state():
        posts = sorted((s.id, repr(s.to_dict())) for s in await store.query("blogPosts"))
        index = sorted((s.id, repr(s.to_dict())) for s in await store.query("blogSlugIndex"))
        return posts, index

    before = await state()

    rejected = [
        service.create_post(make_post({"fr": "new", "es": "alfa"}), author),
        service.update_post(victim, {"languages": make_post({"en": "alpha"})["languages"]}),
        service.add_post_language(victim, "es", {"title": "B", "slug": "alfa"}),
        service.remove_post_language(victim, "en"),
        service.update_post(victim, {"nope": 1}),
    ]
    for call in rejected:
        with pytest.raises(BlogPostError):
            await call

    assert await state() == before
