"""
Posts component - Post lifecycle with slug uniqueness per language.

Entry points return output objects instead of raising: every protocol
error becomes ``success=False`` with field errors carrying a stable code
(slug_taken, not_found, validation codes, slug_exhausted, last_language).
Store failures (transaction aborted, ordering violations) still raise.

Invariants:
- (lang, slug) is owned by at most one post
- Every non-empty slug of a post is mirrored in the slug index
- A rejected operation leaves posts and index unchanged
"""

from __future__ import annotations

from ._impl import BlogPostService
from .models import (
    AddLanguageInput,
    BlogPostError,
    CreatePostInput,
    DeletePostInput,
    DuplicatePostInput,
    GetPostInput,
    PostFieldError,
    PostOperationOutput,
    PostOutput,
    PublishPostInput,
    RemoveLanguageInput,
    UnpublishPostInput,
    UpdatePostInput,
)


def _failure(post_id: str | None, error: BlogPostError) -> PostOperationOutput:
    return PostOperationOutput(post_id=post_id, errors=error.field_errors(), success=False)


async def run_get(inp: GetPostInput, *, service: BlogPostService) -> PostOutput:
    """Get a post by id or by (lang, slug)."""
    if inp.post_id is not None:
        post = await service.get_post(inp.post_id)
    elif inp.lang is not None and inp.slug is not None:
        post = await service.get_post_by_slug(inp.lang, inp.slug)
    else:
        return PostOutput(
            post=None,
            errors=[
                PostFieldError(
                    code="invalid_input",
                    message="Either post_id or (lang + slug) must be provided",
                )
            ],
            success=False,
        )

    if post is None:
        return PostOutput(
            post=None,
            errors=[PostFieldError(code="not_found", message="Post not found")],
            success=False,
        )
    return PostOutput(post=post)


async def run_create(inp: CreatePostInput, *, service: BlogPostService) -> PostOperationOutput:
    try:
        post_id = await service.create_post(inp.post, inp.author)
    except BlogPostError as e:
        return _failure(None, e)
    return PostOperationOutput(post_id=post_id)


async def run_update(inp: UpdatePostInput, *, service: BlogPostService) -> PostOperationOutput:
    try:
        await service.update_post(inp.post_id, inp.updates)
    except BlogPostError as e:
        return _failure(inp.post_id, e)
    return PostOperationOutput(post_id=inp.post_id)


async def run_delete(inp: DeletePostInput, *, service: BlogPostService) -> PostOperationOutput:
    try:
        await service.delete_post(inp.post_id)
    except BlogPostError as e:
        return _failure(inp.post_id, e)
    return PostOperationOutput(post_id=inp.post_id)


async def run_publish(inp: PublishPostInput, *, service: BlogPostService) -> PostOperationOutput:
    try:
        await service.publish_post(inp.post_id)
    except BlogPostError as e:
        return _failure(inp.post_id, e)
    return PostOperationOutput(post_id=inp.post_id)


async def run_unpublish(
    inp: UnpublishPostInput, *, service: BlogPostService
) -> PostOperationOutput:
    try:
        await service.unpublish_post(inp.post_id)
    except BlogPostError as e:
        return _failure(inp.post_id, e)
    return PostOperationOutput(post_id=inp.post_id)


async def run_duplicate(
    inp: DuplicatePostInput, *, service: BlogPostService
) -> PostOperationOutput:
    try:
        new_id = await service.duplicate_post(inp.post_id, inp.author)
    except BlogPostError as e:
        return _failure(None, e)
    return PostOperationOutput(post_id=new_id)


async def run_add_language(
    inp: AddLanguageInput, *, service: BlogPostService
) -> PostOperationOutput:
    try:
        await service.add_post_language(inp.post_id, inp.lang, inp.content)
    except BlogPostError as e:
        return _failure(inp.post_id, e)
    return PostOperationOutput(post_id=inp.post_id)


async def run_remove_language(
    inp: RemoveLanguageInput, *, service: BlogPostService
) -> PostOperationOutput:
    try:
        await service.remove_post_language(inp.post_id, inp.lang)
    except BlogPostError as e:
        return _failure(inp.post_id, e)
    return PostOperationOutput(post_id=inp.post_id)


async def run(
    inp: (
        GetPostInput
        | CreatePostInput
        | UpdatePostInput
        | DeletePostInput
        | PublishPostInput
        | UnpublishPostInput
        | DuplicatePostInput
        | AddLanguageInput
        | RemoveLanguageInput
    ),
    *,
    service: BlogPostService,
) -> PostOutput | PostOperationOutput:
    """
    Main entry point for the posts component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, GetPostInput):
        return await run_get(inp, service=service)
    elif isinstance(inp, CreatePostInput):
        return await run_create(inp, service=service)
    elif isinstance(inp, UpdatePostInput):
        return await run_update(inp, service=service)
    elif isinstance(inp, DeletePostInput):
        return await run_delete(inp, service=service)
    elif isinstance(inp, PublishPostInput):
        return await run_publish(inp, service=service)
    elif isinstance(inp, UnpublishPostInput):
        return await run_unpublish(inp, service=service)
    elif isinstance(inp, DuplicatePostInput):
        return await run_duplicate(inp, service=service)
    elif isinstance(inp, AddLanguageInput):
        return await run_add_language(inp, service=service)
    elif isinstance(inp, RemoveLanguageInput):
        return await run_remove_language(inp, service=service)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
