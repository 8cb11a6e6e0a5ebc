"""
Posts component - Blog post lifecycle and slug allocation protocol.
"""

from ._impl import (
    BlogPostService,
    PostsConfig,
    SlugChange,
    build_config,
    create_post_service,
    plan_slug_changes,
    slug_key,
)
from .component import (
    run,
    run_add_language,
    run_create,
    run_delete,
    run_duplicate,
    run_get,
    run_publish,
    run_remove_language,
    run_unpublish,
    run_update,
)
from .models import (
    AddLanguageInput,
    BlogPostError,
    CreatePostInput,
    DeletePostInput,
    DuplicatePostInput,
    GetPostInput,
    LastLanguageRemovalError,
    PostFieldError,
    PostNotFoundError,
    PostOperationOutput,
    PostOutput,
    PostPage,
    PostValidationError,
    PublishPostInput,
    RemoveLanguageInput,
    SlugAllocationExhaustedError,
    SlugIndexAudit,
    SlugTakenError,
    UnpublishPostInput,
    UpdatePostInput,
)

__all__ = [
    # Service
    "BlogPostService",
    "PostsConfig",
    "SlugChange",
    "build_config",
    "create_post_service",
    "plan_slug_changes",
    "slug_key",
    # Entry points
    "run",
    "run_add_language",
    "run_create",
    "run_delete",
    "run_duplicate",
    "run_get",
    "run_publish",
    "run_remove_language",
    "run_unpublish",
    "run_update",
    # Errors
    "BlogPostError",
    "LastLanguageRemovalError",
    "PostFieldError",
    "PostNotFoundError",
    "PostValidationError",
    "SlugAllocationExhaustedError",
    "SlugTakenError",
    # Input models
    "AddLanguageInput",
    "CreatePostInput",
    "DeletePostInput",
    "DuplicatePostInput",
    "GetPostInput",
    "PublishPostInput",
    "RemoveLanguageInput",
    "UnpublishPostInput",
    "UpdatePostInput",
    # Output models
    "PostOperationOutput",
    "PostOutput",
    "PostPage",
    "SlugIndexAudit",
]
