"""
Related component - Related posts ranking and CMS preview.
"""

from ._impl import (
    RelatedConfig,
    RelatedPost,
    RelatedPostsService,
    RelatedPreview,
    build_related_config,
)

__all__ = [
    "RelatedConfig",
    "RelatedPost",
    "RelatedPostsService",
    "RelatedPreview",
    "build_related_config",
]
