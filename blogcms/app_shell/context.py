from __future__ import annotations

from dataclasses import dataclass

from blogcms.adapters.clock import SystemClock
from blogcms.app_shell.config import build_store
from blogcms.components.posts import BlogPostService, create_post_service
from blogcms.components.related import RelatedPostsService, build_related_config
from blogcms.core.ports.store import DocumentStorePort
from blogcms.core.ports.time import TimePort
from blogcms.rules.models import Rules


@dataclass
class ServiceContext:
    post_service: BlogPostService
    related_service: RelatedPostsService
    store: DocumentStorePort
    clock: TimePort
    rules: Rules

    @classmethod
    def create(
        cls,
        rules: Rules,
        *,
        store: DocumentStorePort | None = None,
        clock: TimePort | None = None,
    ) -> ServiceContext:
        clock = clock or SystemClock()
        store = store or build_store(rules, clock)

        post_service = create_post_service(store, rules)
        related_service = RelatedPostsService(post_service, clock, build_related_config(rules))

        return cls(
            post_service=post_service,
            related_service=related_service,
            store=store,
            clock=clock,
            rules=rules,
        )
