from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from blogcms.adapters.clock import FixedClock
from blogcms.adapters.memory_store import InMemoryDocumentStore
from blogcms.components.posts import BlogPostService, create_post_service
from blogcms.core.entities import Author
from blogcms.rules.loader import load_rules
from blogcms.rules.models import Rules

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def rules_path() -> Path:
    return PROJECT_ROOT / "rules.yaml"


@pytest.fixture
def rules(rules_path: Path) -> Rules:
    """Real rules from the project root."""
    return load_rules(rules_path)


@pytest.fixture
def t0() -> datetime:
    return datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def clock(t0: datetime) -> FixedClock:
    return FixedClock(t0)


@pytest.fixture
def store(clock: FixedClock) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(clock)


@pytest.fixture
def service(store: InMemoryDocumentStore, rules: Rules) -> BlogPostService:
    return create_post_service(store, rules)


@pytest.fixture
def author() -> Author:
    return Author(uid="u-1", display_name="Ada", email="ada@example.com")


@pytest.fixture
def make_post() -> Callable[..., dict[str, Any]]:
    """Build raw post data with one publishable block per (lang, slug)."""

    def _make(slugs: dict[str, str], **fields: Any) -> dict[str, Any]:
        languages = {
            lang: {
                "title": f"Title {slug}" if slug else "Untitled",
                "slug": slug,
                "excerpt": "Short excerpt",
                "contentHtml": "<p>Hello blog world</p>",
            }
            for lang, slug in slugs.items()
        }
        return {"languages": languages, **fields}

    return _make
