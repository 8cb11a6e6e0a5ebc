import pytest

from blogcms.core.entities import BlogPost, LanguageContent
from blogcms.core.services.text import (
    compute_search_tokens,
    estimate_reading_time,
    generate_slug,
    is_valid_slug,
)


@pytest.mark.parametrize(
    "slug,valid",
    [
        ("hello", True),
        ("hello-world-2", True),
        ("Hello", False),
        ("hello--world", False),
        ("-hello", False),
        ("hello_world", False),
        ("", False),
    ],
)
def test_is_valid_slug(slug, valid):
    assert is_valid_slug(slug) is valid


def test_generate_slug():
    assert generate_slug("Hello, World!") == "hello-world"
    assert generate_slug("  NFP   -- Preview_2025 ") == "nfp-preview-2025"
    assert generate_slug("") == ""
    assert len(generate_slug("word " * 60)) <= 100
    assert is_valid_slug(generate_slug("What's next for the Fed?"))


def test_estimate_reading_time():
    assert estimate_reading_time("") == 0
    assert estimate_reading_time("<p>one two</p>") == 1
    assert estimate_reading_time("<p>" + "word " * 450 + "</p>") == 2
    assert estimate_reading_time("<p>" + "word " * 451 + "</p>") == 3


def test_search_tokens_are_sorted_and_deduplicated():
    post = BlogPost(
        category="market-analysis",
        tags=["Forex", "forex"],
        currency_tags=["USD"],
        languages={"en": LanguageContent(title="Dollar, Rallies!", excerpt="The dollar rallies")},
    )
    tokens = compute_search_tokens(post, "en")

    assert tokens == sorted(set(tokens))
    assert {"dollar", "rallies", "forex", "market", "analysis", "usd", "the"} <= set(tokens)
    assert compute_search_tokens(post, "fr") == []
