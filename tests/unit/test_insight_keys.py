from blogcms.core.services.insight_keys import (
    compute_blog_insight_keys,
    find_canonical_slug,
    normalize_key,
)


def test_normalize_key():
    assert normalize_key("  Retail Sales ") == "retail-sales"
    assert normalize_key("china_gdp") == "china-gdp"
    assert normalize_key("") == ""


def test_find_canonical_slug():
    assert find_canonical_slug("NFP") == "nfp"
    assert find_canonical_slug("ism pmi") == "ism-pmi"
    assert find_canonical_slug("Non Farm") is None
    assert find_canonical_slug("") is None


def test_compute_insight_keys():
    keys = compute_blog_insight_keys("p1", ["NFP", "Fed Speech"], ["usd", "EUR", "XYZ"])

    assert keys[0] == "post:p1"
    assert "event:nfp" in keys
    assert "eventNameKey:fed-speech" in keys
    assert "currency:USD" in keys
    assert "currency:EUR" in keys
    assert "currency:XYZ" not in keys
    assert "eventCurrency:nfp_USD" in keys
    assert "eventCurrency:nfp_EUR" in keys


def test_insight_keys_are_deduplicated_in_order():
    keys = compute_blog_insight_keys(None, ["nfp", "NFP"], ["USD", "usd"])
    assert keys == ["event:nfp", "currency:USD", "eventCurrency:nfp_USD"]
