import pytest

from story_dedup.core.url import UrlCanonicalizer, canonicalize_url, extract_domain


def test_tracking_params_and_trailing_slash_are_removed():
    url = "https://example.com/a/?utm_source=x&id=5&fbclid=y"

    assert canonicalize_url(url) == "https://example.com/a?id=5"


def test_fragment_is_dropped_and_query_order_kept():
    url = "https://example.com/news?b=2&gclid=z&a=1#comments"

    assert canonicalize_url(url) == "https://example.com/news?b=2&a=1"


def test_root_path_is_kept():
    assert canonicalize_url("https://example.com/") == "https://example.com/"


def test_scheme_and_host_are_lowercased():
    assert canonicalize_url("HTTPS://WWW.Example.COM/Path") == "https://www.example.com/Path"


def test_tracking_keys_match_case_insensitively():
    assert canonicalize_url("https://example.com/x?UTM_Medium=a&Ref=b&q=1") == "https://example.com/x?q=1"


def test_query_removed_when_only_tracking_params_remain():
    assert canonicalize_url("https://example.com/x?utm_campaign=a&xtor=b") == "https://example.com/x"


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/a/?utm_source=x&id=5&fbclid=y",
        "https://example.com/a//?q=a%20b&ref=x#frag",
        "http://example.com",
        "https://example.com/?utm_source=a",
        "not a url",
        "",
    ],
)
def test_canonicalize_is_idempotent(url):
    once = canonicalize_url(url)

    assert canonicalize_url(once) == once


@pytest.mark.parametrize("url", ["not a url", "/relative/path", "http://[::1"])
def test_unparseable_urls_are_returned_unchanged(url):
    assert canonicalize_url(url) == url


def test_custom_block_list():
    canonicalizer = UrlCanonicalizer(tracking_params=["session"], tracking_prefixes=["mc_"])

    url = "https://example.com/p?session=1&mc_cid=2&utm_source=3"
    assert canonicalizer.canonicalize(url) == "https://example.com/p?utm_source=3"


def test_extract_domain_strips_www():
    assert extract_domain("https://www.AA.com.tr/tr/gundem") == "aa.com.tr"
    assert extract_domain("https://haberler.com:8080/x") == "haberler.com"


@pytest.mark.parametrize("url", ["", None, "not a url", "http://[::1"])
def test_extract_domain_returns_empty_for_unparseable(url):
    assert extract_domain(url) == ""
