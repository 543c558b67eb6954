from __future__ import annotations

from typing import Iterable
from urllib.parse import unquote_plus, urlsplit, urlunsplit

DEFAULT_TRACKING_PREFIXES = ("utm_",)
DEFAULT_TRACKING_PARAMS = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "gclid",
        "fbclid",
        "msclkid",
        "xtor",
        "trk",
        "ref",
        "referrer",
    }
)


class UrlCanonicalizer:
    """Builds a stable dedup key from an article URL.

    Drops the fragment, trailing slashes and tracking query parameters.
    Surviving parameters keep their raw text and relative order, so
    canonicalizing twice gives the same result as canonicalizing once.
    """

    def __init__(
        self,
        tracking_params: Iterable[str] = DEFAULT_TRACKING_PARAMS,
        tracking_prefixes: Iterable[str] = DEFAULT_TRACKING_PREFIXES,
    ):
        self.tracking_params = frozenset(p.lower() for p in tracking_params)
        self.tracking_prefixes = tuple(p.lower() for p in tracking_prefixes)

    def is_tracking(self, key: str) -> bool:
        lowered = key.lower()
        return lowered in self.tracking_params or lowered.startswith(self.tracking_prefixes)

    def canonicalize(self, url: str) -> str:
        if not url:
            return url
        try:
            split = urlsplit(url.strip())
        except ValueError:
            return url
        if not split.scheme or not split.netloc:
            return url

        path = split.path
        if len(path) > 1 and path.endswith("/"):
            path = path.rstrip("/") or "/"

        kept = []
        for pair in split.query.split("&"):
            if not pair:
                continue
            key = unquote_plus(pair.split("=", 1)[0])
            if self.is_tracking(key):
                continue
            kept.append(pair)

        return urlunsplit((split.scheme.lower(), split.netloc.lower(), path, "&".join(kept), ""))


_DEFAULT = UrlCanonicalizer()


def canonicalize_url(url: str) -> str:
    """Canonicalize with the default tracking block-list. Never raises."""
    return _DEFAULT.canonicalize(url)


def extract_domain(url: str | None) -> str:
    """Return the lowercased host of url without a leading "www.".

    Returns an empty string when the URL has no parseable host.
    """
    if not url:
        return ""
    try:
        host = urlsplit(url.strip()).hostname
    except ValueError:
        return ""
    if not host:
        return ""
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host
