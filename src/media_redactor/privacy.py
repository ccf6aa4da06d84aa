"""Privacy predicate — decides whether a media URL points at a private site.

The site lookup itself is delegated to a ``SiteResolver``.  Anything the
resolver doesn't know about is treated as public, so unknown hosts are
never redacted.
"""

from __future__ import annotations
import logging
from typing import Iterable, Protocol
from urllib.parse import urlsplit

from bs4 import Tag

from .types import Site

logger = logging.getLogger(__name__)


class SiteResolver(Protocol):
    def resolve(self, host: str, path: str) -> Site | None: ...


def _with_slash(path: str) -> str:
    return path if path.endswith("/") else path + "/"


class StaticSiteResolver:
    """In-memory resolver over a fixed list of sites.

    Hosts match case-insensitively; among sites on the same host the one
    with the longest matching path prefix (whole segments) wins.
    """

    __slots__ = ("_by_host",)

    def __init__(self, sites: Iterable[Site] = ()) -> None:
        self._by_host: dict[str, list[Site]] = {}
        for site in sites:
            self._by_host.setdefault(site.domain.lower(), []).append(site)
        for candidates in self._by_host.values():
            candidates.sort(key=lambda s: len(_with_slash(s.path)), reverse=True)

    def resolve(self, host: str, path: str) -> Site | None:
        wanted = _with_slash(path or "/")
        for site in self._by_host.get(host.lower(), []):
            if wanted.startswith(_with_slash(site.path)):
                return site
        return None

    @property
    def size(self) -> int:
        return sum(len(v) for v in self._by_host.values())


class PrivacyPredicate:
    """Callable ``url -> bool``: True when the URL's site is not public."""

    def __init__(self, resolver: SiteResolver) -> None:
        self.resolver = resolver

    def __call__(self, url: str | None) -> bool:
        try:
            parts = urlsplit(url or "")
            host = parts.hostname
        except ValueError:
            return False
        if not host:
            return False

        site = self.resolver.resolve(host, parts.path or "/")
        if site is None:
            logger.debug("no site for %s, treating as public", host)
            return False
        return not site.is_public

    def for_element(self, element: Tag) -> bool:
        """Check an element by its ``src`` attribute."""
        return self(element.get("src"))
