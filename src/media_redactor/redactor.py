"""Redactor — the main API.  Swaps embedded media for links to the post.

Usage:
    from media_redactor import MediaKind, redact

    html = redact(content, MediaKind.AUDIO, "https://site/post/1")

    # Images only when they come from a private site
    html = redact(content, MediaKind.IMAGE, post_url, predicate.for_element)

Each call parses its own document, so a Redactor is safe to share between
threads as long as the ``should_redact`` callable is.
"""

from __future__ import annotations
import logging
import warnings
from typing import Callable

from bs4 import BeautifulSoup, Tag

from .types import MediaKind, Messages, RedactionResult

logger = logging.getLogger(__name__)

ShouldRedact = Callable[[Tag], bool]

DEFAULT_LINK = "#"


def _always(_: Tag) -> bool:
    return True


def parse_document(html: str) -> BeautifulSoup:
    """Parse a (possibly malformed) HTML fragment without raising or warning."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        return BeautifulSoup(html, "html.parser")


def _is_attached(element: Tag, document: BeautifulSoup) -> bool:
    return any(parent is document for parent in element.parents)


def _unwrap_figure_link(element: Tag) -> None:
    """<figure><a><img></a></figure> → <figure><img></figure>"""
    link = element.parent
    if link is None or link.name != "a":
        return
    figure = link.parent
    if figure is None or figure.name != "figure":
        return
    figure.append(element)
    # Keep the link if it still wraps other media or text
    if not link.get_text(strip=True) and link.find(True) is None:
        link.extract()


def _drop_captions(element: Tag) -> None:
    figure = element.parent
    if figure is None or figure.name != "figure":
        return
    for caption in figure.find_all("figcaption", recursive=False):
        caption.extract()


class Redactor:
    """Replaces one kind of embedded media with placeholder links."""

    def __init__(self, messages: Messages | None = None) -> None:
        self.messages = messages or Messages()

    def placeholder(self, document: BeautifulSoup, kind: MediaKind, target_link: str) -> Tag:
        link = document.new_tag("a", attrs={"href": target_link})
        link.string = self.messages.for_kind(kind)
        return link

    def redact_with_stats(
        self,
        html: str,
        kind: MediaKind,
        target_link: str = DEFAULT_LINK,
        should_redact: ShouldRedact | None = None,
    ) -> RedactionResult:
        """Redact every ``kind`` element that ``should_redact`` accepts.

        Matches are snapshotted up front and processed last-first, so
        moving or removing one never shifts the ones still to come.
        """
        if not html:
            return RedactionResult(html=html)

        target_link = target_link or DEFAULT_LINK
        should_redact = should_redact or _always
        document = parse_document(html)
        matches = document.find_all(kind.tag)

        redacted = skipped = 0
        for element in reversed(matches):
            # A figcaption removed earlier may have taken this one with it
            if not _is_attached(element, document):
                skipped += 1
                continue
            if not should_redact(element):
                continue

            _unwrap_figure_link(element)
            _drop_captions(element)
            element.replace_with(self.placeholder(document, kind, target_link))
            redacted += 1

        logger.debug(
            "redacted %d/%d <%s> elements (%d detached)",
            redacted, len(matches), kind.tag, skipped,
        )
        return RedactionResult(html=str(document), redacted=redacted, skipped=skipped)

    def redact(
        self,
        html: str,
        kind: MediaKind,
        target_link: str = DEFAULT_LINK,
        should_redact: ShouldRedact | None = None,
    ) -> str:
        """Same as :meth:`redact_with_stats`, returning only the HTML."""
        return self.redact_with_stats(html, kind, target_link, should_redact).html


def redact(
    html: str,
    kind: MediaKind,
    target_link: str = DEFAULT_LINK,
    should_redact: ShouldRedact | None = None,
    *,
    messages: Messages | None = None,
) -> str:
    """Module-level shortcut for ``Redactor(messages).redact(...)``."""
    return Redactor(messages).redact(html, kind, target_link, should_redact)
