"""Notification filter — what the email pipeline calls for each outgoing
activity notification.

Usage:

    flt = NotificationFilter(is_restricted=PrivacyPredicate(resolver))
    body = flt.filter(body, activity)

Only new blog posts are touched.  Images are replaced when they live on a
private site; audio and video are always replaced, because embedded players
don't work in mail clients anyway.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable
from urllib.parse import urlsplit

from bs4 import Tag

from .redactor import DEFAULT_LINK, Redactor
from .types import Activity, MediaKind, Messages

logger = logging.getLogger(__name__)

NEW_POST_TYPE = "new_blog_post"
_SAFE_SCHEMES = {"", "http", "https", "mailto"}


def clean_link(url: str | None) -> str:
    """Make a post URL safe to use as an href; falls back to ``#``."""
    url = (url or "").strip()
    if not url:
        return DEFAULT_LINK
    try:
        scheme = urlsplit(url).scheme.lower()
    except ValueError:
        return DEFAULT_LINK
    if scheme not in _SAFE_SCHEMES:
        logger.warning("refusing post link with scheme %r", scheme)
        return DEFAULT_LINK
    return url


@dataclass
class NotificationFilter:
    """Strips private images, audio and video from new-post notifications."""

    is_restricted: Callable[[str | None], bool]
    messages: Messages = field(default_factory=Messages)
    redact_audio: bool = True
    redact_video: bool = True

    def _image_is_private(self, element: Tag) -> bool:
        return self.is_restricted(element.get("src"))

    def filter(
        self,
        content: str,
        activity: Activity,
        action: str | None = None,
        group: Any = None,
    ) -> str:
        """Return ``content`` with private media swapped for post links."""
        if activity.type != NEW_POST_TYPE:
            return content

        post_url = clean_link(activity.primary_link)
        redactor = Redactor(self.messages)

        content = redactor.redact(content, MediaKind.IMAGE, post_url, self._image_is_private)
        if self.redact_audio:
            content = redactor.redact(content, MediaKind.AUDIO, post_url)
        if self.redact_video:
            content = redactor.redact(content, MediaKind.VIDEO, post_url)
        return content
