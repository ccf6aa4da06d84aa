"""Core types."""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable


class MediaKind(Enum):
    """Embedded media kinds, valued by the HTML tag they match."""
    IMAGE = "img"
    AUDIO = "audio"
    VIDEO = "video"

    @property
    def tag(self) -> str:
        return self.value

    @classmethod
    def parse(cls, name: str) -> "MediaKind":
        """Accept a kind name ("image") or a tag name ("img")."""
        key = (name or "").strip().lower()
        for kind in cls:
            if key in (kind.name.lower(), kind.value):
                return kind
        raise ValueError(f"unknown media kind: {name!r}")


DEFAULT_MESSAGES: dict[MediaKind, str] = {
    MediaKind.IMAGE: "View this image by visiting the original post.",
    MediaKind.AUDIO: "View this audio by visiting the original post.",
    MediaKind.VIDEO: "View this video by visiting the original post.",
}
FALLBACK_MESSAGE = "View this media by visiting the original post."


@dataclass(frozen=True)
class Messages:
    """Placeholder link texts, one per media kind."""
    by_kind: dict[MediaKind, str] = field(default_factory=lambda: dict(DEFAULT_MESSAGES))
    fallback: str = FALLBACK_MESSAGE

    def for_kind(self, kind: MediaKind) -> str:
        return self.by_kind.get(kind) or self.fallback

    def localized(self, translate: Callable[[str], str]) -> "Messages":
        """Return a copy with every text passed through ``translate``."""
        return replace(
            self,
            by_kind={kind: translate(text) for kind, text in self.by_kind.items()},
            fallback=translate(self.fallback),
        )


@dataclass(frozen=True, slots=True)
class RedactionResult:
    """Result of one redaction pass."""
    html: str
    redacted: int = 0      # elements replaced with a placeholder
    skipped: int = 0       # elements detached earlier in the pass


@dataclass(frozen=True, slots=True)
class Site:
    """A network site that embedded media can be served from."""
    domain: str
    path: str = "/"
    public: int = 1        # < 0 means not publicly listed
    site_id: int | None = None

    @property
    def is_public(self) -> bool:
        return self.public >= 0


@dataclass(frozen=True, slots=True)
class Activity:
    """The activity record a notification is sent for."""
    type: str
    primary_link: str = ""
    item_id: int | None = None
    user_id: int | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Activity":
        """Build from a JSON object; raises ValueError on malformed input."""
        if not isinstance(data, dict):
            raise ValueError("activity must be an object")
        for key in ("type", "primary_link"):
            if not isinstance(data.get(key) or "", str):
                raise ValueError(f"activity.{key} must be a string")
        return cls(
            type=data.get("type") or "",
            primary_link=data.get("primary_link") or "",
            item_id=data.get("item_id"),
            user_id=data.get("user_id"),
        )
