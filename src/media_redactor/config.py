"""YAML/dict config loader for media-redactor.

Supports loading from a YAML file or a plain dict (for embedding
in a larger notification-pipeline config).

Example YAML:

    email_media:
      enabled: true
      redact_audio: true
      redact_video: true
      messages:
        image: "This image is only visible on the site."
        media: "View this media by visiting the original post."
      sites:
        - domain: private.example.org
          path: /
          public: -1
          site_id: 7
        - domain: www.example.org
          path: /open-course/
          public: 1
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Callable

import yaml

from .notification import NotificationFilter
from .privacy import PrivacyPredicate, StaticSiteResolver
from .types import Activity, DEFAULT_MESSAGES, FALLBACK_MESSAGE, MediaKind, Messages, Site

CONFIG_ENV = "MEDIA_REDACTOR_CONFIG"


class ConfigError(ValueError):
    """Raised for config values that can't be used."""


class _NoopFilter:
    """Pass-through filter when redaction is disabled."""
    def filter(self, content: str, activity: Activity, action: str | None = None, group: Any = None) -> str:
        return content


def _load_messages(data: dict[str, str] | None) -> Messages:
    data = dict(data or {})
    fallback = data.pop("media", FALLBACK_MESSAGE)
    by_kind = dict(DEFAULT_MESSAGES)
    for key, text in data.items():
        try:
            by_kind[MediaKind.parse(key)] = text
        except ValueError as e:
            raise ConfigError(f"messages: {e}") from None
    return Messages(by_kind=by_kind, fallback=fallback)


def _load_site(entry: dict[str, Any]) -> Site:
    if not entry.get("domain"):
        raise ConfigError(f"site entry without a domain: {entry!r}")
    try:
        public = int(entry.get("public", 1))
    except (TypeError, ValueError):
        raise ConfigError(f"site {entry['domain']!r}: public must be an integer") from None
    return Site(
        domain=entry["domain"],
        path=entry.get("path", "/"),
        public=public,
        site_id=entry.get("site_id"),
    )


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    data = data or {}
    # Support nested under "email_media" key or flat
    if "email_media" in data:
        data = data["email_media"] or {}

    return {
        "enabled": data.get("enabled", True),
        "redact_audio": data.get("redact_audio", True),
        "redact_video": data.get("redact_video", True),
        "messages": _load_messages(data.get("messages")),
        "sites": [_load_site(s) for s in data.get("sites") or []],
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    with open(path) as f:
        return load_config(yaml.safe_load(f))


def load_default() -> dict[str, Any]:
    """Load the file named by $MEDIA_REDACTOR_CONFIG, or an empty config."""
    path = os.environ.get(CONFIG_ENV)
    return load_from_yaml(path) if path else load_config({})


def _normalized(config: dict[str, Any]) -> dict[str, Any]:
    return config if isinstance(config.get("messages"), Messages) else load_config(config)


def create_predicate(config: dict[str, Any]) -> PrivacyPredicate:
    """Build a privacy predicate over the configured sites."""
    cfg = _normalized(config)
    return PrivacyPredicate(StaticSiteResolver(cfg["sites"]))


def create_filter(
    config: dict[str, Any],
    translate: Callable[[str], str] | None = None,
) -> NotificationFilter:
    """Create a fully configured notification filter from a config dict."""
    cfg = _normalized(config)

    if not cfg["enabled"]:
        # Return a pass-through filter (no redaction)
        return _NoopFilter()

    messages = cfg["messages"]
    if translate is not None:
        messages = messages.localized(translate)

    return NotificationFilter(
        is_restricted=create_predicate(cfg),
        messages=messages,
        redact_audio=cfg["redact_audio"],
        redact_video=cfg["redact_video"],
    )
