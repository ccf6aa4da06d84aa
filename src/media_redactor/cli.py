"""CLI interface for media-redactor.

Usage:
    # Replace every <audio> with a link to the post (stdin HTML, stdout HTML)
    media-redactor redact --kind audio --link https://site/post/1 < body.html

    # Replace only images hosted on private sites listed in the config
    media-redactor --config sites.yaml redact --kind image --private-only \
        --link https://site/post/1 < body.html

    # Run the full notification filter (stdin: JSON, stdout: HTML)
    echo '{"content": "...", "activity": {"type": "new_blog_post",
           "primary_link": "https://site/post/1"}}' | \
        media-redactor --config sites.yaml filter

    # Is a media URL on a private site?
    media-redactor --config sites.yaml check https://private.example.org/a.jpg

The config path can also come from $MEDIA_REDACTOR_CONFIG.
"""

from __future__ import annotations
import argparse
import json
import logging
import sys

import yaml

from .config import ConfigError, create_filter, create_predicate, load_default, load_from_yaml
from .redactor import Redactor
from .types import Activity, MediaKind

logger = logging.getLogger(__name__)


class InputError(ValueError):
    """Raised for stdin payloads that can't be used."""


def _load(args: argparse.Namespace) -> dict:
    return load_from_yaml(args.config) if args.config else load_default()


def cmd_redact(args: argparse.Namespace) -> None:
    """Redact one media kind from HTML on stdin."""
    cfg = _load(args)
    kind = MediaKind.parse(args.kind)
    should_redact = create_predicate(cfg).for_element if args.private_only else None

    html = sys.stdin.read()
    result = Redactor(cfg["messages"]).redact_with_stats(html, kind, args.link, should_redact)

    sys.stdout.write(result.html)
    logger.info("redacted %d <%s> element(s)", result.redacted, kind.tag)


def cmd_filter(args: argparse.Namespace) -> None:
    """Run the notification filter over a JSON payload on stdin."""
    flt = create_filter(_load(args))
    payload = json.loads(sys.stdin.read())
    if not isinstance(payload, dict):
        raise InputError("payload must be a JSON object")
    content = payload.get("content") or ""
    if not isinstance(content, str):
        raise InputError("content must be a string")
    try:
        activity = Activity.from_dict(payload.get("activity") or {})
    except ValueError as e:
        raise InputError(str(e)) from None

    content = flt.filter(
        content,
        activity,
        payload.get("action"),
        payload.get("group"),
    )
    sys.stdout.write(content or "")


def cmd_check(args: argparse.Namespace) -> None:
    """Report whether a URL points at a private site."""
    predicate = create_predicate(_load(args))
    json.dump({"url": args.url, "restricted": predicate(args.url)}, sys.stdout)
    sys.stdout.write("\n")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="media_redactor",
        description="Replace private embedded media in notification emails",
    )
    parser.add_argument("--config", default=None, help="YAML config path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p_redact = sub.add_parser("redact", help="Redact one media kind (HTML stdin)")
    p_redact.add_argument("--kind", required=True, choices=[k.name.lower() for k in MediaKind])
    p_redact.add_argument("--link", default="#", help="Placeholder link target")
    p_redact.add_argument("--private-only", action="store_true",
                          help="Only redact media hosted on non-public sites")

    sub.add_parser("filter", help="Filter a notification (JSON stdin)")

    p_check = sub.add_parser("check", help="Check a URL against the site list")
    p_check.add_argument("url")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    cmds = {
        "redact": cmd_redact,
        "filter": cmd_filter,
        "check": cmd_check,
    }
    try:
        cmds[args.command](args)
    except (ConfigError, InputError, OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        sys.stderr.write(f"media_redactor: {e}\n")
        sys.exit(2)


if __name__ == "__main__":
    main()
