"""HTTP sidecar server for media-redactor.

Runs as a lightweight stdlib HTTP server on localhost, so a mail pipeline
written in another language can call it instead of spawning a process
per notification.

Endpoints:
    POST /redact     — Redact one media kind   {"html", "kind", "link", "private_only"}
    POST /filter     — Notification filter     {"content", "activity", "action", "group"}
    POST /check      — Privacy check           {"url"}
    GET  /health     — Health check

All endpoints expect/return JSON.
"""

from __future__ import annotations
import json
import logging
import os
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any

from .config import create_filter, create_predicate, load_default, load_from_yaml
from .notification import NotificationFilter
from .privacy import PrivacyPredicate
from .redactor import Redactor
from .types import Activity, MediaKind

logger = logging.getLogger(__name__)

DEFAULT_PORT = int(os.environ.get("MEDIA_REDACTOR_PORT", "18792"))

# Shared state, read-only once serve() has started
_config: dict[str, Any] | None = None
_predicate: PrivacyPredicate | None = None
_filter: NotificationFilter | None = None


def configure(config: dict[str, Any]) -> None:
    """Install a config and build the site lookup once for all requests."""
    global _config, _predicate, _filter
    _config = config
    _predicate = create_predicate(config)
    _filter = create_filter(config)


def _get_config() -> dict[str, Any]:
    if _config is None:
        configure(load_default())
    return _config


class BadRequest(ValueError):
    pass


def _text(body: dict[str, Any], key: str, default: str = "") -> str:
    value = body.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise BadRequest(f"{key} must be a string")
    return value


def handle_redact(body: dict[str, Any]) -> dict[str, Any]:
    cfg = _get_config()
    kind_name = _text(body, "kind")
    try:
        kind = MediaKind.parse(kind_name)
    except ValueError as e:
        raise BadRequest(str(e)) from None
    should_redact = _predicate.for_element if body.get("private_only") else None
    result = Redactor(cfg["messages"]).redact_with_stats(
        _text(body, "html"), kind, _text(body, "link") or "#", should_redact,
    )
    return {"html": result.html, "redacted": result.redacted, "skipped": result.skipped}


def handle_filter(body: dict[str, Any]) -> dict[str, Any]:
    _get_config()
    try:
        activity = Activity.from_dict(body.get("activity"))
    except ValueError as e:
        raise BadRequest(str(e)) from None
    content = _filter.filter(
        _text(body, "content"),
        activity,
        body.get("action"),
        body.get("group"),
    )
    return {"content": content}


def handle_check(body: dict[str, Any]) -> dict[str, Any]:
    _get_config()
    url = _text(body, "url")
    return {"url": url, "restricted": _predicate(url)}


ROUTES = {
    "/redact": handle_redact,
    "/filter": handle_filter,
    "/check": handle_check,
}


class MediaHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the media redactor sidecar."""

    def _read_json(self) -> dict[str, Any]:
        try:
            length = int(self.headers.get("Content-Length", 0))
            if length < 0:
                raise ValueError(length)
        except ValueError:
            raise BadRequest("invalid Content-Length") from None
        try:
            body = self.rfile.read(length).decode("utf-8")
            data = json.loads(body) if body else {}
        except UnicodeDecodeError:
            raise BadRequest("body is not valid UTF-8") from None
        except json.JSONDecodeError as e:
            raise BadRequest(f"invalid JSON: {e}") from None
        if not isinstance(data, dict):
            raise BadRequest("body must be a JSON object")
        return data

    def _respond(self, status: int, data: Any) -> None:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - " + format, self.address_string(), *args)

    def do_GET(self) -> None:
        if self.path == "/health":
            cfg = _get_config()
            self._respond(200, {"status": "ok", "sites": len(cfg["sites"])})
        else:
            self._respond(404, {"error": "not found"})

    def do_POST(self) -> None:
        try:
            body = self._read_json()
            route = ROUTES.get(self.path)
            if route is None:
                self._respond(404, {"error": "not found"})
                return
            self._respond(200, route(body))
        except BadRequest as e:
            self._respond(400, {"error": str(e)})
        except Exception as e:
            logger.exception("error handling %s", self.path)
            self._respond(500, {"error": str(e)})


def serve(port: int = DEFAULT_PORT, config_path: str | None = None) -> None:
    """Start the media redactor HTTP sidecar."""
    configure(load_from_yaml(config_path) if config_path else load_default())

    server = HTTPServer(("127.0.0.1", port), MediaHandler)
    logger.info("media-redactor sidecar listening on http://127.0.0.1:%d", port)
    logger.info("  known sites: %d", len(_config["sites"]))
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("shutting down")
        server.shutdown()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="Media redactor HTTP sidecar")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--config", default=None)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    serve(port=args.port, config_path=args.config)
