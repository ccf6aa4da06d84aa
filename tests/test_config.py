"""Tests for config loading, the CLI and the HTTP sidecar."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import io
import json
import threading
import urllib.error
import urllib.request
from http.server import HTTPServer

import pytest

from media_redactor import Activity, ConfigError, MediaKind, NotificationFilter, create_filter, load_config, load_from_yaml
from media_redactor import cli, server
from media_redactor.config import _NoopFilter, create_predicate

POST = "https://site/post/1"

YAML = """\
email_media:
  enabled: true
  redact_video: false
  messages:
    image: "Private image."
  sites:
    - domain: private.example
      path: /
      public: -1
      site_id: 7
    - domain: www.example.org
      public: 1
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "media.yaml"
    path.write_text(YAML)
    return path


@pytest.fixture(autouse=True)
def no_env_config(monkeypatch):
    monkeypatch.delenv("MEDIA_REDACTOR_CONFIG", raising=False)


# ── Config ───────────────────────────────────────────────────────────

def test_load_config_defaults():
    cfg = load_config({})
    assert cfg["enabled"] is True
    assert cfg["redact_audio"] and cfg["redact_video"]
    assert cfg["sites"] == []
    assert cfg["messages"].for_kind(MediaKind.AUDIO) == "View this audio by visiting the original post."


def test_load_from_yaml(config_file):
    cfg = load_from_yaml(config_file)
    assert cfg["redact_video"] is False
    assert cfg["messages"].for_kind(MediaKind.IMAGE) == "Private image."
    assert [(s.domain, s.public, s.site_id) for s in cfg["sites"]] == [
        ("private.example", -1, 7),
        ("www.example.org", 1, None),
    ]


def test_flat_config_and_fallback_message():
    cfg = load_config({"messages": {"media": "See post.", "video": "Watch on site."}})
    assert cfg["messages"].fallback == "See post."
    assert cfg["messages"].for_kind(MediaKind.VIDEO) == "Watch on site."


def test_bad_config():
    with pytest.raises(ConfigError):
        load_config({"messages": {"iframe": "nope"}})
    with pytest.raises(ConfigError):
        load_config({"sites": [{"path": "/"}]})
    with pytest.raises(ConfigError):
        load_config({"sites": [{"domain": "a.example", "public": "private"}]})


def test_create_filter(config_file):
    flt = create_filter(load_from_yaml(config_file))
    assert isinstance(flt, NotificationFilter)
    out = flt.filter(
        '<img src="https://private.example/a.jpg"><video src="v"></video>',
        Activity("new_blog_post", POST),
    )
    assert out == f'<a href="{POST}">Private image.</a><video src="v"></video>'


def test_create_filter_disabled():
    flt = create_filter({"enabled": False})
    assert isinstance(flt, _NoopFilter)
    html = '<img src="x">'
    assert flt.filter(html, Activity("new_blog_post", POST)) is html


def test_create_filter_translates():
    flt = create_filter({}, translate=lambda s: "[fr] " + s)
    out = flt.filter('<audio src="a"></audio>', Activity("new_blog_post", POST))
    assert "[fr] View this audio" in out


def test_create_predicate(config_file):
    predicate = create_predicate(load_from_yaml(config_file))
    assert predicate("https://private.example/a.jpg")
    assert not predicate("https://www.example.org/a.jpg")


# ── CLI ──────────────────────────────────────────────────────────────

def run_cli(monkeypatch, argv, stdin=""):
    monkeypatch.setattr("sys.stdin", io.StringIO(stdin))
    cli.main(argv)


def test_cli_redact_all(monkeypatch, capsys):
    run_cli(monkeypatch, ["redact", "--kind", "audio", "--link", POST], '<p><audio src="a"></audio></p>')
    out = capsys.readouterr().out
    assert out == f'<p><a href="{POST}">View this audio by visiting the original post.</a></p>'


def test_cli_redact_private_only(monkeypatch, capsys, config_file):
    html = '<img src="https://private.example/a.jpg"><img src="https://www.example.org/b.jpg">'
    run_cli(monkeypatch, ["--config", str(config_file), "redact", "--kind", "image", "--private-only"], html)
    out = capsys.readouterr().out
    assert out == '<a href="#">Private image.</a><img src="https://www.example.org/b.jpg"/>'


def test_cli_filter(monkeypatch, capsys, config_file):
    payload = {
        "content": '<img src="https://private.example/a.jpg">',
        "activity": {"type": "new_blog_post", "primary_link": POST},
    }
    run_cli(monkeypatch, ["--config", str(config_file), "filter"], json.dumps(payload))
    assert capsys.readouterr().out == f'<a href="{POST}">Private image.</a>'


def test_cli_check_uses_env_config(monkeypatch, capsys, config_file):
    monkeypatch.setenv("MEDIA_REDACTOR_CONFIG", str(config_file))
    run_cli(monkeypatch, ["check", "https://private.example/a.jpg"])
    assert json.loads(capsys.readouterr().out) == {
        "url": "https://private.example/a.jpg",
        "restricted": True,
    }


def test_cli_bad_config(monkeypatch, capsys, tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("sites:\n  - path: /\n")
    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch, ["--config", str(bad), "check", "https://a.example/"])
    assert exc.value.code == 2
    assert "without a domain" in capsys.readouterr().err


@pytest.mark.parametrize("stdin, message", [
    ("[1, 2]", "payload must be a JSON object"),
    ('{"content": "<img>", "activity": [1]}', "activity must be an object"),
    ('{"content": "<img>", "activity": {"type": "new_blog_post", "primary_link": 5}}',
     "activity.primary_link must be a string"),
    ('{"content": 5, "activity": {"type": "new_blog_post"}}', "content must be a string"),
    ("not json", "Expecting value"),
])
def test_cli_filter_bad_payload(monkeypatch, capsys, stdin, message):
    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch, ["filter"], stdin)
    assert exc.value.code == 2
    assert message in capsys.readouterr().err


# ── HTTP sidecar ─────────────────────────────────────────────────────

@pytest.fixture
def sidecar(monkeypatch, config_file):
    for name in ("_config", "_predicate", "_filter"):
        monkeypatch.setattr(server, name, None)
    server.configure(load_from_yaml(config_file))
    httpd = HTTPServer(("127.0.0.1", 0), server.MediaHandler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_address[1]}"
    httpd.shutdown()
    httpd.server_close()


def call(base, path, body=None, *, raw=None, headers=None):
    data = raw if raw is not None else None if body is None else json.dumps(body).encode("utf-8")
    req = urllib.request.Request(
        base + path, data=data,
        headers={"Content-Type": "application/json", **(headers or {})},
    )
    try:
        with urllib.request.urlopen(req) as resp:
            return resp.status, json.loads(resp.read())
    except urllib.error.HTTPError as e:
        return e.code, json.loads(e.read())


def test_server_health(sidecar):
    assert call(sidecar, "/health") == (200, {"status": "ok", "sites": 2})


def test_server_redact(sidecar):
    status, data = call(sidecar, "/redact", {
        "html": '<img src="https://private.example/a.jpg"><img src="b.jpg">',
        "kind": "image",
        "link": POST,
        "private_only": True,
    })
    assert status == 200
    assert data == {
        "html": f'<a href="{POST}">Private image.</a><img src="b.jpg"/>',
        "redacted": 1,
        "skipped": 0,
    }


def test_server_filter_and_check(sidecar):
    status, data = call(sidecar, "/filter", {
        "content": '<audio src="a"></audio>',
        "activity": {"type": "new_blog_post", "primary_link": POST},
    })
    assert status == 200
    assert data["content"] == f'<a href="{POST}">View this audio by visiting the original post.</a>'

    assert call(sidecar, "/check", {"url": "https://private.example/a.jpg"}) == (
        200, {"url": "https://private.example/a.jpg", "restricted": True},
    )


def test_server_bad_requests(sidecar):
    assert call(sidecar, "/redact", {"html": "<img>", "kind": "iframe"})[0] == 400
    assert call(sidecar, "/filter", {"content": "<img>"})[0] == 400
    assert call(sidecar, "/nope", {})[0] == 404


@pytest.mark.parametrize("path, body", [
    ("/redact", {"html": "<img>", "kind": 5}),
    ("/redact", {"html": 5, "kind": "image"}),
    ("/redact", {"html": "<img>", "kind": "image", "link": ["x"]}),
    ("/check", {"url": 5}),
    ("/filter", {"content": "<img>", "activity": {"type": "new_blog_post", "primary_link": 5}}),
    ("/filter", {"content": ["<img>"], "activity": {"type": "new_blog_post"}}),
    ("/filter", {"content": "<img>", "activity": "new_blog_post"}),
])
def test_server_rejects_wrong_types(sidecar, path, body):
    status, data = call(sidecar, path, body)
    assert status == 400
    assert "must be" in data["error"] or "unknown media kind" in data["error"]


def test_server_rejects_bad_bodies(sidecar):
    assert call(sidecar, "/check", raw=b'\xff\xfe{"url": 1}') == (400, {"error": "body is not valid UTF-8"})
    assert call(sidecar, "/check", raw=b"[1]")[0] == 400
    assert call(sidecar, "/check", raw=b"{not json")[0] == 400
    assert call(sidecar, "/check", raw=b"", headers={"Content-Length": "abc"}) == (
        400, {"error": "invalid Content-Length"},
    )


def test_server_builds_predicate_once(sidecar, monkeypatch):
    predicate = server._predicate
    built = []
    monkeypatch.setattr(server, "create_predicate", built.append)
    monkeypatch.setattr(server, "create_filter", built.append)

    assert call(sidecar, "/check", {"url": "https://private.example/a.jpg"})[0] == 200
    assert call(sidecar, "/redact", {"html": "<img src='x'>", "kind": "image", "private_only": True})[0] == 200
    assert call(sidecar, "/filter", {"content": "", "activity": {"type": "new_blog_post"}})[0] == 200
    assert built == []
    assert server._predicate is predicate


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
