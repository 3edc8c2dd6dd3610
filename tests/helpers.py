"""Builders for fake archive responses and GH Archive event lines."""

from __future__ import annotations

import gzip
import json
import threading

import requests


class FakeResponse:
    """Minimal stand-in for a streamed requests.Response."""

    def __init__(self, url: str, status_code: int, body: bytes,
                 headers: dict[str, str] | None = None) -> None:
        self.url = url
        self.status_code = status_code
        self._body = body
        self.headers = {"Content-Length": str(len(body))} if headers is None else headers

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error for url: {self.url}", response=self)

    def iter_content(self, chunk_size: int = 1):
        for start in range(0, len(self._body), chunk_size):
            yield self._body[start:start + chunk_size]

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc) -> None:
        return None


class FakeSession:
    """Serves canned bodies by URL and records every GET."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes, dict[str, str] | None]] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def serve(self, url: str, body: bytes, status_code: int = 200,
              headers: dict[str, str] | None = None) -> None:
        self.routes[url] = (status_code, body, headers)

    def fail(self, url: str, error: Exception) -> None:
        self.errors[url] = error

    def get(self, url: str, stream: bool = False, timeout: float | None = None) -> FakeResponse:
        with self._lock:
            self.calls.append(url)
        if url in self.errors:
            raise self.errors[url]
        status_code, body, headers = self.routes.get(url, (404, b"Not Found", None))
        return FakeResponse(url, status_code, body, headers)


def archive_url(token: str) -> str:
    return f"https://data.gharchive.org/{token}.json.gz"


def commit(sha: str, message: str = "Update docs", repo: str = "acme/widget") -> dict:
    return {
        "sha": sha,
        "author": {"email": "Dev@Users.Noreply.GitHub.com", "name": "Dev"},
        "message": message,
        "distinct": True,
        "url": f"https://api.github.com/repos/{repo}/commits/{sha}",
    }


def push_event(event_id: str = "1001", commits: list[dict] | None = None, **overrides) -> dict:
    """Build a GH Archive push event with sensible defaults."""
    if commits is None:
        commits = [commit("abc123", "Fix link to https://example.org/docs")]
    event = {
        "id": event_id,
        "type": "PushEvent",
        "actor": {
            "id": 1,
            "login": "octocat",
            "display_login": "octocat",
            "gravatar_id": "",
            "url": "https://api.github.com/users/octocat",
            "avatar_url": "https://avatars.githubusercontent.com/u/1?",
        },
        "repo": {"id": 42, "name": "acme/widget", "url": "https://api.github.com/repos/acme/widget"},
        "payload": {
            "repository_id": 42,
            "push_id": 9001,
            "size": len(commits),
            "distinct_size": len(commits),
            "ref": "refs/heads/main",
            "head": commits[-1]["sha"] if commits else "head0",
            "before": "before0",
            "commits": commits,
        },
        "public": True,
        "created_at": "2024-01-01T05:00:00Z",
    }
    event.update(overrides)
    return event


def watch_event(event_id: str = "2002") -> dict:
    event = push_event(event_id, commits=[])
    event["type"] = "WatchEvent"
    event["payload"] = {"action": "started"}
    return event


def ndjson(*events: dict) -> bytes:
    return "".join(json.dumps(event) + "\n" for event in events).encode("utf-8")


def gzipped(data: bytes) -> bytes:
    return gzip.compress(data)
