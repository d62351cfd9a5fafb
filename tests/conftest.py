"""Shared pytest fixtures for the ShipKit CLI test suite.

Provides reusable fixtures for:
- A scripted prompter standing in for the terminal
- A fake ShipKit API built on ``httpx.MockTransport``
- In-memory zip archives
- Settings pointing at a temporary output directory
"""

from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path
from typing import Any

import httpx
import pytest
from rich.console import Console

from shipkit_cli.config import Settings
from shipkit_cli.credentials import MemoryCredentialStore


BASE_URL = "https://api.shipkit.test"


# ---------------------------------------------------------------------------
# Prompter
# ---------------------------------------------------------------------------


class FakePrompter:
    """Answers prompts from dicts keyed by prompt message.

    Unanswered selects take the default (or the first enabled option),
    unanswered confirms take their default. Every call is recorded.
    """

    def __init__(self, selects=None, texts=None, secrets=None, confirms=None):
        self.selects = dict(selects or {})
        self.texts = dict(texts or {})
        self.secrets = list(secrets or [])
        self.confirms = dict(confirms or {})
        self.calls: list[dict[str, Any]] = []

    def select(self, message, options, default=None, disabled=frozenset()):
        self.calls.append({
            "kind": "select",
            "message": message,
            "options": dict(options),
            "disabled": set(disabled),
        })
        if message in self.selects:
            return self.selects[message]
        if default in options and default not in disabled:
            return default
        return next(key for key in options if key not in disabled)

    def text(self, message, default=None):
        self.calls.append({"kind": "text", "message": message})
        return self.texts.get(message, default)

    def secret(self, message):
        self.calls.append({"kind": "secret", "message": message})
        if not self.secrets:
            raise AssertionError(f"Unexpected secret prompt: {message}")
        return self.secrets.pop(0)

    def confirm(self, message, default=False):
        self.calls.append({"kind": "confirm", "message": message})
        return self.confirms.get(message, default)

    def messages(self, kind: str) -> list[str]:
        return [c["message"] for c in self.calls if c["kind"] == kind]

    def select_call(self, message: str) -> dict[str, Any] | None:
        for call in self.calls:
            if call["kind"] == "select" and call["message"] == message:
                return call
        return None


@pytest.fixture
def prompter() -> FakePrompter:
    return FakePrompter()


# ---------------------------------------------------------------------------
# Archives
# ---------------------------------------------------------------------------


def make_zip(files: dict[str, str | bytes]) -> bytes:
    """Build a zip archive in memory from ``{name: content}``."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def kit_archive() -> bytes:
    return make_zip({
        "package.json": json.dumps({"name": "demo", "private": True}),
        "src/pages/index.astro": "<h1>Hello</h1>\n",
        "README.md": "# demo\n",
    })


# ---------------------------------------------------------------------------
# Fake ShipKit API
# ---------------------------------------------------------------------------


class FakeShipkitApi:
    """Records requests and answers the token check and build endpoints."""

    def __init__(self, valid_tokens=(), archive: bytes = b"", build_status: int = 200):
        self.valid_tokens = set(valid_tokens)
        self.archive = archive
        self.build_status = build_status
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/token/check"):
            token = json.loads(request.content).get("token")
            return httpx.Response(200, json={"valid": token in self.valid_tokens})
        if path.endswith("/download"):
            if request.headers.get("shipkit-token") not in self.valid_tokens:
                return httpx.Response(401, json={"error": "unauthorized"})
            if self.build_status != 200:
                return httpx.Response(self.build_status, text="build failed")
            return httpx.Response(200, content=self.archive, headers={"content-type": "application/zip"})
        return httpx.Response(404)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def build_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/download")]


@pytest.fixture
def api(kit_archive: bytes) -> FakeShipkitApi:
    return FakeShipkitApi(valid_tokens={"T1"}, archive=kit_archive)


# ---------------------------------------------------------------------------
# Settings, credentials & console
# ---------------------------------------------------------------------------


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "projects"
    out.mkdir()
    return out


@pytest.fixture
def settings(output_dir: Path) -> Settings:
    return Settings(
        base_url=BASE_URL,
        output_dir=output_dir,
        credential_service="shipkit-test",
        download_timeout=30,
    )


@pytest.fixture
def credentials() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest.fixture
def quiet_console() -> Console:
    return Console(file=io.StringIO(), width=120)
