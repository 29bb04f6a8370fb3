"""Pytest configuration and fixtures for decern-gate tests."""
from __future__ import annotations

import io
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import pytest
from rich.console import Console

from decern_gate.errors import DiffComputationError


def pytest_sessionfinish(session, exitstatus):
    """Check that coverage data was collected if --cov was requested.

    This prevents silent "no data collected" scenarios that produce 0% coverage
    without failing the test run.
    """
    cov_enabled = any("--cov" in str(arg) for arg in session.config.args)

    if not cov_enabled:
        return

    cwd = Path.cwd()
    coverage_files = list(cwd.glob(".coverage*"))

    if not coverage_files:
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "Check that tests import from 'decern_gate' (the package) not 'src/decern_gate'.",
            returncode=1
        )


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@dataclass
class FakeChangeSource:
    """In-memory change source; ``None`` for files/diff simulates a git failure."""

    files: list[str] | None = field(default_factory=list)
    diff: str | None = ""
    message: str = ""
    base: str = "base-sha"
    head: str = "head-sha"

    def changed_files(self) -> list[str]:
        if self.files is None:
            raise DiffComputationError("fatal: bad revision")
        return list(self.files)

    def diff_text(self) -> str:
        if self.diff is None:
            raise DiffComputationError("fatal: bad revision")
        return self.diff

    def commit_message(self) -> str:
        return self.message


@pytest.fixture
def fake_source() -> type[FakeChangeSource]:
    return FakeChangeSource


@dataclass
class RecordedApi:
    """Scripted decision-gate API; records every request it receives."""

    validate: dict[str, tuple[int, object]] = field(default_factory=dict)
    judge: tuple[int, object] = (200, {"allowed": True})
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            ref = request.url.params.get("decisionId") or request.url.params.get("adrRef")
            status, body = self.validate.get(ref, (404, {"valid": False, "reason": "not_found"}))
        else:
            status, body = self.judge
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def validated_refs(self) -> list[str]:
        return [
            request.url.params.get("decisionId") or request.url.params.get("adrRef")
            for request in self.requests
            if request.method == "GET"
        ]

    def judge_bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]


@pytest.fixture
def api() -> RecordedApi:
    return RecordedApi()


@pytest.fixture
def recording_console() -> Callable[[], Console]:
    def factory() -> Console:
        return Console(file=io.StringIO(), record=True, width=200, color_system=None)

    return factory
