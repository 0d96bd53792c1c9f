"""Shared test fixtures for routeclient.

Provides isolated config environments, output state management, a request
recorder built on :class:`httpx.MockTransport`, and a CLI runner. These
fixtures are discovered by pytest and available to all test modules without
explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from routeclient.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME and XDG_DATA_HOME at subdirectories of tmp_path
    and clears the ``ROUTECLIENT_*`` variables so tests never read real
    user settings.

    Returns:
        The config directory (``<tmp_path>/config/routeclient``), not yet
        created.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in (
        "ROUTECLIENT_URL",
        "ROUTECLIENT_USERNAME",
        "ROUTECLIENT_PASSWORD",
        "ROUTECLIENT_KEEP_ALIVE_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
    return tmp_path / "config" / "routeclient"


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet, colourless OutputManager."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def verbose_output() -> OutputManager:
    """Install a PLAIN-format OutputManager that shows debug traces."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# HTTP recording
# ---------------------------------------------------------------------------


class Recorder:
    """Collects every request sent through its transport.

    Responses come from *handler* when given, otherwise from the queue
    filled with :meth:`reply`; an empty queue answers ``200 {}``.
    """

    def __init__(self, handler: Optional[Callable[[httpx.Request], httpx.Response]] = None) -> None:
        self.requests: list[httpx.Request] = []
        self._handler = handler
        self._queue: list[httpx.Response] = []
        self.transport = httpx.MockTransport(self._handle)

    def reply(
        self,
        status_code: int = 200,
        json: Any = None,
        text: Optional[str] = None,
        content: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Recorder:
        if json is not None:
            response = httpx.Response(status_code, json=json, headers=headers)
        elif text is not None:
            response = httpx.Response(status_code, text=text, headers=headers)
        else:
            response = httpx.Response(status_code, content=content or b"", headers=headers)
        self._queue.append(response)
        return self

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._handler is not None:
            return self._handler(request)
        if self._queue:
            return self._queue.pop(0)
        return httpx.Response(200, json={})

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_recorder() -> Callable[..., Recorder]:
    """Factory for recorders answering through a handler function."""
    return Recorder


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
