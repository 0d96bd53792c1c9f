"""Tests for the background ssh tunnel."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from routeclient.exceptions import TunnelError
from routeclient.models import SSHTunnelConfig
from routeclient.tunnel import SSHTunnel


DESCRIPTOR = SSHTunnelConfig(remote_host="gateway", server_port=9014)


@pytest.fixture
def tmpdir_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("TMPDIR", str(tmp_path))
    return tmp_path


class FakePopen:
    launched: list[list[str]] = []

    def __init__(self, cmd, **kwargs) -> None:
        FakePopen.launched.append(cmd)
        self.kwargs = kwargs
        self.pid = os.getpid()


@pytest.fixture
def fake_popen(monkeypatch: pytest.MonkeyPatch) -> type[FakePopen]:
    FakePopen.launched = []
    monkeypatch.setattr("routeclient.tunnel.subprocess.Popen", FakePopen)
    return FakePopen


class TestCommand:
    def test_forward_from_client_port(self) -> None:
        tunnel = SSHTunnel("foo", "http://localhost:12345", DESCRIPTOR)
        assert tunnel.command() == ["ssh", "-n", "-N", "-L12345:localhost:9014", "gateway"]

    def test_custom_server_host(self) -> None:
        descriptor = SSHTunnelConfig(remote_host="gw", server_host="db.internal", server_port=80)
        tunnel = SSHTunnel("foo", "http://localhost:8080", descriptor)
        assert tunnel.command()[3] == "-L8080:db.internal:80"

    def test_requires_descriptor(self) -> None:
        with pytest.raises(TunnelError, match="No ssh_tunnel"):
            SSHTunnel("foo", "http://localhost:12345").command()

    def test_requires_port(self) -> None:
        with pytest.raises(TunnelError, match="explicit port"):
            SSHTunnel("foo", "http://localhost", DESCRIPTOR).command()


class TestPidfile:
    def test_location(self, tmpdir_env: Path) -> None:
        assert SSHTunnel("foo", "").pidfile == tmpdir_env / "foo_routeclient_ssh.pid"

    def test_no_pidfile(self, tmpdir_env: Path) -> None:
        tunnel = SSHTunnel("foo", "")
        assert tunnel.running_pid() is None
        assert not tunnel.is_up()

    def test_live_process(self, tmpdir_env: Path) -> None:
        (tmpdir_env / "foo_routeclient_ssh.pid").write_text(f"{os.getpid()}\n")
        tunnel = SSHTunnel("foo", "")
        assert tunnel.running_pid() == os.getpid()
        assert tunnel.is_up()

    def test_garbage_pidfile(self, tmpdir_env: Path) -> None:
        (tmpdir_env / "foo_routeclient_ssh.pid").write_text("not a pid\n")
        assert SSHTunnel("foo", "").running_pid() is None

    def test_dead_process(self, tmpdir_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmpdir_env / "foo_routeclient_ssh.pid").write_text("4242\n")

        def _gone(pid, signal):
            raise ProcessLookupError

        monkeypatch.setattr("routeclient.tunnel.os.kill", _gone)
        assert SSHTunnel("foo", "").running_pid() is None


class TestEnsureUp:
    def test_launches_and_records_pid(self, tmpdir_env: Path, fake_popen, quiet_output) -> None:
        tunnel = SSHTunnel("foo", "http://localhost:12345", DESCRIPTOR, startup_delay=0)
        pid = tunnel.ensure_up()
        assert pid == os.getpid()
        assert fake_popen.launched == [["ssh", "-n", "-N", "-L12345:localhost:9014", "gateway"]]
        assert tunnel.pidfile.read_text().strip() == str(os.getpid())

    def test_reuses_running_tunnel(self, tmpdir_env: Path, fake_popen, quiet_output) -> None:
        (tmpdir_env / "foo_routeclient_ssh.pid").write_text(f"{os.getpid()}\n")
        tunnel = SSHTunnel("foo", "http://localhost:12345", DESCRIPTOR, startup_delay=0)
        assert tunnel.ensure_up() == os.getpid()
        assert fake_popen.launched == []

    def test_launch_failure(self, tmpdir_env: Path, monkeypatch: pytest.MonkeyPatch, quiet_output) -> None:
        def _missing(cmd, **kwargs):
            raise FileNotFoundError("ssh")

        monkeypatch.setattr("routeclient.tunnel.subprocess.Popen", _missing)
        tunnel = SSHTunnel("foo", "http://localhost:12345", DESCRIPTOR, startup_delay=0)
        with pytest.raises(TunnelError, match="Could not start"):
            tunnel.ensure_up()
