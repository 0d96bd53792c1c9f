"""Background ssh port forward for clients whose server sits behind a gateway.

When a client's configuration has an ``ssh_tunnel`` section, constructing
the client makes sure a forward is running::

    ssh -n -N -L<local port>:<server_host>:<server_port> <remote_host>

The local port is the port of the client's ``url``. The ssh process is
started detached and its pid recorded in
``$TMPDIR/<app>_routeclient_ssh.pid``, so later clients of the same
application reuse it instead of starting another one. The tunnel is never
stopped by routeclient.
"""

from __future__ import annotations

import os
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Optional

import httpx

from routeclient.exceptions import TunnelError
from routeclient.models import SSHTunnelConfig
from routeclient.output import debug, info


class SSHTunnel:
    """Start or find the ssh forward for one application.

    Args:
        app_name: Application the tunnel belongs to; names the pidfile.
        server_url: The client's base URL; its port is the local end.
        descriptor: Remote host and forwarded target from the config.
        startup_delay: Seconds to wait after launching ssh so the forward
            is listening before the first request.
    """

    def __init__(
        self,
        app_name: str,
        server_url: str,
        descriptor: Optional[SSHTunnelConfig] = None,
        startup_delay: float = 1.0,
    ) -> None:
        self.app_name = app_name
        self.server_url = server_url
        self.descriptor = descriptor
        self.startup_delay = startup_delay

    @property
    def pidfile(self) -> Path:
        tmpdir = os.environ.get("TMPDIR") or tempfile.gettempdir()
        return Path(tmpdir) / f"{self.app_name}_routeclient_ssh.pid"

    def running_pid(self) -> Optional[int]:
        """Return the pid from the pidfile if that process is alive."""
        try:
            pid = int(self.pidfile.read_text(encoding="utf-8").split()[0])
        except (OSError, ValueError, IndexError):
            return None
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return None
        except PermissionError:
            # Alive, owned by someone else.
            pass
        debug(f"found running ssh ({pid})")
        return pid

    def is_up(self) -> bool:
        return self.running_pid() is not None

    def command(self) -> list[str]:
        """The ssh command line for this tunnel.

        Raises:
            TunnelError: If no tunnel is configured or the client URL has no
                port to forward from.
        """
        if self.descriptor is None:
            raise TunnelError(f"No ssh_tunnel configured for '{self.app_name}'")
        try:
            port = httpx.URL(self.server_url).port
        except httpx.InvalidURL as exc:
            raise TunnelError(f"Invalid client URL {self.server_url!r}: {exc}") from exc
        if port is None:
            raise TunnelError(
                f"Client URL {self.server_url!r} needs an explicit port for an ssh tunnel"
            )
        d = self.descriptor
        return [
            "ssh", "-n", "-N",
            f"-L{port}:{d.server_host}:{d.server_port}",
            d.remote_host,
        ]

    def ensure_up(self) -> int:
        """Return the pid of the running tunnel, launching it if needed.

        Raises:
            TunnelError: If ssh cannot be started.
        """
        pid = self.running_pid()
        if pid is not None:
            return pid

        cmd = self.command()
        info(f"Executing {' '.join(cmd)}")
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                cwd=tempfile.gettempdir(),
                start_new_session=True,
            )
        except OSError as exc:
            raise TunnelError(f"Could not start {' '.join(cmd)}: {exc}") from exc

        try:
            self.pidfile.write_text(f"{proc.pid}\n", encoding="utf-8")
        except OSError as exc:
            raise TunnelError(f"Cannot write pidfile {self.pidfile}: {exc}") from exc

        if self.startup_delay:
            time.sleep(self.startup_delay)
        debug(f"new ssh pid is {proc.pid}")
        return proc.pid
