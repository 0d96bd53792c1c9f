"""HTTP transport shared by every operation of one client instance.

:class:`HttpTransport` wraps an :class:`httpx.Client` for blocking calls and
a lazily created :class:`httpx.AsyncClient` for callback-mode calls. It
knows nothing about routes, argument classification or authentication
retries; the dispatcher builds requests through it and interprets the
responses.

A custom ``transport`` (for example :class:`httpx.MockTransport`) can be
injected; it is used for both the sync and async client unless a separate
``async_transport`` is given.

Example::

    transport = HttpTransport(RequestConfig(timeout=5))
    request = transport.build_request("GET", "http://localhost:3000/status")
    response = transport.execute(request)
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Union

import httpx

from routeclient.exceptions import TransportError
from routeclient.models import RequestConfig
from routeclient.output import get_output

CompletionHandler = Callable[[Optional[httpx.Response], Optional[TransportError]], Any]


class HttpTransport:
    """Build, send and pool HTTP requests.

    Args:
        config: Timeout, keep-alive expiry and SSL settings.
        transport: Optional low-level httpx transport for the sync client
            (and the async client when *async_transport* is omitted).
        async_transport: Optional low-level transport for the async client.
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or RequestConfig()
        self._transport = transport
        self._async_transport = async_transport
        if self._async_transport is None and isinstance(transport, httpx.AsyncBaseTransport):
            self._async_transport = transport
        self._client: Optional[httpx.Client] = None
        self._async_client: Optional[httpx.AsyncClient] = None
        self._pending: set[asyncio.Task] = set()

    @property
    def config(self) -> RequestConfig:
        return self._config

    def _limits(self) -> httpx.Limits:
        return httpx.Limits(keepalive_expiry=self._config.keep_alive_timeout)

    @property
    def client(self) -> httpx.Client:
        """The pooled sync client, created on first use."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                limits=self._limits(),
                transport=self._transport,
            )
        return self._client

    @property
    def async_client(self) -> httpx.AsyncClient:
        """The pooled async client, created on first use."""
        if self._async_client is None:
            self._async_client = httpx.AsyncClient(
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                limits=self._limits(),
                transport=self._async_transport,
            )
        return self._async_client

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def build_request(
        self,
        method: str,
        url: Union[str, httpx.URL],
        headers: Optional[dict[str, str]] = None,
        body: Optional[Union[str, bytes]] = None,
    ) -> httpx.Request:
        """Build a request without sending it."""
        return self.client.build_request(method, url, headers=headers, content=body)

    def execute(self, request: httpx.Request) -> httpx.Response:
        """Send *request* and block until the full response has been read.

        Any status code is a valid response here; only failures to complete
        the exchange are errors.

        Raises:
            TransportError: On connection failures, timeouts and protocol
                errors.
        """
        try:
            return self.client.send(request)
        except httpx.RequestError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

    def execute_async(
        self, request: httpx.Request, on_complete: CompletionHandler
    ) -> asyncio.Task:
        """Schedule *request* on the running event loop.

        *on_complete* is called exactly once, with ``(response, None)`` when
        the exchange completes (whatever the status) or ``(None, error)``
        when it fails.

        The transport keeps a reference to the task until it finishes, so the
        caller may drop it. An exception escaping *on_complete* is reported
        on stderr when the task ends.

        Returns:
            The :class:`asyncio.Task` driving the request. Awaiting it yields
            the response, or ``None`` on failure.

        Raises:
            RuntimeError: If no event loop is running in this thread.
        """
        loop = asyncio.get_running_loop()
        client = self.async_client

        async def _run() -> Optional[httpx.Response]:
            try:
                response = await client.send(request)
            except httpx.RequestError as exc:
                on_complete(None, TransportError(f"{type(exc).__name__}: {exc}"))
                return None
            on_complete(response, None)
            return response

        task = loop.create_task(_run())
        self._pending.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            get_output().error(f"Async request handler failed: {type(exc).__name__}: {exc}")

    @property
    def pending(self) -> int:
        """Number of callback-mode requests still in flight."""
        return len(self._pending)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Close the sync client. The async client must be closed with :meth:`aclose`."""
        if self._client is not None:
            self._client.close()
            self._client = None
        if self._async_client is not None:
            get_output().debug("async client left open; use aclose() inside the event loop")

    async def aclose(self) -> None:
        """Wait for in-flight callback-mode requests, then close both clients."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None
        if self._client is not None:
            self._client.close()
            self._client = None
