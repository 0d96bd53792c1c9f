"""Turn a generated operation call into an HTTP exchange and a decoded value.

The :class:`Dispatcher` is the runtime behind every generated operation.
For one call it:

1. Classifies the arguments (:func:`~routeclient.dispatch.arguments.classify`)
   and folds them into a :class:`~routeclient.dispatch.arguments.PreparedRequest`
   against ``server_url + url``, embedding the client's stored credentials.
2. In blocking mode, sends the request. A 401 on a request that carried no
   credentials, from a client that has credentials configured, triggers
   ``client.login()`` and exactly one rebuilt retry.
3. Decodes a 2xx body by content type and applies the optional ``wrap``
   (the result class).
4. In callback mode, schedules the exchange on the running event loop and
   returns the :class:`asyncio.Task` at once.

HTTP and transport failures never raise out of :meth:`Dispatcher.dispatch`:
they are reported on stderr and the call returns ``None``, leaving the
details on ``client.res``, ``client.error`` and ``client.last_error``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

import httpx

from routeclient.dispatch.arguments import PreparedRequest, classify, fold
from routeclient.exceptions import HTTPError, TransportError
from routeclient.models import HTTPMethod
from routeclient.output import debug, error, warning

if TYPE_CHECKING:
    from routeclient.client import Client

MAX_AUTH_RETRIES = 1

Wrapper = Callable[[Any], Any]


def sanitize_url(url: Union[str, httpx.URL]) -> str:
    """Render *url* with any userinfo replaced by ``user:*****``."""
    if not isinstance(url, httpx.URL):
        try:
            url = httpx.URL(url)
        except httpx.InvalidURL:
            return str(url)
    text = str(url)
    if not url.userinfo:
        return text
    return text.replace(url.userinfo.decode("ascii"), "user:*****", 1)


def decode_body(response: httpx.Response) -> Any:
    """Decode a response body by its ``Content-Type``.

    * exactly ``application/json`` -- parsed JSON
    * ``text/*`` or no content type -- text
    * anything else -- raw bytes

    A JSON body that fails to parse is returned as text with a warning.
    """
    content_type = response.headers.get("content-type", "")
    if content_type == "application/json":
        if not response.content:
            return ""
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            warning(f"Response declared JSON but did not parse ({exc}); returning text")
            return response.text
    if not content_type or content_type.startswith("text/"):
        return response.text
    return response.content


def _is_empty(body: Any) -> bool:
    return body is None or (isinstance(body, (str, bytes)) and not body)


def _http_error(response: httpx.Response) -> HTTPError:
    return HTTPError(response.status_code, response.reason_phrase, response.text or None)


class Dispatcher:
    """Execute requests on behalf of one :class:`~routeclient.client.Client`.

    Args:
        client: The owning client. The dispatcher reads ``server_url``,
            ``userinfo``, ``transport`` and ``has_auth()`` from it, calls
            ``login()`` on it, and writes ``res`` and ``error`` back.
    """

    def __init__(self, client: Client) -> None:
        self._client = client

    def prepare(self, method: Union[str, HTTPMethod], url: str, args: tuple[Any, ...]) -> PreparedRequest:
        """Build the request for a call of *method* on route template *url*."""
        declared = method.value if isinstance(method, HTTPMethod) else str(method).upper()
        effective, variants = classify(declared, args)
        prepared = fold(effective, f"{self._client.server_url or ''}{url}", variants)
        prepared.userinfo = self._client.userinfo
        return prepared

    def dispatch(
        self,
        method: Union[str, HTTPMethod],
        url: str,
        *args: Any,
        wrap: Optional[Wrapper] = None,
    ) -> Any:
        """Run one operation call.

        Args:
            method: Declared HTTP method of the route.
            url: Route URL template, relative to the client's ``server_url``.
            *args: The operation's arguments, classified as described in
                :mod:`routeclient.dispatch.arguments`.
            wrap: Applied to the decoded body of a successful response.

        Returns:
            The (wrapped) decoded body, or ``None`` on failure. In callback
            mode, the :class:`asyncio.Task` running the request. A successful
            ``application/json`` response whose body is ``null`` also decodes
            to ``None``; ``client.last_error`` is ``None`` in that case and
            set after any failure.

        Raises:
            TypeError: If more than one callback is passed.
            RuntimeError: In callback mode, if no event loop is running.
        """
        prepared = self.prepare(method, url, args)
        if prepared.callback is not None:
            return self._dispatch_async(prepared, wrap)
        return self._dispatch_sync(method, url, args, prepared, wrap)

    # ------------------------------------------------------------------ #
    # Blocking mode
    # ------------------------------------------------------------------ #

    def _dispatch_sync(
        self,
        method: Union[str, HTTPMethod],
        url: str,
        args: tuple[Any, ...],
        prepared: PreparedRequest,
        wrap: Optional[Wrapper],
    ) -> Any:
        client = self._client
        retries = 0
        while True:
            response = self._send(prepared)
            if response is None:
                return None
            if (
                response.status_code == 401
                and retries < MAX_AUTH_RETRIES
                and not response.request.url.userinfo
                and client.has_auth()
            ):
                debug("received code 401, trying again with credentials")
                client.login()
                retries += 1
                prepared = self.prepare(method, url, args)
                continue
            break

        if not response.is_success:
            client.last_error = _http_error(response)
            error(
                f"Error trying to {prepared.method} {sanitize_url(response.request.url)} : "
                f"({response.status_code}) {response.reason_phrase}"
            )
            if response.content:
                debug(f"Error body : {response.text}")
            return None

        debug(f"Got response : {response.status_code} {response.reason_phrase}")
        body = decode_body(response)
        return wrap(body) if wrap is not None else body

    def _send(self, prepared: PreparedRequest) -> Optional[httpx.Response]:
        client = self._client
        client.error = None
        client.last_error = None
        try:
            target = prepared.to_url()
            debug(f"Sending : {prepared.method} {sanitize_url(target)}")
            request = client.transport.build_request(
                prepared.method, target, headers=prepared.headers, body=prepared.body
            )
            response = client.transport.execute(request)
        except TransportError as exc:
            client.res = None
            client.error = str(exc)
            client.last_error = exc
            error(f"Error trying to {prepared.method} {sanitize_url(prepared.url)} : {exc}")
            return None
        client.res = response
        return response

    # ------------------------------------------------------------------ #
    # Callback mode
    # ------------------------------------------------------------------ #

    def _dispatch_async(self, prepared: PreparedRequest, wrap: Optional[Wrapper]) -> Any:
        client = self._client
        callback = prepared.callback
        assert callback is not None

        try:
            target = prepared.to_url()
        except TransportError as exc:
            client.res = None
            client.error = str(exc)
            client.last_error = exc
            error(f"Error trying to {prepared.method} {sanitize_url(prepared.url)} : {exc}")
            callback()
            return None
        display = sanitize_url(target)
        request = client.transport.build_request(
            prepared.method, target, headers=prepared.headers, body=prepared.body
        )
        debug(f"Sending : {prepared.method} {display} (async)")

        def _complete(response: Optional[httpx.Response], exc: Optional[TransportError]) -> None:
            client.res = response
            client.error = str(exc) if exc is not None else None
            client.last_error = exc
            if response is None:
                error(f"Error trying to {prepared.method} {display} : {exc}")
                callback()
                return
            if not response.is_success:
                client.last_error = _http_error(response)
                error(
                    f"Error trying to {prepared.method} {display} : "
                    f"({response.status_code}) {response.reason_phrase}"
                )
                callback()
                return
            body = decode_body(response)
            if _is_empty(body):
                callback(True)
                return
            callback(wrap(body) if wrap is not None else body)

        return client.transport.execute_async(request, _complete)
