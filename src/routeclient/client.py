"""Base class for declarative REST clients.

Subclass :class:`Client` and declare routes in the class body; every
declaration becomes a method::

    from routeclient import Client, object_route, route

    class FooClient(Client):
        welcome = route("/")
        something = route("GET", "/some/")
        obj = object_route()

    with FooClient(server_url="http://localhost:3000") as f:
        f.welcome()                  # GET  /
        f.something("this")          # GET  /some/this
        f.obj("this", 27)            # GET  /obj/this/27, wrapped
        f.obj({"set": "this"})       # POST /obj
        f.obj_delete("this", 27)     # DELETE /obj/this/27

Every generated method returns ``None`` when the HTTP exchange fails; the
last response stays on :attr:`Client.res` and :meth:`Client.errorstring`
describes what went wrong.

Every client also gets the common routes ``version``, ``status`` and
``api``.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Optional, Union

import httpx

from routeclient.config import load_client_config, resolve_password
from routeclient.dispatch.dispatcher import Dispatcher
from routeclient.dispatch.transport import HttpTransport
from routeclient.exceptions import RouteClientError
from routeclient.models import ClientConfig, HTTPMethod
from routeclient.output import info
from routeclient.registry.registrar import build_client_class, route
from routeclient.registry.store import METADATA, RouteRegistry
from routeclient.tunnel import SSHTunnel


class Client:
    """A REST client whose methods are generated from route declarations.

    Args:
        server_url: Base URL prefixed to every route. Defaults to the
            ``url`` of the application's config.
        transport: Low-level httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.
        config: Explicit configuration; loaded from the config directory
            and environment when omitted.
        async_transport: Low-level transport for callback-mode calls when it
            differs from *transport*.

    Attributes:
        res: The last :class:`httpx.Response`, or ``None`` after a transport
            failure.
        error: Description of the last transport failure, if any.
        last_error: The :class:`~routeclient.exceptions.HTTPError` or
            :class:`~routeclient.exceptions.TransportError` of the last
            failed call, ``None`` after a successful one.
        userinfo: ``(username, password)`` sent with every request after
            :meth:`login`.
    """

    app_name: ClassVar[Optional[str]] = None
    """Application the client belongs to. Defaults to the top-level package
    of the module that defines the class."""

    operations: ClassVar[dict[str, Callable[..., Any]]] = {}

    version = route(doc="Retrieve the version on the server.")
    status = route(doc="Retrieve the status from the server.")
    api = route(doc="Retrieve the API from the server.")

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        build_client_class(cls)

    def __init__(
        self,
        server_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        config: Optional[ClientConfig] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config if config is not None else load_client_config(self.get_app_name())
        url = server_url if server_url is not None else (self.config.url or "")
        self.server_url = url.rstrip("/")
        self.userinfo: Optional[tuple[str, str]] = None
        self.res: Optional[httpx.Response] = None
        self.error: Optional[str] = None
        self.last_error: Optional[RouteClientError] = None
        self.transport = HttpTransport(self.config.request, transport, async_transport)
        self._dispatcher = Dispatcher(self)

        if self.config.ssh_tunnel is not None:
            info(f"Found an ssh tunnel for {type(self).__name__} in config file")
            self._tunnel().ensure_up()

    # ------------------------------------------------------------------ #
    # Class-level metadata
    # ------------------------------------------------------------------ #

    @classmethod
    def get_app_name(cls) -> str:
        return cls.app_name or cls.__module__.split(".")[0]

    @classmethod
    def route_registry(cls) -> RouteRegistry:
        """The registered operations of this class, in registration order."""
        return METADATA.registry_for(cls)

    # ------------------------------------------------------------------ #
    # Authentication
    # ------------------------------------------------------------------ #

    def login(self, username: Optional[str] = None, password: Optional[str] = None) -> None:
        """Send basic-auth credentials with every subsequent request.

        Without arguments the username and password come from the config.
        """
        if username is None and password is None:
            username = self.config.username
            password = resolve_password(self.config)
        self.userinfo = (username or "", password or "")

    def has_auth(self) -> bool:
        """True if the config provides both a username and a password."""
        return bool(self.config.username) and bool(
            self.config.password or self.config.password_source
        )

    def errorstring(self) -> str:
        """Describe the last failure, e.g. ``"(500) Internal Server Error"``."""
        if self.error:
            return self.error
        if self.res is not None:
            return f"({self.res.status_code}) {self.res.reason_phrase}"
        return ""

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def dispatch(
        self,
        method: Union[str, HTTPMethod],
        url: str,
        *args: Any,
        wrap: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        """Send a request for route template *url*; see :class:`~routeclient.dispatch.dispatcher.Dispatcher`."""
        return self._dispatcher.dispatch(method, url, *args, wrap=wrap)

    # ------------------------------------------------------------------ #
    # ssh tunnel
    # ------------------------------------------------------------------ #

    def _tunnel(self) -> SSHTunnel:
        return SSHTunnel(self.get_app_name(), self.server_url, self.config.ssh_tunnel)

    def ssh_tunnel_is_up(self) -> bool:
        """Check whether the ssh tunnel of this client's application is alive."""
        return self._tunnel().is_up()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        self.transport.close()

    async def aclose(self) -> None:
        await self.transport.aclose()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.server_url or '(no url)'}>"


build_client_class(Client)
