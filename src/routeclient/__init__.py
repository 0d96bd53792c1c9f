"""routeclient -- Declarative REST clients with generated operations.

A client is a :class:`Client` subclass whose class body declares routes and
objects. Each declaration becomes a method that turns its positional and
flag arguments into an HTTP request, retries once with credentials on a
401, and returns the decoded body (or ``None`` on failure)::

    from routeclient import Client, object_route, route

    class FooClient(Client):
        welcome = route("/")
        obj = object_route()

The ``routeclient`` command calls and documents such clients from the
shell.

Modules:
    client: The :class:`Client` base class.
    registry: Route declarations, the metadata store and result objects.
    dispatch: Argument classification, the HTTP transport and dispatcher.
    commands: Flag validation and route documentation for the CLI.
    cli: Typer application and console entry point.
    config: XDG-aware per-application configuration.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.11.0"

from routeclient.client import Client  # noqa: E402
from routeclient.exceptions import (  # noqa: E402
    HTTPError,
    RouteClientError,
    TransportError,
    ValidationError,
)
from routeclient.models import HTTPMethod, OptionSpec, RouteDefinition, ValueArity  # noqa: E402
from routeclient.registry import (  # noqa: E402
    ClientObject,
    object_route,
    register_object,
    register_route,
    route,
    route_args,
    route_doc,
    route_meta,
)

__all__ = [
    "Client",
    "ClientObject",
    "HTTPError",
    "HTTPMethod",
    "OptionSpec",
    "RouteClientError",
    "RouteDefinition",
    "TransportError",
    "ValidationError",
    "ValueArity",
    "object_route",
    "register_object",
    "register_route",
    "route",
    "route_args",
    "route_doc",
    "route_meta",
]
