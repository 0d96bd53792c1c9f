"""Canonical Pydantic models shared across routeclient modules.

The models fall into two groups:

**Configuration models** -- read from the per-application config file by
:func:`~routeclient.config.load_client_config`:
    :class:`SSHTunnelConfig`, :class:`RequestConfig`, :class:`ClientConfig`.

**Registration models** -- written by the registrar and kept in the
metadata store for documentation and command-line validation:
    :class:`HTTPMethod`, :class:`RouteKind`, :class:`ValueArity`,
    :class:`OptionSpec`, :class:`RouteDefinition`.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class SSHTunnelConfig(BaseModel):
    """Where an ssh port forward should point.

    Example config snippet::

        "ssh_tunnel": {
            "remote_host": "gateway",
            "server_host": "localhost",
            "server_port": 9014
        }

    yields ``ssh -n -N -L<local port>:localhost:9014 gateway``, where the
    local port is taken from the client's ``url``.
    """

    remote_host: str
    server_host: str = "localhost"
    server_port: int


class RequestConfig(BaseModel):
    """HTTP settings handed to the transport."""

    timeout: float = Field(default=30, description="Request timeout in seconds")
    keep_alive_timeout: float = Field(
        default=300, description="Idle keep-alive expiry in seconds"
    )
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class ClientConfig(BaseModel):
    """Per-application client configuration.

    Loaded from ``<config dir>/<app_name>.json`` (or ``.yaml`` / ``.yml``).
    Unknown keys are preserved in ``model_extra`` so applications can keep
    their own settings in the same file.
    """

    model_config = ConfigDict(extra="allow")

    url: Optional[str] = Field(default=None, description="Server base URL")
    username: Optional[str] = None
    password: Optional[str] = None
    password_source: Optional[str] = Field(
        default=None,
        description="Credential source for the password: env:VAR, file:/path, prompt",
    )
    ssh_tunnel: Optional[SSHTunnelConfig] = None
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Registration ---


class HTTPMethod(str, enum.Enum):
    """HTTP verbs a route can declare."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class RouteKind(str, enum.Enum):
    """Whether a definition came from ``route`` or ``object_route``."""

    ROUTE = "route"
    OBJECT = "object"


class ValueArity(str, enum.Enum):
    """How many values a command-line option takes.

    ``NONE`` is a boolean switch, ``OPTIONAL`` may be given bare or with a
    value, ``REQUIRED`` always needs a value.
    """

    NONE = "none"
    OPTIONAL = "optional"
    REQUIRED = "required"


class OptionSpec(BaseModel):
    """Schema of one ``--flag`` accepted by an operation on the command line.

    Example::

        OptionSpec(name="where", required=True, doc="Where to put it")
        OptionSpec(name="verbose", alt_flag="v", arity=ValueArity.NONE)
    """

    model_config = ConfigDict(frozen=True)

    name: str
    alt_flag: Optional[str] = None
    arity: ValueArity = ValueArity.REQUIRED
    required: bool = False
    doc: str = ""


class RouteDefinition(BaseModel):
    """A registered operation: name, verb, URL template and documentation.

    Immutable once created; registering the same name again replaces the
    whole definition in the metadata store.

    ``result_class`` is either a class, an import string
    (``"package.module:Class"``), or ``None`` for a plain decoded result.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    method: HTTPMethod = HTTPMethod.GET
    url: str
    kind: RouteKind = RouteKind.ROUTE
    result_class: Any = None
    doc: str = ""
    meta: dict[str, str] = Field(default_factory=dict)
