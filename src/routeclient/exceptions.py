"""Exception hierarchy for routeclient.

All exceptions inherit from :class:`RouteClientError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`routeclient.exit_codes`. The command-line entry point in
:func:`routeclient.cli.main` catches ``RouteClientError`` and exits with the
matching code.

Generated client operations never raise :class:`HTTPError` or
:class:`TransportError` to their callers. The dispatcher turns them into a
``None`` result and keeps the details on the client: ``client.res``,
``client.error`` and ``client.last_error``, the :class:`HTTPError` or
:class:`TransportError` of the last failed call. Only
:class:`ValidationError` is raised across the public surface, because it
signals bad input rather than service state.

Subclass hierarchy::

    RouteClientError (exit 1)
    +-- ValidationError     (exit 2)
    +-- HTTPError           (exit 3/4/5, from the status code)
    +-- TransportError      (exit 6)
    +-- RegistrationError   (exit 1)
    +-- ConfigError         (exit 1)
    +-- TunnelError         (exit 1)
"""

from __future__ import annotations

from typing import Optional

from routeclient.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_HTTP_FAILURE,
    EXIT_INVALID_USAGE,
    exit_code_for_status,
)


class RouteClientError(Exception):
    """Base exception for all routeclient errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ValidationError(RouteClientError):
    """Raised by the command invoker for an invalid or missing flag."""

    exit_code = EXIT_INVALID_USAGE


class HTTPError(RouteClientError):
    """A non-2xx response, described by its status code and reason.

    The exit code follows the status: 401/403 map to
    :data:`~routeclient.exit_codes.EXIT_AUTH_FAILURE`, 404 to
    :data:`~routeclient.exit_codes.EXIT_NOT_FOUND`, everything else to
    :data:`~routeclient.exit_codes.EXIT_HTTP_FAILURE`.
    """

    exit_code = EXIT_HTTP_FAILURE

    def __init__(self, status_code: int, reason: str = "", body: Optional[str] = None):
        super().__init__(f"({status_code}) {reason}".rstrip())
        self.status_code = status_code
        self.reason = reason
        self.body = body
        self.exit_code = exit_code_for_status(status_code)


class TransportError(RouteClientError):
    """Raised by the transport when the HTTP exchange could not complete."""

    exit_code = EXIT_CONNECTION_ERROR


class RegistrationError(RouteClientError):
    """A result class reference could not be resolved.

    Registration degrades to :class:`~routeclient.registry.objects.ClientObject`
    instead of propagating this; it is raised only by the resolver itself.
    """


class ConfigError(RouteClientError):
    """Raised for unreadable config files or unresolvable credential sources."""


class TunnelError(RouteClientError):
    """Raised when the ssh tunnel command cannot be launched."""
