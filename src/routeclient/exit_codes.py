"""Numeric process exit codes for the ``routeclient`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~routeclient.exceptions.RouteClientError` subclass.
Shell wrappers can inspect the exit code to tell a bad invocation from a
failed HTTP exchange without parsing stderr.

Example::

    $ routeclient call myapp.client:Client obj --id 12
    $ echo $?
    5   # EXIT_HTTP_FAILURE -- the server answered with a non-2xx status
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Unknown flag, missing required option, or unknown operation."""

EXIT_AUTH_FAILURE = 3
"""The server rejected the credentials (HTTP 401/403)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_HTTP_FAILURE = 5
"""The server answered with any other non-2xx status."""

EXIT_CONNECTION_ERROR = 6
"""The HTTP exchange could not complete (timeout, DNS failure, refused)."""


def exit_code_for_status(status_code: int) -> int:
    """Map a non-2xx HTTP status to its exit code."""
    if status_code in (401, 403):
        return EXIT_AUTH_FAILURE
    if status_code == 404:
        return EXIT_NOT_FOUND
    return EXIT_HTTP_FAILURE
