"""Typer application and console entry point for routeclient.

Two commands drive any :class:`~routeclient.client.Client` subclass from the
shell::

    routeclient call foo.client:FooClient status
    routeclient call foo.client:FooClient bake --where "in the oven" --for baby
    routeclient routes foo.client:FooClient
    routeclient routes foo.client:FooClient bake

``call`` validates the flags with the command invoker, runs the operation
and prints the decoded result on stdout. A failed request prints the
client's error string on stderr and exits with the HTTP or transport exit
code. Unhandled exceptions are written to a crash log under the data
directory by :func:`main`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from routeclient import __version__
from routeclient.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="routeclient",
    help="Call and document declarative REST clients.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"routeclient {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    url: Optional[str] = typer.Option(
        None, "--url", help="Server URL, overriding the client's config."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show request traces."
    ),
) -> None:
    """Initialise output handling and keep shared options on the context."""
    from routeclient.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["url"] = url


def _load_client_class(reference: str) -> type:
    """Import ``package.module:Class`` and check that it is a client class."""
    from routeclient.client import Client
    from routeclient.exceptions import ValidationError
    from routeclient.registry.objects import import_class

    cls = import_class(reference)
    if not issubclass(cls, Client):
        raise ValidationError(f"{reference} is not a routeclient Client subclass")
    return cls


def _failure_exit_code(client: Any) -> int:
    if client.last_error is not None:
        return client.last_error.exit_code
    return EXIT_GENERIC_FAILURE


@app.command(
    "call",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def call_command(
    ctx: typer.Context,
    client_ref: str = typer.Argument(..., metavar="CLIENT", help="Client class, as package.module:Class."),
    operation: str = typer.Argument(..., help="Operation to call."),
) -> None:
    """Call OPERATION on CLIENT; remaining arguments are its flags.

    Example::

        routeclient call foo.client:FooClient obj this 27
        routeclient call foo.client:FooClient bake --where there --for baby
    """
    from routeclient.commands.invoker import invoke
    from routeclient.exceptions import RouteClientError
    from routeclient.output import error, format_response

    url = (ctx.obj or {}).get("url")
    try:
        cls = _load_client_class(client_ref)
        with cls(server_url=url) as client:
            result = invoke(client, operation, list(ctx.args))
            if result is None and (client.last_error is not None or client.res is None):
                error(client.errorstring() or f"{operation} returned no result")
                raise typer.Exit(code=_failure_exit_code(client))
    except RouteClientError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    format_response(result)


@app.command("routes")
def routes_command(
    client_ref: str = typer.Argument(..., metavar="CLIENT", help="Client class, as package.module:Class."),
    operation: Optional[str] = typer.Argument(None, help="Show details for one operation."),
) -> None:
    """List the operations of CLIENT, or describe one of them."""
    from routeclient.commands.docs import describe_route, describe_routes
    from routeclient.exceptions import RouteClientError
    from routeclient.output import error, get_output, print_table

    output = get_output()
    try:
        registry = _load_client_class(client_ref).route_registry()
        if operation is not None:
            output.print_data(describe_route(registry, operation))
            return
    except RouteClientError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    rows = describe_routes(registry)
    print_table(
        ["Operation", "Method", "URL", "Description"],
        rows,
        title=f"{client_ref} ({len(rows)} operations)",
    )


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from routeclient.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """Entry point of the ``routeclient`` console script.

    :class:`~routeclient.exceptions.RouteClientError` instances exit with
    their ``exit_code``; any other exception produces a crash log and a
    generic failure exit.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from routeclient.exceptions import RouteClientError
        from routeclient.output import error

        if isinstance(exc, RouteClientError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
