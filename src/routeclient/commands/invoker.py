"""Validate command-line flags against an operation's options and call it.

Given the tokens ``--where "in the oven" --for baby`` and the options::

    [
        OptionSpec(name="where", required=True),
        OptionSpec(name="for", required=True),
        OptionSpec(name="when"),
    ]

:func:`invoke` calls ``client.<operation>(where="in the oven", for="baby")``.
Parsing is done by a throwaway :class:`click.Command` built from the
options, so ``--flag value`` and ``--flag=value`` are both accepted:

* :attr:`~routeclient.models.ValueArity.NONE` -- a boolean switch, passed
  as ``True``.
* :attr:`~routeclient.models.ValueArity.OPTIONAL` -- may be given bare
  (passed as ``""``) or with a value.
* :attr:`~routeclient.models.ValueArity.REQUIRED` -- always needs a value.

Options that are not given are not passed at all. An operation without
registered options gets the tokens as positional arguments unchanged.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Sequence

import click
from click.core import ParameterSource

from routeclient.exceptions import ValidationError
from routeclient.models import OptionSpec, ValueArity
from routeclient.registry.store import RouteRegistry


def _dest(name: str) -> str:
    dest = re.sub(r"\W", "_", name)
    return dest if dest.isidentifier() else f"_{dest}"


def _alt_decl(alt: str) -> str:
    alt = alt.lstrip("-")
    return f"-{alt}" if len(alt) == 1 else f"--{alt}"


def build_command(operation: str, options: Sequence[OptionSpec]) -> tuple[click.Command, dict[str, str]]:
    """Build a parser for *options*.

    Returns:
        The command and a map from click parameter names back to option
        names.
    """
    params: list[click.Parameter] = []
    names: dict[str, str] = {}
    for spec in options:
        dest = _dest(spec.name)
        names[dest] = spec.name
        decls = [f"--{spec.name}"]
        if spec.alt_flag:
            decls.append(_alt_decl(spec.alt_flag))
        decls.append(dest)

        if spec.arity == ValueArity.NONE:
            params.append(click.Option(decls, is_flag=True, help=spec.doc))
        elif spec.arity == ValueArity.OPTIONAL:
            params.append(click.Option(decls, is_flag=False, flag_value="", help=spec.doc))
        else:
            params.append(click.Option(decls, type=str, help=spec.doc))

    command = click.Command(operation, params=params, add_help_option=False)
    return command, names


def parse_options(operation: str, options: Sequence[OptionSpec], args: Sequence[str]) -> dict[str, Any]:
    """Parse *args* against *options*.

    Returns:
        The given options keyed by option name.

    Raises:
        ValidationError: For an unknown flag (``invalid option: --x``), a
            missing required option (``required option missing: x``), or any
            other malformed input.
    """
    command, names = build_command(operation, options)
    try:
        ctx = command.make_context(operation, list(args))
    except click.NoSuchOption as exc:
        raise ValidationError(f"invalid option: {exc.option_name}") from exc
    except click.UsageError as exc:
        raise ValidationError(f"{operation}: {exc.format_message()}") from exc

    parsed: dict[str, Any] = {}
    for dest, value in ctx.params.items():
        source = ctx.get_parameter_source(dest)
        if source is None or source is ParameterSource.DEFAULT or value is None:
            continue
        parsed[names[dest]] = value

    for spec in options:
        if spec.required and spec.name not in parsed:
            raise ValidationError(f"required option missing: {spec.name}")
    return parsed


def invoke(
    client: Any,
    operation: str,
    args: Sequence[str] = (),
    registry: Optional[RouteRegistry] = None,
) -> Any:
    """Validate *args* for *operation* and call it on *client*.

    Args:
        client: A :class:`~routeclient.client.Client` instance.
        operation: Name of a registered operation.
        args: Command-line tokens following the operation name.
        registry: Where to look up the option schema; defaults to the
            client class's registry.

    Returns:
        Whatever the operation returns.

    Raises:
        ValidationError: If *operation* is unknown or *args* do not satisfy
            its option schema.
    """
    if registry is None:
        registry = type(client).route_registry()
    if operation not in registry or not callable(getattr(client, operation, None)):
        raise ValidationError(f"invalid operation: {operation}")

    options = registry.options_for(operation)
    method = getattr(client, operation)
    if not options:
        return method(*args)
    return method(**parse_options(operation, options, args))
