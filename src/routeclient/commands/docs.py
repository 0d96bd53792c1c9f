"""Render the registered operations of a client class as documentation."""

from __future__ import annotations

from routeclient.exceptions import ValidationError
from routeclient.models import ValueArity
from routeclient.registry.store import RouteRegistry


def describe_routes(registry: RouteRegistry) -> list[list[str]]:
    """One ``[name, method, url, doc]`` row per operation, in registration order."""
    return [
        [name, definition.method.value, definition.url, definition.doc]
        for name, definition in registry.all()
    ]


def describe_route(registry: RouteRegistry, name: str) -> str:
    """Multi-line description of operation *name* including its options.

    Raises:
        ValidationError: If *name* is not registered.
    """
    definition = registry.lookup(name)
    if definition is None:
        raise ValidationError(f"invalid operation: {name}")

    lines = [f"{name}: {definition.method.value} {definition.url}"]
    if definition.doc:
        lines.append(f"  {definition.doc}")
    for key, value in definition.meta.items():
        lines.append(f"  {key}: {value}")

    options = registry.options_for(name) or []
    if options:
        lines.append("  options:")
    for spec in options:
        flag = f"--{spec.name}"
        if spec.alt_flag:
            flag += f", -{spec.alt_flag}" if len(spec.alt_flag) == 1 else f", --{spec.alt_flag}"
        if spec.arity == ValueArity.REQUIRED:
            flag += " VALUE"
        elif spec.arity == ValueArity.OPTIONAL:
            flag += " [VALUE]"
        notes = " (required)" if spec.required else ""
        doc = f"  {spec.doc}" if spec.doc else ""
        lines.append(f"    {flag}{notes}{doc}")
    return "\n".join(lines)
