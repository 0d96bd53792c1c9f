"""Command-line helpers: flag validation and route documentation."""

from routeclient.commands.docs import describe_route, describe_routes
from routeclient.commands.invoker import invoke

__all__ = ["describe_route", "describe_routes", "invoke"]
