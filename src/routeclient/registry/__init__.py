"""Route registration, the metadata store and result objects.

:mod:`~routeclient.registry.registrar` turns declarations into operations,
:mod:`~routeclient.registry.store` keeps their definitions and option
schemas per client class, and :mod:`~routeclient.registry.objects` wraps
decoded results.
"""

from routeclient.registry.objects import ClientObject
from routeclient.registry.registrar import (
    object_route,
    register_object,
    register_route,
    route,
    route_args,
    route_doc,
    route_meta,
)
from routeclient.registry.store import METADATA, MetadataStore, RouteRegistry

__all__ = [
    "ClientObject",
    "METADATA",
    "MetadataStore",
    "RouteRegistry",
    "object_route",
    "register_object",
    "register_route",
    "route",
    "route_args",
    "route_doc",
    "route_meta",
]
