"""Declare routes and objects on a client class and synthesize its operations.

Declarations are written in the class body::

    class FooClient(Client):
        welcome = route("/")                          # GET /
        status = route(doc="Get the status")          # GET /status
        myobj = route(result="foo.objects:MyObject")  # GET /myobj, wrapped
        something = route("GET", "/some/")
        remove = route("DELETE", "/something/")
        obj = object_route()                          # obj, obj_delete, obj_search
        foo = object_route("/something/foo")

When the class is created, :func:`build_client_class` replaces every marker
with a generated operation, in definition order, and records a
:class:`~routeclient.models.RouteDefinition` for it in the
:data:`~routeclient.registry.store.METADATA` store. The same can be done
after the fact with :func:`register_route` and :func:`register_object`.

Documentation, metadata and command-line options are attached with the
companion calls :func:`route_doc`, :func:`route_meta` and
:func:`route_args`. They may run before or after the route itself is
registered.

Registering a name twice on the same class replaces the first operation.
Nothing warns about it beyond a debug trace, so a later declaration can
silently shadow an inherited common route such as ``status``.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence, Union

from routeclient.models import HTTPMethod, OptionSpec, RouteDefinition, RouteKind
from routeclient.registry.objects import resolve_result_class, wrap_result
from routeclient.registry.store import METADATA, MetadataStore


class RouteDeclaration:
    """Marker left in a class body by :func:`route` or :func:`object_route`."""

    def __init__(
        self,
        kind: RouteKind,
        method: Optional[HTTPMethod] = None,
        url: Optional[str] = None,
        result: Any = None,
        doc: str = "",
        options: Optional[Sequence[OptionSpec]] = None,
    ) -> None:
        self.kind = kind
        self.method = method
        self.url = url
        self.result = result
        self.doc = doc
        self.options = list(options) if options is not None else None

    def __repr__(self) -> str:
        return f"<{self.kind.value} {self.method.value if self.method else 'GET'} {self.url or '/<name>'}>"


def _coerce_method(method: Union[str, HTTPMethod]) -> HTTPMethod:
    if isinstance(method, HTTPMethod):
        return method
    try:
        return HTTPMethod(method.upper())
    except ValueError:
        raise ValueError(f"Unsupported HTTP method: {method!r}") from None


def route(
    *args: Union[str, HTTPMethod],
    result: Any = None,
    doc: str = "",
    options: Optional[Sequence[OptionSpec]] = None,
) -> RouteDeclaration:
    """Declare a plain route.

    Accepted positional forms: ``route()``, ``route(url)``, ``route(method)``
    and ``route(method, url)``. The URL defaults to ``/<name>`` and the
    method to GET.

    Args:
        result: Class (or ``"module:Class"`` string) the decoded body is
            wrapped in.
        doc: One-line description shown by ``routeclient routes``.
        options: Command-line option schema for the operation.
    """
    method: Optional[HTTPMethod] = None
    url: Optional[str] = None
    if len(args) == 2:
        method, url = _coerce_method(args[0]), str(args[1])
    elif len(args) == 1:
        arg = args[0]
        if isinstance(arg, HTTPMethod) or str(arg).upper() in HTTPMethod.__members__:
            method = _coerce_method(arg)
        else:
            url = str(arg)
    elif args:
        raise TypeError("route() takes at most a method and a URL")
    return RouteDeclaration(RouteKind.ROUTE, method, url, result, doc, options)


def object_route(url: Optional[str] = None, doc: str = "") -> RouteDeclaration:
    """Declare an object: ``name`` (GET), ``name_delete`` and ``name_search``.

    The result of ``name`` is wrapped in the class named after the object
    (``my_obj`` -> ``MyObj``), looked up on the client class and then in its
    module, or in :class:`~routeclient.registry.objects.ClientObject`.
    """
    return RouteDeclaration(RouteKind.OBJECT, HTTPMethod.GET, url, None, doc)


# ---------------------------------------------------------------------------
# Operation synthesis
# ---------------------------------------------------------------------------


class _LazyResultClass:
    """Resolve a result-class reference on first use and keep the answer."""

    def __init__(self, reference: Any, client_cls: type, object_name: Optional[str] = None) -> None:
        self._reference = reference
        self._client_cls = client_cls
        self._object_name = object_name
        self._resolved: Optional[type] = None

    def __call__(self) -> type:
        if self._resolved is None:
            self._resolved = resolve_result_class(
                self._reference, self._client_cls, self._object_name
            )
        return self._resolved


def _flag_pairs(kwargs: dict[str, Any]) -> tuple[Any, ...]:
    """``{"limit": 10, "tag": None}`` -> ``("--limit", 10)``; ``None`` values are dropped."""
    pairs: list[Any] = []
    for key, value in kwargs.items():
        if value is None:
            continue
        pairs.extend((f"--{key}", value))
    return tuple(pairs)


def _make_operation(
    cls: type,
    definition: RouteDefinition,
    result: Optional[_LazyResultClass],
) -> Callable[..., Any]:
    method = definition.method
    url = definition.url

    def operation(self: Any, *args: Any, **kwargs: Any) -> Any:
        if kwargs:
            args = args + _flag_pairs(kwargs)
        wrap = None
        if result is not None:
            result_cls = result()

            def wrap(data: Any) -> Any:
                return wrap_result(result_cls, data, self)

        return self.dispatch(method, url, *args, wrap=wrap)

    operation.__name__ = definition.name
    operation.__qualname__ = f"{cls.__qualname__}.{definition.name}"
    operation.__module__ = cls.__module__
    operation.__doc__ = definition.doc or f"{method.value} {url}"
    operation.definition = definition  # type: ignore[attr-defined]
    return operation


def _install(cls: type, definition: RouteDefinition, result: Optional[_LazyResultClass], store: MetadataStore) -> Callable[..., Any]:
    store.define(cls, definition.name, definition)
    operation = _make_operation(cls, store.lookup(cls, definition.name) or definition, result)
    if "operations" not in cls.__dict__:
        cls.operations = dict(getattr(cls, "operations", {}))  # type: ignore[attr-defined]
    cls.operations[definition.name] = operation  # type: ignore[attr-defined]
    setattr(cls, definition.name, operation)
    return operation


def register_route(
    cls: type,
    name: str,
    method: Union[str, HTTPMethod] = HTTPMethod.GET,
    url: Optional[str] = None,
    result_class: Any = None,
    doc: str = "",
    options: Optional[Sequence[OptionSpec]] = None,
    store: MetadataStore = METADATA,
) -> Callable[..., Any]:
    """Register route *name* on *cls* and return the generated operation."""
    definition = RouteDefinition(
        name=name,
        method=_coerce_method(method),
        url=url if url is not None else f"/{name}",
        kind=RouteKind.ROUTE,
        result_class=result_class,
        doc=doc,
    )
    result = _LazyResultClass(result_class, cls) if result_class is not None else None
    operation = _install(cls, definition, result, store)
    if options is not None:
        store.attach_options(cls, name, list(options))
    return operation


def register_object(
    cls: type,
    name: str,
    url: Optional[str] = None,
    doc: str = "",
    store: MetadataStore = METADATA,
) -> dict[str, Callable[..., Any]]:
    """Register object *name* on *cls*.

    Returns:
        The three generated operations keyed by name: ``name``,
        ``name_delete`` and ``name_search``.
    """
    url = url if url is not None else f"/{name}"
    result = _LazyResultClass(None, cls, object_name=name)
    generated = {}
    for op_name, method, op_url, op_doc, op_result in (
        (name, HTTPMethod.GET, url, doc, result),
        (f"{name}_delete", HTTPMethod.DELETE, url, f"Delete a {name}", None),
        (f"{name}_search", HTTPMethod.POST, f"{url}/search", f"Search for {name} objects", None),
    ):
        definition = RouteDefinition(
            name=op_name, method=method, url=op_url, kind=RouteKind.OBJECT, doc=op_doc
        )
        generated[op_name] = _install(cls, definition, op_result, store)
    return generated


def route_doc(cls: type, name: str, text: str, store: MetadataStore = METADATA) -> None:
    """Set the documentation of operation *name*."""
    store.set_doc(cls, name, text)
    operation = cls.__dict__.get(name)
    if operation is not None and hasattr(operation, "definition"):
        operation.__doc__ = text


def route_meta(cls: type, name: str, key: str, value: str, store: MetadataStore = METADATA) -> None:
    """Attach a free-form ``key: value`` to operation *name*."""
    store.set_meta(cls, name, key, value)


def route_args(cls: type, name: str, options: Sequence[OptionSpec], store: MetadataStore = METADATA) -> None:
    """Set the command-line options of operation *name*, replacing any earlier set."""
    store.attach_options(cls, name, list(options))


def build_client_class(cls: type, store: MetadataStore = METADATA) -> None:
    """Turn the declarations in the body of *cls* into operations.

    Called from ``Client.__init_subclass__``; markers are processed in the
    order they appear in the class body.
    """
    store.registry_for(cls)
    declarations = [
        (name, value) for name, value in cls.__dict__.items() if isinstance(value, RouteDeclaration)
    ]
    for name, decl in declarations:
        if decl.kind is RouteKind.OBJECT:
            register_object(cls, name, url=decl.url, doc=decl.doc, store=store)
        else:
            register_route(
                cls,
                name,
                method=decl.method or HTTPMethod.GET,
                url=decl.url,
                result_class=decl.result,
                doc=decl.doc,
                options=decl.options,
                store=store,
            )
