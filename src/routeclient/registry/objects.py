"""Result wrappers for object routes.

:class:`ClientObject` is the generic, untyped wrapper an object route falls
back to when no dedicated class exists. Keys of the decoded JSON mapping
become attributes; nested mappings are wrapped too. Applications can
subclass it and name nested types in ``field_classes``::

    class Foo(Client):
        class Order(ClientObject):
            field_classes = {"customer": "Customer"}

        class Customer(ClientObject):
            pass

        order = object_route()

:func:`resolve_result_class` turns a registered result-class reference into
a class, degrading to :class:`ClientObject` when the reference cannot be
resolved.
"""

from __future__ import annotations

import importlib
import re
import sys
from typing import Any, ClassVar, Optional

from routeclient.exceptions import RegistrationError
from routeclient.output import warning


class ClientObject:
    """Attribute-style view over a decoded JSON object.

    Args:
        data: The decoded mapping.
        client: The client that fetched it, kept so subclasses can issue
            follow-up calls (``self.client.order_delete(self.id)``).
    """

    field_classes: ClassVar[dict[str, Any]] = {}

    def __init__(self, data: dict[str, Any], client: Any = None) -> None:
        object.__setattr__(self, "_data", dict(data))
        object.__setattr__(self, "_client", client)

    @classmethod
    def wrap(cls, data: Any, client: Any = None) -> Any:
        """Wrap *data* in *cls* where it makes sense.

        Mappings become instances, lists are wrapped item by item, and
        anything else (``None``, strings, numbers) is returned unchanged.
        """
        if isinstance(data, dict):
            return cls(data, client)
        if isinstance(data, list):
            return [cls.wrap(item, client) for item in data]
        return data

    @property
    def client(self) -> Any:
        return self._client

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            value = self._data[name]
        except KeyError:
            raise AttributeError(
                f"{type(self).__name__!r} object has no attribute {name!r}"
            ) from None
        return self._wrap_field(name, value)

    def __setattr__(self, name: str, value: Any) -> None:
        self._data[name] = value

    def __getitem__(self, key: str) -> Any:
        return self._wrap_field(key, self._data[key])

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ClientObject):
            return self._data == other._data
        if isinstance(other, dict):
            return self._data == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return self[key]

    def keys(self):  # noqa: ANN201
        return self._data.keys()

    def to_data(self) -> dict[str, Any]:
        """Return the underlying decoded mapping."""
        return dict(self._data)

    def _wrap_field(self, name: str, value: Any) -> Any:
        target = self.field_classes.get(name)
        if target is not None:
            if isinstance(target, str):
                target = _resolve_sibling(type(self), target)
            return wrap_result(target, value, self._client)
        if isinstance(value, (dict, list)):
            return ClientObject.wrap(value, self._client)
        return value


def _resolve_sibling(cls: type, name: str) -> type:
    """Find class *name* next to *cls*: its enclosing class, then its module."""
    module = sys.modules.get(cls.__module__)
    owner: Any = module
    outer = cls.__qualname__.rsplit(".", 1)[0] if "." in cls.__qualname__ else ""
    if outer and module is not None:
        for part in outer.split("."):
            owner = getattr(owner, part, None)
        found = getattr(owner, name, None)
        if isinstance(found, type):
            return found
    found = getattr(module, name, None)
    if isinstance(found, type):
        return found
    return ClientObject


# ---------------------------------------------------------------------------
# Result class resolution
# ---------------------------------------------------------------------------


def camel_case(name: str) -> str:
    """``my_obj`` -> ``MyObj``; ``obj`` -> ``Obj``."""
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"_+", name) if part)


def import_class(reference: str) -> type:
    """Import ``"package.module:Class"`` or ``"package.module.Class"``.

    Raises:
        RegistrationError: If the module cannot be imported or has no such
            class.
    """
    if ":" in reference:
        module_name, _, attr = reference.partition(":")
    else:
        module_name, _, attr = reference.rpartition(".")
    if not module_name or not attr:
        raise RegistrationError(f"Not an importable class reference: {reference!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise RegistrationError(f"Cannot import {module_name!r}: {exc}") from exc
    target: Any = module
    for part in attr.split("."):
        target = getattr(target, part, None)
    if not isinstance(target, type):
        raise RegistrationError(f"{reference!r} does not name a class")
    return target


def find_object_class(client_cls: type, object_name: str) -> Optional[type]:
    """Look up the class for object route *object_name* of *client_cls*.

    ``my_obj`` is looked up as ``MyObj``: first as a class nested in the
    client class (or any base), then in the module that defines the client.
    """
    class_name = camel_case(object_name)
    nested = getattr(client_cls, class_name, None)
    if isinstance(nested, type):
        return nested
    module = sys.modules.get(client_cls.__module__)
    found = getattr(module, class_name, None)
    if isinstance(found, type):
        return found
    return None


def resolve_result_class(reference: Any, client_cls: type, object_name: Optional[str] = None) -> type:
    """Turn a registered result-class reference into a class.

    Args:
        reference: A class, an import string, or ``None``.
        client_cls: The client class the route belongs to.
        object_name: For object routes, the name to derive a class from
            when *reference* is ``None``.

    Returns:
        The resolved class, or :class:`ClientObject` if nothing usable is
        found. A reference that fails to import is reported as a warning.
    """
    if isinstance(reference, type):
        return reference
    if isinstance(reference, str):
        try:
            return import_class(reference)
        except RegistrationError as exc:
            warning(f"{client_cls.__qualname__}: {exc}; using ClientObject")
            return ClientObject
    if object_name is not None:
        found = find_object_class(client_cls, object_name)
        if found is not None:
            return found
    return ClientObject


def wrap_result(result_cls: type, data: Any, client: Any) -> Any:
    """Build the value an operation returns from decoded *data*.

    ``None`` (a failed call) passes through unwrapped. Classes with a
    ``wrap`` classmethod (every :class:`ClientObject`) use it; any other
    class is called as ``result_cls(data, client)``.
    """
    if data is None:
        return None
    wrap = getattr(result_cls, "wrap", None)
    if callable(wrap):
        return wrap(data, client)
    return result_cls(data, client)
