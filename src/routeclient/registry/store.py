"""Metadata store: per-client-class registry of operations and option schemas.

The store is pure data. The registrar writes to it while a client class is
being defined; the dispatcher's callers, the command invoker and the route
documentation read from it afterwards. Nothing is written once class
definition is over, so concurrent readers need no locking.

Three independent kinds of write may target the same operation name, in
any order relative to each other:

* :meth:`RouteRegistry.define` -- the :class:`~routeclient.models.RouteDefinition`
  itself (verb, URL, result class).
* :meth:`RouteRegistry.set_doc` / :meth:`RouteRegistry.set_meta` --
  documentation text and free-form metadata.
* :meth:`RouteRegistry.attach_options` -- the
  :class:`~routeclient.models.OptionSpec` list used by the command invoker.

Doc and meta written before the first definition are kept unless the
definition carries its own doc. Redefining an operation replaces its
definition, doc and meta but keeps an option set that is already attached. Attaching options again replaces the
previous set wholesale; the two lists are never merged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

from routeclient.models import OptionSpec, RouteDefinition
from routeclient.output import debug


@dataclass
class _Entry:
    definition: Optional[RouteDefinition] = None
    options: Optional[list[OptionSpec]] = None
    doc: str = ""
    meta: dict[str, str] = field(default_factory=dict)

    def copy(self) -> _Entry:
        return _Entry(
            definition=self.definition,
            options=list(self.options) if self.options is not None else None,
            doc=self.doc,
            meta=dict(self.meta),
        )


class RouteRegistry:
    """Operations registered for one client class.

    A subclass registry starts as a copy of its parent's, so common routes
    declared on a base client are documented and validated for every
    subclass. Later writes on the subclass never leak back to the parent.

    Args:
        owner: Qualified name of the client class, used in diagnostics.
        parent: Registry of the nearest base class, if any.
    """

    def __init__(self, owner: str, parent: Optional[RouteRegistry] = None) -> None:
        self.owner = owner
        self._entries: dict[str, _Entry] = {}
        if parent is not None:
            for name, entry in parent._entries.items():
                self._entries[name] = entry.copy()

    def _entry(self, name: str) -> _Entry:
        entry = self._entries.get(name)
        if entry is None:
            entry = self._entries[name] = _Entry()
        return entry

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def define(self, definition: RouteDefinition) -> None:
        """Record *definition* under its name; the last registration wins."""
        entry = self._entry(definition.name)
        if entry.definition is not None:
            debug(
                f"{self.owner}: redefining '{definition.name}' "
                f"({entry.definition.method.value} {entry.definition.url} -> "
                f"{definition.method.value} {definition.url})"
            )
            entry.doc = definition.doc
            entry.meta = dict(definition.meta)
        else:
            # Companion data recorded ahead of the definition survives.
            entry.doc = definition.doc or entry.doc
            entry.meta = {**entry.meta, **definition.meta}
        entry.definition = definition

    def attach_options(self, name: str, options: list[OptionSpec]) -> None:
        """Replace the option schema of *name*."""
        self._entry(name).options = list(options)

    def set_doc(self, name: str, doc: str) -> None:
        self._entry(name).doc = doc

    def set_meta(self, name: str, key: str, value: str) -> None:
        self._entry(name).meta[key] = value

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def lookup(self, name: str) -> Optional[RouteDefinition]:
        """Return the definition of *name* with its current doc and meta.

        Returns ``None`` when only companion data (doc, meta, options) has
        been recorded for *name* so far.
        """
        entry = self._entries.get(name)
        if entry is None or entry.definition is None:
            return None
        return entry.definition.model_copy(
            update={"doc": entry.doc, "meta": dict(entry.meta)}
        )

    def options_for(self, name: str) -> Optional[list[OptionSpec]]:
        """Return the option schema of *name*, or ``None`` if none was attached."""
        entry = self._entries.get(name)
        if entry is None or entry.options is None:
            return None
        return list(entry.options)

    def doc_for(self, name: str) -> str:
        entry = self._entries.get(name)
        return entry.doc if entry is not None else ""

    def all(self) -> list[tuple[str, RouteDefinition]]:
        """All defined operations as ``(name, definition)`` in registration order."""
        result = []
        for name in self._entries:
            definition = self.lookup(name)
            if definition is not None:
                result.append((name, definition))
        return result

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self.all())

    def __len__(self) -> int:
        return len(self.all())


class MetadataStore:
    """Process-wide mapping from client class to its :class:`RouteRegistry`.

    Every method takes the client class explicitly; there is no lookup by
    calling context.

    Example::

        store = MetadataStore()
        store.define(FooClient, RouteDefinition(name="status", url="/status"))
        store.lookup(FooClient, "status").url   # "/status"
    """

    def __init__(self) -> None:
        self._registries: dict[type, RouteRegistry] = {}

    def registry_for(self, cls: type) -> RouteRegistry:
        """Return (creating on first use) the registry of *cls*.

        A new registry inherits the entries of the nearest base class that
        already has one.
        """
        registry = self._registries.get(cls)
        if registry is None:
            parent = None
            for base in cls.__mro__[1:]:
                if base in self._registries:
                    parent = self._registries[base]
                    break
            registry = RouteRegistry(cls.__qualname__, parent=parent)
            self._registries[cls] = registry
        return registry

    def define(self, cls: type, name: str, definition: RouteDefinition) -> None:
        if definition.name != name:
            definition = definition.model_copy(update={"name": name})
        self.registry_for(cls).define(definition)

    def attach_options(self, cls: type, name: str, options: list[OptionSpec]) -> None:
        self.registry_for(cls).attach_options(name, options)

    def set_doc(self, cls: type, name: str, doc: str) -> None:
        self.registry_for(cls).set_doc(name, doc)

    def set_meta(self, cls: type, name: str, key: str, value: str) -> None:
        self.registry_for(cls).set_meta(name, key, value)

    def lookup(self, cls: type, name: str) -> Optional[RouteDefinition]:
        return self.registry_for(cls).lookup(name)

    def options_for(self, cls: type, name: str) -> Optional[list[OptionSpec]]:
        return self.registry_for(cls).options_for(name)

    def all_for(self, cls: type) -> list[tuple[str, RouteDefinition]]:
        return self.registry_for(cls).all()


METADATA = MetadataStore()
"""The store every :class:`~routeclient.client.Client` subclass registers into."""
