"""Classify the arguments of a generated operation into request parts.

A generated operation accepts a heterogeneous argument list::

    client.obj("this", 27)                        # GET /obj/this/27
    client.obj("this", {"set": "x"})              # POST /obj/this, JSON body
    client.items("--limit", 10, "--tag", "a")     # GET /items?limit=10&tag=a
    client.items("-range", (1, 100))              # Range: items=1-100
    client.upload("raw text", {"X-Kind": "t"})    # POST-declared: raw body + headers
    client.obj("this", on_done)                   # async, callback

:func:`classify` walks the arguments left to right and turns each one into a
tagged variant (:class:`PathSegment`, :class:`QueryFlag`,
:class:`HeaderFlag`, :class:`JsonBody`, :class:`RawBody`,
:class:`Callback`), tracking the effective HTTP method as it goes because a
mapping argument promotes the request to POST and changes how the remaining
arguments are read. :func:`fold` then folds the variants into a
:class:`PreparedRequest`.

**Classification rules**, first match wins:

1. A mapping -- method becomes POST, JSON body.
2. A callable -- completion callback (at most one).
3. ``"--name"`` while GET -- query pair with the next argument. Repeats
   add pairs; a list or tuple value adds one pair per item.
4. ``"-name"`` while GET -- header with the next argument; a two-item
   list/tuple becomes ``items=<first>-<second>``.
5. Any scalar while POST and no body yet -- raw body; a mapping right after
   it is consumed as extra headers.
6. Anything else -- a path segment.

Before the walk, a POST whose arguments contain any ``"--name"`` flag has
all of its (non-callback) arguments paired into one mapping, so flag syntax
can submit a JSON object: ``client.obj_search("--name", "x")`` posts
``{"name": "x"}``.

A ``None`` argument is skipped where it stands. A flag whose value is
``None`` still consumes that value and adds no query pair or header, so
``client.items("--tag", None, "red")`` requests ``/items/red``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence, Union

import httpx

from routeclient.exceptions import TransportError


@dataclass(frozen=True)
class PathSegment:
    value: str


@dataclass(frozen=True)
class QueryFlag:
    name: str
    value: Any


@dataclass(frozen=True)
class HeaderFlag:
    name: str
    value: str


@dataclass(frozen=True)
class JsonBody:
    payload: Any


@dataclass(frozen=True)
class RawBody:
    content: Any
    headers: Optional[dict[str, str]] = None


@dataclass(frozen=True)
class Callback:
    fn: Callable[..., Any]


Argument = Union[PathSegment, QueryFlag, HeaderFlag, JsonBody, RawBody, Callback]


@dataclass
class PreparedRequest:
    """Everything needed to build one HTTP request.

    Built fresh for every call (and again for the auth retry); never reused.

    Attributes:
        method: Effective HTTP method after promotion.
        url: Absolute URL without query string.
        query: Ordered ``(name, value)`` pairs; names may repeat.
        headers: Request headers.
        body: Encoded body, or ``None``.
        callback: Completion callback for asynchronous mode.
        userinfo: ``(username, password)`` to embed in the URL.
    """

    method: str
    url: str
    query: list[tuple[str, Any]] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)
    body: Optional[Union[str, bytes]] = None
    callback: Optional[Callable[..., Any]] = None
    userinfo: Optional[tuple[str, str]] = None

    def to_url(self) -> httpx.URL:
        """Return the final URL with query string and embedded userinfo.

        Raises:
            TransportError: If the URL is malformed.
        """
        try:
            url = httpx.URL(self.url)
            if self.query:
                url = url.copy_merge_params(self.query)
            if self.userinfo is not None:
                username, password = self.userinfo
                url = url.copy_with(username=username, password=password)
        except httpx.InvalidURL as exc:
            raise TransportError(f"Invalid URL {self.url!r}: {exc}") from exc
        return url


def _is_flag(arg: Any, prefix: str) -> bool:
    return isinstance(arg, str) and len(arg) > len(prefix) and arg.startswith(prefix)


def _collect_flag_map(args: list[Any]) -> list[Any]:
    """Pair every non-callback argument into a single mapping.

    ``["--name", "x", "--size", 3]`` -> ``[{"name": "x", "size": 3}]``.
    Mapping arguments are merged in; callbacks keep their place after the
    mapping. Pairing is positional, so a ``None`` value is kept as JSON
    ``null``; a trailing key without a value maps to ``None`` as well. A
    ``None`` in key position drops its pair.
    """
    payload: dict[str, Any] = {}
    callbacks: list[Any] = []
    pending: list[Any] = []
    for arg in args:
        if isinstance(arg, Mapping):
            payload.update(arg)
        elif callable(arg):
            callbacks.append(arg)
        else:
            pending.append(arg)
    for i in range(0, len(pending), 2):
        key = pending[i]
        if key is None:
            continue
        if isinstance(key, str) and key.startswith("--"):
            key = key[2:]
        payload[str(key)] = pending[i + 1] if i + 1 < len(pending) else None
    return [payload, *callbacks]


def classify(method: str, args: Sequence[Any]) -> tuple[str, list[Argument]]:
    """Classify *args* for a call declared with *method*.

    Returns:
        ``(effective_method, variants)``.

    Raises:
        TypeError: If more than one callback is passed.
    """
    method = method.upper()
    items = list(args)
    if method == "POST" and any(_is_flag(arg, "--") for arg in items):
        items = _collect_flag_map(items)

    variants: list[Argument] = []
    has_body = False
    has_callback = False
    i = 0
    while i < len(items):
        arg = items[i]
        i += 1

        if arg is None:
            continue

        if isinstance(arg, Mapping):
            method = "POST"
            variants.append(JsonBody(dict(arg)))
            has_body = True

        elif callable(arg):
            if has_callback:
                raise TypeError("only one callback may be passed to an operation")
            variants.append(Callback(arg))
            has_callback = True

        elif method == "GET" and _is_flag(arg, "--"):
            value = items[i] if i < len(items) else ""
            i += 1
            name = arg[2:]
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                variants.extend(QueryFlag(name, item) for item in value)
            else:
                variants.append(QueryFlag(name, value))

        elif method == "GET" and _is_flag(arg, "-"):
            value = items[i] if i < len(items) else ""
            i += 1
            if value is None:
                continue
            if isinstance(value, (list, tuple)) and len(value) == 2:
                value = f"items={value[0]}-{value[1]}"
            variants.append(HeaderFlag(arg[1:], str(value)))

        elif method == "POST" and not has_body:
            headers = None
            if i < len(items) and isinstance(items[i], Mapping):
                headers = {str(k): str(v) for k, v in items[i].items()}
                i += 1
            variants.append(RawBody(arg, headers))
            has_body = True

        else:
            variants.append(PathSegment(str(arg)))

    return method, variants


def fold(method: str, url: str, variants: Sequence[Argument]) -> PreparedRequest:
    """Fold classified *variants* into a :class:`PreparedRequest` for *url*."""
    request = PreparedRequest(method=method, url=url)
    segments: list[str] = []

    for variant in variants:
        if isinstance(variant, PathSegment):
            segments.append(variant.value)
        elif isinstance(variant, QueryFlag):
            request.query.append((variant.name, variant.value))
        elif isinstance(variant, HeaderFlag):
            request.headers[variant.name] = variant.value
        elif isinstance(variant, JsonBody):
            request.body = json.dumps(variant.payload).encode("utf-8")
            request.headers["Content-Type"] = "application/json"
        elif isinstance(variant, RawBody):
            content = variant.content
            request.body = content if isinstance(content, (str, bytes)) else str(content)
            if variant.headers:
                request.headers.update(variant.headers)
        elif isinstance(variant, Callback):
            request.callback = variant.fn

    if segments:
        request.url = "/".join([url.rstrip("/"), *segments])
    return request
