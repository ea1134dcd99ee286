"""Declaration helpers for controllers and actions (source of truth).

Method decorators only attach markers to the function; the registry in
:mod:`smartloader.core.metadata` reads them back on lookup.

``route(method, path=None, **metadata)``

- Returns a decorator storing a payload dict on the function under
  ``TARGET_ATTR_NAME`` (a list, appended so one function may carry several
  verbs). The payload holds ``method`` (upper-cased, validated eagerly so a
  typo fails at import time), ``path`` and every extra keyword verbatim
  (``middleware=[...]``, ``enabled=False``, ...).
- The function is returned unchanged aside from the marker.
- ``http`` is an alias; ``GET``, ``POST``, ``PUT``, ``DELETE``, ``HEAD``,
  ``PATCH`` and ``OPTIONS`` are verb-bound shortcuts taking ``(path=None,
  **metadata)``.

``controller(prefix=None, **options)``

- Class decorator registering controller options via ``define_controller``.
  ``prefix`` is stored only when given.

``define_controller(cls, options=None)`` / ``define_actions(cls, actions)``

- Explicit registration API for classes that do not use decorators.
  ``define_actions`` accepts ``Action`` objects, dicts with ``name``,
  ``method``, optional ``path`` and ``handler``, or ``(method, path,
  handler)`` tuples whose handler is a function defined on the class.
  When no handler is given the class attribute named ``name`` is captured.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, Iterable, Optional

from .metadata import (
    ACTIONS,
    CONTROLLER,
    HTTP_METHODS,
    TARGET_ATTR_NAME,
    Action,
    metadata_store,
)

__all__ = [
    "DELETE",
    "GET",
    "HEAD",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
    "controller",
    "define_actions",
    "define_controller",
    "http",
    "route",
]


def route(method: str, path: Optional[str] = None, **metadata: Any) -> Callable:
    """Mark a controller method as an action.

    Args:
        method: HTTP verb, case-insensitive.
        path: Optional explicit route path; empty means "derive from file location".
    """
    verb = str(method).strip().upper()
    if verb not in HTTP_METHODS:
        raise ValueError(
            f"Unsupported HTTP method {method!r}. Expected one of: {', '.join(HTTP_METHODS)}"
        )

    def decorator(func: Callable) -> Callable:
        markers = list(getattr(func, TARGET_ATTR_NAME, []))
        payload: Dict[str, Any] = {"method": verb, "path": path}
        for key, value in metadata.items():
            payload[key] = value
        markers.append(payload)
        setattr(func, TARGET_ATTR_NAME, markers)
        return func

    return decorator


http = route


def _verb(method: str) -> Callable:
    def shortcut(path: Optional[str] = None, **metadata: Any) -> Callable:
        return route(method, path, **metadata)

    shortcut.__name__ = shortcut.__qualname__ = method
    shortcut.__doc__ = f"Mark a controller method as a ``{method}`` action."
    return shortcut


GET = _verb("GET")
POST = _verb("POST")
PUT = _verb("PUT")
DELETE = _verb("DELETE")
HEAD = _verb("HEAD")
PATCH = _verb("PATCH")
OPTIONS = _verb("OPTIONS")


def controller(prefix: Optional[str] = None, **options: Any) -> Callable[[type], type]:
    """Class decorator declaring a controller (optionally with a path prefix)."""

    def decorator(cls: type) -> type:
        opts = dict(options)
        if prefix is not None:
            opts["prefix"] = prefix
        define_controller(cls, opts)
        return cls

    return decorator


def define_controller(cls: type, options: Optional[Dict[str, Any]] = None) -> None:
    metadata_store.set_metadata(CONTROLLER, cls, options or {})


def define_actions(cls: type, actions: Iterable[Any]) -> None:
    """Register an explicit action table for ``cls`` (replaces previous tables)."""
    metadata_store.set_metadata(ACTIONS, cls, [_coerce_action(cls, item) for item in actions])


def _coerce_action(cls: type, item: Any) -> Action:
    if isinstance(item, Action):
        return item
    if isinstance(item, dict):
        data = dict(item)
        handler = data.pop("handler", None)
        name = data.pop("name", None) or getattr(handler, "__name__", None)
        method = data.pop("method")
        path = data.pop("path", None)
        return Action(
            name=name,
            method=method,
            path=path,
            func=handler or _class_function(cls, name),
            metadata=data,
        )
    if isinstance(item, (tuple, list)) and len(item) == 3:
        method, path, handler = item
        if not callable(handler):
            raise TypeError(f"Action handler must be callable, got {handler!r}")
        return Action(name=handler.__name__, method=method, path=path, func=handler)
    raise TypeError(f"Unsupported action declaration: {item!r}")


def _class_function(cls: type, name: Optional[str]) -> Optional[Callable]:
    if not name:
        return None
    value = inspect.getattr_static(cls, name, None)
    return value if inspect.isfunction(value) else None
