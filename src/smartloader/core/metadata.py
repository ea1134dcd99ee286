"""Controller metadata registry (source of truth).

The registry replaces ambient reflection with an explicit side table mapping a
controller class (by identity, weakly referenced) to a :class:`ControllerRecord`
holding two records:

- ``CONTROLLER``: controller options (``dict``; recognised key ``prefix``,
  everything else passes through to loader hooks untouched).
- ``ACTIONS``: an explicit action table (``list`` of :class:`Action`).

Objects
-------
``Action``
    Dataclass describing one routable method: ``name`` (attribute name on the
    controller), ``method`` (HTTP verb, upper-cased on construction and
    validated against :data:`HTTP_METHODS`), optional explicit ``path``,
    ``func`` (handler reference captured at declaration) and ``metadata``
    (extra declaration keywords consumed by collector plugins).
    ``bind(instance)`` returns the handler bound to ``instance``.

``MetadataStore``
    - ``get_metadata(kind, target)`` / ``set_metadata(kind, target, value)``:
      ``target`` may be a class or an instance (resolved to its class).
      Reads walk the MRO so records are inherited by subclasses.
    - ``get_controller_options(target)``: copy of the first options record
      found along the MRO, ``None`` when the class was never declared a
      controller.
    - ``get_actions(target)``: the first explicit table found along the MRO,
      followed by decorator-marked methods declared on the classes that are
      more derived than that table's owner. ``None`` when nothing is declared.

Marker discovery
----------------
Method decorators store payload dicts on the function under
``TARGET_ATTR_NAME``. Discovery walks the given classes base-first and uses
``vars()`` order, so actions come out in declaration order with base-class
actions first. When a subclass redefines an attribute, the most derived
definition wins but keeps the position of the first definition. A function
carrying several markers yields one action per marker, in decoration order.
"""

from __future__ import annotations

import inspect
import weakref
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

__all__ = [
    "ACTIONS",
    "CONTROLLER",
    "HTTP_METHODS",
    "TARGET_ATTR_NAME",
    "Action",
    "ControllerRecord",
    "MetadataStore",
    "get_actions",
    "get_controller_options",
    "get_metadata",
    "metadata_store",
    "set_metadata",
]

CONTROLLER = "controller"
ACTIONS = "actions"

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "HEAD", "PATCH", "OPTIONS")

TARGET_ATTR_NAME = "__smartloader_actions__"


@dataclass
class Action:
    """One HTTP-routable method of a controller."""

    name: str
    method: str
    path: Optional[str] = None
    func: Optional[Callable] = field(default=None, compare=False, repr=False)
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Action requires a name")
        method = str(self.method).strip().upper()
        if method not in HTTP_METHODS:
            raise ValueError(
                f"Unsupported HTTP method {self.method!r} for action '{self.name}'. "
                f"Expected one of: {', '.join(HTTP_METHODS)}"
            )
        self.method = method

    def bind(self, instance: Any) -> Callable:
        """Return the handler bound to ``instance``."""
        func = self.func
        if func is None:
            return getattr(instance, self.name)
        if inspect.isfunction(func):
            return func.__get__(instance, type(instance))
        return func


@dataclass
class ControllerRecord:
    options: Optional[Dict[str, Any]] = None
    actions: Optional[List[Action]] = None


class MetadataStore:
    """Registry of controller options and action tables keyed by class."""

    __slots__ = ("_records",)

    def __init__(self) -> None:
        self._records: "weakref.WeakKeyDictionary[type, ControllerRecord]" = (
            weakref.WeakKeyDictionary()
        )

    def set_metadata(self, kind: str, target: Any, value: Any) -> None:
        cls = _as_class(target)
        record = self._records.get(cls)
        if record is None:
            record = ControllerRecord()
            self._records[cls] = record
        if kind == CONTROLLER:
            record.options = dict(value or {})
        elif kind == ACTIONS:
            record.actions = list(value or [])
        else:
            raise ValueError(f"Unknown metadata kind: {kind!r}")

    def get_metadata(self, kind: str, target: Any) -> Any:
        if kind == CONTROLLER:
            return self.get_controller_options(target)
        if kind == ACTIONS:
            return self.get_actions(target)
        raise ValueError(f"Unknown metadata kind: {kind!r}")

    def get_controller_options(self, target: Any) -> Optional[Dict[str, Any]]:
        for klass in _as_class(target).__mro__:
            record = self._records.get(klass)
            if record is not None and record.options is not None:
                return dict(record.options)
        return None

    def get_actions(self, target: Any) -> Optional[List[Action]]:
        derived: List[type] = []
        explicit: Optional[List[Action]] = None
        for klass in _as_class(target).__mro__:
            record = self._records.get(klass)
            if record is not None and record.actions is not None:
                explicit = record.actions
                break
            derived.append(klass)
        marked = list(iter_marked_actions(derived))
        if explicit is None and not marked:
            return None
        return list(explicit or []) + marked

    def is_declared(self, target: Any) -> bool:
        """True when ``target`` carries controller options or any action."""
        if self.get_controller_options(target) is not None:
            return True
        return self.get_actions(target) is not None

    def forget(self, target: Any) -> None:
        self._records.pop(_as_class(target), None)


def iter_marked_actions(classes: Sequence[type]) -> Iterator[Action]:
    """Yield actions from decorator markers found on ``classes`` (MRO slice)."""
    order: List[str] = []
    seen: set[str] = set()
    for klass in reversed(classes):
        for attr_name in vars(klass):
            if attr_name not in seen:
                seen.add(attr_name)
                order.append(attr_name)
    for attr_name in order:
        value = _lookup(classes, attr_name)
        if not inspect.isfunction(value):
            continue
        for marker in getattr(value, TARGET_ATTR_NAME, None) or ():
            payload = dict(marker)
            method = payload.pop("method")
            path = payload.pop("path", None)
            yield Action(name=attr_name, method=method, path=path, func=value, metadata=payload)


def _lookup(classes: Sequence[type], attr_name: str) -> Any:
    for klass in classes:
        base_dict = vars(klass)
        if attr_name in base_dict:
            return base_dict[attr_name]
    return None  # pragma: no cover - names come from the same classes


def _as_class(target: Any) -> type:
    if target is None:
        raise ValueError("Metadata target cannot be None")
    return target if isinstance(target, type) else type(target)


metadata_store = MetadataStore()


def get_metadata(kind: str, target: Any) -> Any:
    return metadata_store.get_metadata(kind, target)


def set_metadata(kind: str, target: Any, value: Any) -> None:
    metadata_store.set_metadata(kind, target, value)


def get_controller_options(target: Any) -> Optional[Dict[str, Any]]:
    return metadata_store.get_controller_options(target)


def get_actions(target: Any) -> Optional[List[Action]]:
    return metadata_store.get_actions(target)
