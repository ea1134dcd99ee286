"""Plugin-free loader runtime (source of truth).

The module exposes :class:`BaseLoader`, which discovers controller modules
below a directory and registers their actions on a router. Subclasses add
collector plugins but must preserve these semantics.

Constructor
-----------
Constructor signature::

    BaseLoader(router=None, *, logger=None, collectors=None,
               extension=".py", file_filter=None, cwd=None,
               require_controller_decorator=False,
               controller_construction_options=None,
               resolve_class=None, instantiate=None, filter_actions=None,
               process_action=None, normalize_middleware=None,
               ensure_path=None, register_route=None)

- Options are merged over class defaults with ``SmartOptions``; ``None``
  means "keep the default". Unknown option names raise ``TypeError``.
- Hook options replace the bound default method of the same name on the
  instance, so every hook is always callable. Subclasses may override the
  methods instead. Hooks receive the same arguments as the methods, minus
  ``self``.
- ``router=None`` installs a fresh :class:`RouteTable`. A ``RouterAdapter``
  may be passed directly; any other object is wrapped in one.
- ``file_filter`` is normalized by ``make_file_filter``.

Pipeline
--------
``load(path)``: resolves ``path`` against ``cwd`` when relative, walks the
files, then per file ``process_file`` → ``process_class`` →
``process_instance``. Returns the processed ``ControllerInstanceInfo`` list
(the loader keeps none of them).

``process_class(cls, file)``:

1. controller options from the registry; missing → skip when
   ``require_controller_decorator`` else ``{}``.
2. ``instantiate(cls, controller_construction_options)``; ``None`` → skip.
3. actions declared on the instance; ``None`` or empty → skip.
4. ``filter_actions(actions, controller)``.

``process_action(action, info)``:

1. collectors run in registration order as ``collect(controller, action,
   middleware)``; the first falsy verdict drops this action only.
2. ``normalize_middleware(middleware)``, then the bound handler is appended.
3. ``ensure_path(action=, file=, class_name=, controller_options=)``.
4. ``register_route(action=, path=, middleware=, controller_name=,
   controller_options=)``.

Returns the registered path, or ``None`` when a collector vetoed.

Path rules (``ensure_path``)
----------------------------
- explicit path with ``prefix`` → ``join_path(prefix, path)``;
- explicit path alone → verbatim;
- no (or empty) explicit path → ``join_path("/", dirname, basename, name)``;
  the prefix never applies here.

``join_path`` concatenates non-empty segments with ``/`` and normalizes the
result (duplicate slashes, ``.``, ``..``). An absolute later segment does not
discard the earlier ones.

Invariants
----------
- Discovery errors and import errors propagate; ``load`` never returns partial
  results for a failing tree.
- Registration order within a controller equals post-filter declaration order.
- A veto affects exactly one action.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from smartseeds import SmartOptions
from smartseeds.typeutils import safe_is_instance

from . import resolver
from .adapter import RouterAdapter, RouteTable
from .files import FileInfo, make_file_filter, walk_files
from .metadata import Action, metadata_store

__all__ = ["BaseLoader", "CollectFn", "ControllerInstanceInfo", "join_path"]

CollectFn = Callable[[Any, Action, List[Any]], bool]

_OPTION_DEFAULTS: Dict[str, Any] = {
    "extension": ".py",
    "file_filter": None,
    "cwd": None,
    "require_controller_decorator": False,
    "controller_construction_options": None,
}

_HOOKS = (
    "resolve_class",
    "instantiate",
    "filter_actions",
    "process_action",
    "normalize_middleware",
    "ensure_path",
    "register_route",
)

_SLASHES = re.compile(r"/+")


def join_path(*segments: Optional[str]) -> str:
    """Join URL path segments and normalize the result."""
    parts = [segment for segment in segments if segment]
    if not parts:
        return "."
    joined = _SLASHES.sub("/", "/".join(parts))
    normalized = posixpath.normpath(joined)
    if joined.endswith("/") and normalized != "/":
        normalized += "/"
    return normalized


@dataclass
class ControllerInstanceInfo:
    """Everything the pipeline knows about one discovered controller."""

    file: FileInfo
    cls: type
    class_name: str
    options: Dict[str, Any]
    instance: Any
    actions: List[Action] = field(default_factory=list)


class BaseLoader:
    """Discover controllers below a directory and register their actions."""

    def __init__(
        self,
        router: Any = None,
        *,
        logger: Optional[logging.Logger] = None,
        collectors: Optional[List[CollectFn]] = None,
        **options: Any,
    ) -> None:
        unknown = set(options) - set(_OPTION_DEFAULTS) - set(_HOOKS)
        if unknown:
            raise TypeError(f"Unknown loader options: {', '.join(sorted(unknown))}")
        opts = SmartOptions(
            {
                key: value
                for key, value in options.items()
                if key in _OPTION_DEFAULTS and value is not None
            },
            defaults=_OPTION_DEFAULTS,
        )
        self.logger = logger or logging.getLogger("smartloader")
        self.extension: str = opts.extension
        self.cwd: Optional[str] = opts.cwd
        self.require_controller_decorator = bool(opts.require_controller_decorator)
        self.controller_construction_options = opts.controller_construction_options
        self.file_filter = make_file_filter(opts.file_filter, self.extension)
        for hook in _HOOKS:
            value = options.get(hook)
            if value is None:
                continue
            if not callable(value):
                raise TypeError(f"Loader hook '{hook}' must be callable")
            setattr(self, hook, value)

        if router is None:
            router = RouteTable()
        if safe_is_instance(router, "smartloader.core.adapter.RouterAdapter"):
            self.adapter = router
        else:
            self.adapter = RouterAdapter(router, logger=self.logger)
        self.router = self.adapter.router

        self._collectors: List[CollectFn] = []
        for collect in collectors or ():
            self.add_middleware_collector(collect)

    # ------------------------------------------------------------------
    # Collectors
    # ------------------------------------------------------------------
    def add_middleware_collector(self, collect: CollectFn) -> "BaseLoader":
        """Append a collector; collectors run in the order they were added."""
        if not callable(collect):
            raise TypeError(f"Middleware collector must be callable, got {collect!r}")
        self._collectors.append(collect)
        return self

    def iter_collectors(self) -> List[CollectFn]:
        return list(self._collectors)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def load(self, path: str) -> List[ControllerInstanceInfo]:
        """Discover every controller below ``path`` and register its actions."""
        root = self._resolve_root(path)
        processed: List[ControllerInstanceInfo] = []
        for file in self.walk(root):
            info = self.process_file(file)
            if info is None:
                continue
            processed.append(self.process_instance(info))
        return processed

    def walk(self, root: str) -> List[FileInfo]:
        return walk_files(root, self.file_filter, self.extension)

    def _resolve_root(self, path: str) -> str:
        path = os.fspath(path)
        if self.cwd and not os.path.isabs(path):
            path = os.path.join(os.fspath(self.cwd), path)
        return os.path.abspath(path)

    # ------------------------------------------------------------------
    # Per controller
    # ------------------------------------------------------------------
    def process_file(self, file: FileInfo) -> Optional[ControllerInstanceInfo]:
        cls = self.resolve_class(file)
        if cls is None:
            self.logger.debug("No controller exported by %s", file.absolute_path)
            return None
        return self.process_class(cls, file)

    def process_class(self, cls: type, file: FileInfo) -> Optional[ControllerInstanceInfo]:
        class_name = cls.__name__
        ctrl_opts = metadata_store.get_controller_options(cls)
        if ctrl_opts is None:
            if self.require_controller_decorator:
                self.logger.debug("Skipping %s: not declared as a controller", class_name)
                return None
            ctrl_opts = {}

        instance = self.instantiate(cls, self.controller_construction_options)
        if instance is None:
            self.logger.debug("Skipping %s: construction returned no instance", class_name)
            return None

        actions = metadata_store.get_actions(instance)
        if not actions:
            self.logger.debug("Skipping %s: no actions declared", class_name)
            return None

        actions = list(self.filter_actions(actions, instance))
        return ControllerInstanceInfo(
            file=file,
            cls=cls,
            class_name=class_name,
            options=ctrl_opts,
            instance=instance,
            actions=actions,
        )

    def process_instance(self, info: ControllerInstanceInfo) -> ControllerInstanceInfo:
        for action in info.actions:
            self.process_action(action, info)
        return info

    # ------------------------------------------------------------------
    # Per action
    # ------------------------------------------------------------------
    def process_action(self, action: Action, info: ControllerInstanceInfo) -> Optional[str]:
        middleware: List[Any] = []
        for collect in self._collectors:
            if not collect(info.instance, action, middleware):
                self.logger.debug(
                    "Route %s.%s vetoed by %r", info.class_name, action.name, collect
                )
                return None

        middleware = list(self.normalize_middleware(middleware))
        middleware.append(action.bind(info.instance))

        path = self.ensure_path(
            action=action,
            file=info.file,
            class_name=info.class_name,
            controller_options=info.options,
        )
        self.register_route(
            action=action,
            path=path,
            middleware=middleware,
            controller_name=info.class_name,
            controller_options=info.options,
        )
        return path

    # ------------------------------------------------------------------
    # Default hooks
    # ------------------------------------------------------------------
    def resolve_class(self, file: FileInfo) -> Optional[type]:
        return resolver.resolve_class(file)

    def instantiate(self, cls: type, options: Any) -> Any:
        return resolver.instantiate(cls, options)

    def filter_actions(self, actions: List[Action], controller: Any) -> List[Action]:
        return actions

    def normalize_middleware(self, middleware: List[Any]) -> List[Any]:
        return middleware

    def ensure_path(
        self,
        *,
        action: Action,
        file: FileInfo,
        class_name: str,
        controller_options: Dict[str, Any],
    ) -> str:
        if action.path:
            prefix = controller_options.get("prefix")
            if prefix:
                return join_path(prefix, action.path)
            return action.path
        return join_path("/", file.dirname, file.basename, action.name)

    def register_route(
        self,
        *,
        action: Action,
        path: str,
        middleware: List[Any],
        controller_name: str,
        controller_options: Dict[str, Any],
    ) -> None:
        self.adapter.register(action.method, path, middleware)
