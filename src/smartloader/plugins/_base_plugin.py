"""Collector plugin contract used by the Loader pipeline.

Source of truth
---------------
``BasePlugin``
    Base class every collector plugin *must* subclass. A plugin instance is
    itself a middleware collector: the loader calls it as
    ``plugin(controller, action, middleware)`` and a falsy result drops the
    action.

    Required class attributes:

    - ``plugin_code`` – unique identifier used for registration (e.g. "guard")
    - ``plugin_description`` – human-readable description of the plugin

    Constructor signature: ``BasePlugin(loader, *, name=None, **config)``.
    ``name`` is the registry key the plugin was attached under (defaults to
    ``plugin_code``); ``**config`` is passed to ``configure()``.

    ``configure(**config)``
        Define accepted configuration parameters via method signature. The
        method is wrapped by ``__init_subclass__`` to:
        - parse ``flags`` (e.g. ``"enabled,strict:off"``) into booleans;
        - honour ``_target``: ``"--base--"`` (default) for loader-level
          config, ``"Class.action"`` for one action, ``"A.x,B.y"`` for several;
        - validate parameters with Pydantic's ``validate_call``;
        - write the config into the loader's ``_plugin_info`` store.

    ``configuration(key=None)``
        Merged configuration (loader-level + optional per-action override).

    ``collect(controller, action, middleware, config)`` (default: allow)
        Append to ``middleware`` and/or return ``False`` to veto. ``config``
        is the merged configuration for this action. Not called at all when
        the effective ``enabled`` flag is false.

Design constraints
~~~~~~~~~~~~~~~~~~
* The Loader only imports this module (not the concrete plugins) to avoid
  circular dependencies.
* Configuration storage lives on the loader so every plugin behaves the same
  way and can be inspected in one place.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from pydantic import validate_call

from smartloader.core.metadata import Action

__all__ = ["BasePlugin", "action_key"]

BASE_TARGET = "--base--"


def action_key(controller: Any, action: Action) -> str:
    """``"ClassName.action_name"`` used for per-action config and patterns."""
    cls = controller if isinstance(controller, type) else type(controller)
    return f"{cls.__name__}.{action.name}"


def _wrap_configure(original_configure: Callable) -> Callable:
    """Wrap a plugin's configure() to handle flags, _target, validation and storage."""
    validated = validate_call(original_configure)

    def wrapper(
        self: "BasePlugin", *, _target: str = BASE_TARGET, flags: Optional[str] = None, **kwargs: Any
    ) -> None:
        if flags:
            kwargs.update(self._parse_flags(flags))

        if "," in _target:
            for target in [t.strip() for t in _target.split(",") if t.strip()]:
                wrapper(self, _target=target, **kwargs)
            return

        validated(self, **kwargs)
        self._write_config(_target, kwargs)

    wrapper.__doc__ = original_configure.__doc__
    return wrapper


class BasePlugin:
    """Collector hook + configuration helpers for loader plugins."""

    __slots__ = ("name", "_loader")

    plugin_code: str = ""
    plugin_description: str = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "configure" in cls.__dict__:
            cls.configure = _wrap_configure(cls.__dict__["configure"])

    def __init__(self, loader: Any, *, name: Optional[str] = None, **config: Any):
        self.name = name or self.plugin_code
        self._loader = loader
        self._init_store()
        self.configure(**config)

    def __call__(self, controller: Any, action: Action, middleware: List[Any]) -> bool:
        config = self.configuration(action_key(controller, action))
        if not config.get("enabled", True):
            return True
        return bool(self.collect(controller, action, middleware, config))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    def _init_store(self) -> None:
        store = self._get_store()
        store.setdefault(self.name, {}).setdefault(BASE_TARGET, {"config": {"enabled": True}})

    def configure(self, *, _target: str = BASE_TARGET, flags: Optional[str] = None) -> None:
        """Override in subclasses to define accepted configuration parameters."""
        if flags:
            self._write_config(_target, self._parse_flags(flags))

    def _write_config(self, target: str, config: Dict[str, Any]) -> None:
        if not config:
            return
        store = self._get_store()
        bucket = store.setdefault(self.name, {}).setdefault(target, {"config": {}})
        bucket["config"].update(config)

    def configuration(self, key: Optional[str] = None) -> Dict[str, Any]:
        """Read merged configuration (base + optional per-action override)."""
        plugin_bucket = self._get_store().get(self.name)
        if not plugin_bucket:
            return {}
        merged = dict(plugin_bucket.get(BASE_TARGET, {}).get("config", {}))
        if key:
            merged.update(plugin_bucket.get(key, {}).get("config", {}))
        return merged

    def _parse_flags(self, flags: str) -> Dict[str, bool]:
        mapping: Dict[str, bool] = {}
        for chunk in flags.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            if ":" in chunk:
                name, value = chunk.split(":", 1)
                mapping[name.strip()] = value.strip().lower() != "off"
            else:
                mapping[chunk] = True
        return mapping

    def collect(
        self, controller: Any, action: Action, middleware: List[Any], config: Dict[str, Any]
    ) -> bool:  # pragma: no cover - default allows everything
        """Contribute to ``middleware`` or veto the action."""
        return True

    def _get_store(self) -> Dict[str, Any]:
        return getattr(self._loader, "_plugin_info")
