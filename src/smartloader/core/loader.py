"""Loader with collector plugins (source of truth).

``Loader`` extends ``BaseLoader`` with a global plugin registry and
per-loader plugin instances. Attached plugins are middleware collectors: they
join the same ordered collector list as plain callables added with
``add_middleware_collector``.

Internal state
--------------
- ``_plugins``: instantiated plugins in the order they were attached.
- ``_plugins_by_name``: name → plugin instance.
- ``_plugin_info``: per-plugin configuration store, one ``"--base--"``
  bucket for loader-level config plus one bucket per ``"Class.action"``.

Global registry
---------------
``Loader.register_plugin(plugin_class, name=None)`` validates that
``plugin_class`` is a ``BasePlugin`` subclass with a ``plugin_code``.
Re-registering an existing code with a different class raises ``ValueError``
unless ``name`` is given explicitly (intentional replacement).
``available_plugins`` returns a shallow copy of the registry.

Attaching plugins
-----------------
``plug(plugin_name, **config)`` looks up the class by name (``ValueError``
listing available names if missing), instantiates it bound to this loader under
that registry name (so aliases stay reachable), appends it to the collectors
and returns ``self``. ``__getattr__`` exposes attached plugins by name or
raises ``AttributeError``.

The constructor accepts ``plugins=[...]`` with names or ``(name, config)``
pairs, attached in order before any ``collectors``.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Type

from smartloader.core.base_loader import BaseLoader, CollectFn
from smartloader.plugins._base_plugin import BasePlugin

__all__ = ["Loader"]

_PLUGIN_REGISTRY: Dict[str, Type[BasePlugin]] = {}


class Loader(BaseLoader):
    """Loader with plugin registry support."""

    def __init__(
        self,
        router: Any = None,
        *,
        plugins: Optional[Iterable[Any]] = None,
        collectors: Optional[List[CollectFn]] = None,
        **options: Any,
    ) -> None:
        self._plugins: List[BasePlugin] = []
        self._plugins_by_name: Dict[str, BasePlugin] = {}
        self._plugin_info: Dict[str, Dict[str, Any]] = {}
        super().__init__(router, **options)
        for item in plugins or ():
            if isinstance(item, str):
                self.plug(item)
            else:
                plugin_name, config = item
                self.plug(plugin_name, **dict(config or {}))
        for collect in collectors or ():
            self.add_middleware_collector(collect)

    # ------------------------------------------------------------------
    # Plugin registration
    # ------------------------------------------------------------------
    @classmethod
    def register_plugin(cls, plugin_class: Type[BasePlugin], name: Optional[str] = None) -> None:
        """Register a plugin class globally.

        Args:
            plugin_class: A BasePlugin subclass with plugin_code defined
            name: Optional override name. If provided, overwrites any existing
                  registration. If not provided, uses plugin_code and raises
                  if already registered with another class.
        """
        if not isinstance(plugin_class, type) or not issubclass(plugin_class, BasePlugin):
            raise TypeError("plugin_class must be a BasePlugin subclass")
        if not getattr(plugin_class, "plugin_code", None):
            raise ValueError(
                f"Plugin {plugin_class.__name__} not following standards: missing plugin_code"
            )
        code = name or plugin_class.plugin_code
        if name is None:
            existing = _PLUGIN_REGISTRY.get(code)
            if existing is not None and existing is not plugin_class:
                raise ValueError(f"Plugin '{code}' already registered")
        _PLUGIN_REGISTRY[code] = plugin_class

    @classmethod
    def available_plugins(cls) -> Dict[str, Type[BasePlugin]]:
        return dict(_PLUGIN_REGISTRY)

    def plug(self, plugin: str, **config: Any) -> "Loader":
        """Attach a plugin by name (previously registered globally)."""
        if not isinstance(plugin, str):
            raise TypeError(
                f"Plugin must be referenced by name string, got {type(plugin).__name__}"
            )
        plugin_class = _PLUGIN_REGISTRY.get(plugin)
        if plugin_class is None:
            available = ", ".join(sorted(_PLUGIN_REGISTRY)) or "none"
            raise ValueError(
                f"Unknown plugin '{plugin}'. Register it first. Available plugins: {available}"
            )
        if plugin in self._plugins_by_name:
            raise ValueError(f"Plugin '{plugin}' already attached")
        instance = plugin_class(self, name=plugin, **config)
        self._plugins.append(instance)
        self._plugins_by_name[instance.name] = instance
        self.add_middleware_collector(instance)
        return self

    def iter_plugins(self) -> List[BasePlugin]:
        """Return attached plugin instances in application order."""
        return list(self._plugins)

    def get_config(self, plugin_name: str, action_key: Optional[str] = None) -> Dict[str, Any]:
        """Return plugin config (global + per-action overrides) for an attached plugin."""
        plugin = self._plugins_by_name.get(plugin_name)
        if plugin is None:
            raise AttributeError(f"No plugin named '{plugin_name}' attached to loader")
        return plugin.configuration(action_key)

    def __getattr__(self, name: str) -> Any:
        plugins = self.__dict__.get("_plugins_by_name") or {}
        plugin = plugins.get(name)
        if plugin is None:
            raise AttributeError(f"No plugin named '{name}' attached to loader")
        return plugin
