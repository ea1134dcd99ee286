"""SmartLoader public API surface (source of truth).

Recreate the module with these rules:
- Public exports: ``Loader``, ``BaseLoader``, the declaration helpers
  (``controller``, ``route``, ``http`` and the verb shortcuts), the explicit
  registration API (``define_controller``, ``define_actions``), the data
  types (``Action``, ``FileInfo``, ``ControllerInstanceInfo``) and the router
  helpers (``RouterAdapter``, ``RouteTable``).
- Plugin registration: import built-in plugins (``middleware``, ``guard``)
  for their side effect of calling ``Loader.register_plugin``. Imports are
  done lazily via ``import_module`` to avoid cycles.

Constraints
-----------
- Import must stay lightweight: no filesystem access and no loader
  instantiation beyond plugin registration.
- Version string lives here as ``__version__``.
"""

from importlib import import_module

__version__ = "0.1.0"

from .core import (
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    Action,
    BaseLoader,
    ControllerInstanceInfo,
    FileInfo,
    Loader,
    RouterAdapter,
    RouteTable,
    controller,
    define_actions,
    define_controller,
    http,
    route,
)

# Import plugins to trigger auto-registration (lazy to avoid cycles)
for _plugin in ("middleware", "guard"):
    import_module(f"{__name__}.plugins.{_plugin}")
del _plugin

__all__ = [
    "Action",
    "BaseLoader",
    "ControllerInstanceInfo",
    "DELETE",
    "FileInfo",
    "GET",
    "HEAD",
    "Loader",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
    "RouteTable",
    "RouterAdapter",
    "controller",
    "define_actions",
    "define_controller",
    "http",
    "route",
]
