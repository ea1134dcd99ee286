"""Core runtime aggregator (source of truth).

Purpose: expose the runtime building blocks from a single module. No extra
logic beyond imports/exports.

Guarantees
----------
- Importing this module performs only imports; it does not register plugins,
  touch the filesystem or instantiate loaders.
- Public API mirrors underlying modules 1:1:
  * ``files`` → ``FileInfo``, ``walk_files``
  * ``metadata`` → ``Action``, ``get_metadata``/``set_metadata``
  * ``decorators`` → ``controller``, ``route``/``http``, verb shortcuts,
    ``define_controller``, ``define_actions``
  * ``adapter`` → ``RouterAdapter``, ``RouteTable``
  * ``base_loader`` → ``BaseLoader`` (plugin-free pipeline)
  * ``loader`` → ``Loader`` (plugin-enabled)
"""

from .adapter import Route, RouterAdapter, RouteTable
from .base_loader import BaseLoader, ControllerInstanceInfo, join_path
from .decorators import (
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    controller,
    define_actions,
    define_controller,
    http,
    route,
)
from .files import FileInfo, walk_files
from .loader import Loader
from .metadata import Action, get_metadata, set_metadata

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
    "Route",
    "RouteTable",
    "RouterAdapter",
    "controller",
    "define_actions",
    "define_controller",
    "get_metadata",
    "http",
    "join_path",
    "route",
    "set_metadata",
    "walk_files",
]
