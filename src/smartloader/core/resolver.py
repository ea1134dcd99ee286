"""Controller class resolution (source of truth).

``module_name_for(file)``
    ``MODULE_NAMESPACE + "_" + <root digest>`` followed by the dotted relative
    path of the file. The digest comes from the scan root, so trees loaded from
    different roots never share a package. A path segment that is not a valid
    identifier is sanitised and suffixed with a digest of the raw segment
    (``user-info`` and ``user_info`` stay distinct).

``load_module(file)``
    Imports ``file.absolute_path`` with ``importlib.util.spec_from_file_location``
    under ``module_name_for(file)`` and registers it in ``sys.modules``. Every
    parent of that name is registered first as a package whose ``__path__`` is
    the matching directory below the scan root, so relative imports inside a
    controller (``from ._helpers import X``, ``from .. import shared``) work.
    A module already registered under that name for the same file is reused,
    which keeps class identity stable across repeated loads. Import errors
    propagate unchanged.

``default_export(module)``
    - ``module.__controller__`` when the module sets it (may be ``None`` to
      opt out explicitly).
    - otherwise the single class *defined in that module* that carries
      controller options or declared actions; imported classes are ignored.
    - ``None`` when no class qualifies; ``ValueError`` when several do.

``instantiate(cls, options)``
    ``cls()`` when ``options`` is ``None``, ``cls(options)`` otherwise. The same
    options value is handed to every controller.
"""

from __future__ import annotations

import hashlib
import importlib.machinery
import importlib.util
import inspect
import os
import re
import sys
from types import ModuleType
from typing import Any, List, Optional

from .files import FileInfo
from .metadata import metadata_store

__all__ = [
    "CONTROLLER_EXPORT_ATTR",
    "MODULE_NAMESPACE",
    "default_export",
    "instantiate",
    "load_module",
    "module_name_for",
    "resolve_class",
    "scan_root",
]

MODULE_NAMESPACE = "_smartloader_controllers"
CONTROLLER_EXPORT_ATTR = "__controller__"

_UNSAFE_CHARS = re.compile(r"\W")


def _digest(text: str, size: int = 8) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:size]


def _segments(dirname: str) -> List[str]:
    return [part for part in dirname.split("/") if part]


def _safe_segment(part: str) -> str:
    safe = _UNSAFE_CHARS.sub("_", part)
    if safe == part:
        return part
    return f"{safe}_{_digest(part, 6)}"


def scan_root(file: FileInfo) -> str:
    """Directory the file was discovered from (``dirname`` stripped off)."""
    root = os.path.dirname(file.absolute_path)
    for _ in _segments(file.dirname):
        root = os.path.dirname(root)
    return root


def module_name_for(file: FileInfo) -> str:
    package = f"{MODULE_NAMESPACE}_{_digest(os.path.normcase(scan_root(file)))}"
    parts = _segments(file.dirname) + [file.basename]
    return ".".join([package] + [_safe_segment(part) for part in parts])


def _ensure_packages(file: FileInfo, module_name: str) -> None:
    """Register the parent packages of ``module_name`` with their directories."""
    names = module_name.split(".")[:-1]
    directory = scan_root(file)
    directories = [directory]
    for part in _segments(file.dirname):
        directory = os.path.join(directory, part)
        directories.append(directory)

    parent: Optional[ModuleType] = None
    for depth, path in enumerate(directories):
        name = ".".join(names[: depth + 1])
        package = sys.modules.get(name)
        if package is None or path not in list(getattr(package, "__path__", None) or ()):
            spec = importlib.machinery.ModuleSpec(name, None, is_package=True)
            spec.submodule_search_locations = [path]
            package = importlib.util.module_from_spec(spec)
            sys.modules[name] = package
        if parent is not None:
            setattr(parent, names[depth], package)
        parent = package


def load_module(file: FileInfo) -> ModuleType:
    """Import the module stored at ``file.absolute_path``."""
    module_name = module_name_for(file)
    cached = sys.modules.get(module_name)
    if cached is not None and _same_file(getattr(cached, "__file__", None), file.absolute_path):
        return cached
    _ensure_packages(file, module_name)
    spec = importlib.util.spec_from_file_location(module_name, file.absolute_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load controller module from {file.absolute_path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module


def _same_file(left: Optional[str], right: str) -> bool:
    if not left:
        return False
    return os.path.normcase(os.path.abspath(left)) == os.path.normcase(right)


def default_export(module: ModuleType) -> Optional[type]:
    """Return the controller class exported by ``module`` (``None`` if none)."""
    if hasattr(module, CONTROLLER_EXPORT_ATTR):
        return getattr(module, CONTROLLER_EXPORT_ATTR)
    candidates = [
        value
        for value in vars(module).values()
        if inspect.isclass(value)
        and value.__module__ == module.__name__
        and metadata_store.is_declared(value)
    ]
    if not candidates:
        return None
    if len(candidates) > 1:
        names = ", ".join(cls.__name__ for cls in candidates)
        raise ValueError(
            f"Module {module.__name__!r} defines several controllers ({names}); "
            f"set {CONTROLLER_EXPORT_ATTR} to pick one"
        )
    return candidates[0]


def resolve_class(file: FileInfo) -> Optional[type]:
    return default_export(load_module(file))


def instantiate(cls: type, options: Any = None) -> Any:
    if options is None:
        return cls()
    return cls(options)
