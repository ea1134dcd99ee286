"""Declared-middleware plugin (source of truth).

Responsibilities
----------------
- Append middleware declared at class-definition time to the chain:
  * controller level: ``@controller(middleware=[...])`` (controller options);
  * action level: ``@GET("/x", middleware=[...])`` (action metadata).
  Controller-level middleware comes first. A single callable is accepted in
  place of a list.
- Never vetoes.

Configuration
-------------
``enabled`` (default True), ``controller_level`` (default True),
``action_level`` (default True), ``key`` (default ``"middleware"``: the
option/metadata key to read). Per-action overrides via
``loader.middleware.configure(_target="Class.action", ...)``.

Registration
------------
Registers itself globally as ``"middleware"`` at import time.
"""

from __future__ import annotations

from typing import Any, Dict, List

from smartloader.core.loader import Loader
from smartloader.core.metadata import Action, metadata_store
from smartloader.plugins._base_plugin import BasePlugin


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class MiddlewarePlugin(BasePlugin):
    """Collect middleware declared on controllers and actions."""

    plugin_code = "middleware"
    plugin_description = "Adds middleware declared on controllers and actions"

    def configure(
        self,
        enabled: bool = True,
        controller_level: bool = True,
        action_level: bool = True,
        key: str = "middleware",
    ):
        """Storage is handled by the wrapper added in __init_subclass__."""
        pass

    def collect(
        self, controller: Any, action: Action, middleware: List[Any], config: Dict[str, Any]
    ) -> bool:
        key = config.get("key", "middleware")
        if config.get("controller_level", True):
            options = metadata_store.get_controller_options(controller) or {}
            middleware.extend(_as_list(options.get(key)))
        if config.get("action_level", True):
            middleware.extend(_as_list(action.metadata.get(key)))
        return True


Loader.register_plugin(MiddlewarePlugin)
