"""Guard plugin (source of truth).

Vetoes route registration for selected actions, leaving sibling actions
untouched. An action is dropped when any of these holds, checked in order:

- it was declared with ``enabled=False`` (``@GET(enabled=False)``);
- ``include`` patterns are configured and none matches its key;
- one of the ``exclude`` patterns matches its key;
- ``check(controller, action)`` is configured and returns a falsy value.

Keys have the form ``"ClassName.action_name"``; patterns use ``fnmatchcase``
and may be given as a list or a comma-separated string.

Configuration: ``enabled`` (default True), ``include``, ``exclude``,
``check``. Registers itself globally as ``"guard"``.
"""

from __future__ import annotations

import logging
from fnmatch import fnmatchcase
from typing import Any, Callable, Dict, List, Optional, Union

from smartloader.core.loader import Loader
from smartloader.core.metadata import Action
from smartloader.plugins._base_plugin import BasePlugin, action_key

logger = logging.getLogger("smartloader")


def _patterns(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(item).strip() for item in value if str(item).strip()]


class GuardPlugin(BasePlugin):
    """Veto registration of actions by name pattern, flag or predicate."""

    plugin_code = "guard"
    plugin_description = "Vetoes actions by name pattern, declaration flag or predicate"

    def configure(
        self,
        enabled: bool = True,
        include: Optional[Union[str, List[str]]] = None,
        exclude: Optional[Union[str, List[str]]] = None,
        check: Optional[Callable[..., Any]] = None,
    ):
        """Storage is handled by the wrapper added in __init_subclass__."""
        pass

    def collect(
        self, controller: Any, action: Action, middleware: List[Any], config: Dict[str, Any]
    ) -> bool:
        allowed = self.allows(controller, action, config)
        if not allowed:
            logger.debug("guard: %s not registered", action_key(controller, action))
        return allowed

    def allows(self, controller: Any, action: Action, config: Dict[str, Any]) -> bool:
        if action.metadata.get("enabled") is False:
            return False
        key = action_key(controller, action)
        include = _patterns(config.get("include"))
        if include and not any(fnmatchcase(key, pattern) for pattern in include):
            return False
        if any(fnmatchcase(key, pattern) for pattern in _patterns(config.get("exclude"))):
            return False
        check = config.get("check")
        if check is not None and not check(controller, action):
            return False
        return True


Loader.register_plugin(GuardPlugin)
