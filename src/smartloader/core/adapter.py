"""Router adapter and recording router (source of truth).

``RouterAdapter(router, *, logger=None)``
    ``register(method, path, middleware)`` looks up the router's registration
    callable named after the lower-cased verb and invokes it as
    ``fn(path, *middleware)``. Verbs are not validated in advance: a router
    without the attribute raises ``AttributeError`` to the caller. After the
    call it emits ``Register Route "<VERB> <path>"``.

    Sink rule: ``logger.info(message)`` when the logger reports handlers via
    ``hasHandlers()``, otherwise ``print(message)`` so the line is never
    dropped. The default logger is ``logging.getLogger("smartloader")``.

``RouteTable``
    Router-compatible recorder exposing one method per verb (``get``,
    ``post``, ...). Every call appends a :class:`Route` to ``routes``;
    ``find(method, path)`` returns the first match or ``None``. Used by the
    loader when no router is configured, and handy for dry runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

__all__ = ["Route", "RouteTable", "RouterAdapter"]


class RouterAdapter:
    """Translate ``(method, path, middleware)`` into a router call."""

    __slots__ = ("router", "_logger")

    def __init__(self, router: Any, *, logger: Optional[logging.Logger] = None):
        if router is None:
            raise ValueError("RouterAdapter requires a router")
        self.router = router
        self._logger = logger or logging.getLogger("smartloader")

    def register(self, method: str, path: str, middleware: Sequence[Callable]) -> None:
        register = getattr(self.router, method.lower())
        register(path, *middleware)
        self._emit(f'Register Route "{method.upper()} {path}"')

    def _emit(self, message: str) -> None:
        logger = self._logger
        has_handlers = getattr(logger, "hasHandlers", None) or getattr(
            logger, "has_handlers", None
        )
        if callable(has_handlers) and has_handlers():
            logger.info(message)
        else:
            print(message)


@dataclass(frozen=True)
class Route:
    method: str
    path: str
    handlers: Tuple[Callable, ...]

    @property
    def handler(self) -> Callable:
        """The action handler (always last in the chain)."""
        return self.handlers[-1]


class RouteTable:
    """In-memory router recording every registration."""

    def __init__(self) -> None:
        self.routes: List[Route] = []

    def _add(self, method: str, path: str, handlers: Sequence[Callable]) -> "RouteTable":
        self.routes.append(Route(method, path, tuple(handlers)))
        return self

    def get(self, path: str, *handlers: Callable) -> "RouteTable":
        return self._add("GET", path, handlers)

    def post(self, path: str, *handlers: Callable) -> "RouteTable":
        return self._add("POST", path, handlers)

    def put(self, path: str, *handlers: Callable) -> "RouteTable":
        return self._add("PUT", path, handlers)

    def delete(self, path: str, *handlers: Callable) -> "RouteTable":
        return self._add("DELETE", path, handlers)

    def head(self, path: str, *handlers: Callable) -> "RouteTable":
        return self._add("HEAD", path, handlers)

    def patch(self, path: str, *handlers: Callable) -> "RouteTable":
        return self._add("PATCH", path, handlers)

    def options(self, path: str, *handlers: Callable) -> "RouteTable":
        return self._add("OPTIONS", path, handlers)

    def find(self, method: str, path: str) -> Optional[Route]:
        method = method.upper()
        for route in self.routes:
            if route.method == method and route.path == path:
                return route
        return None

    def pairs(self) -> List[Tuple[str, str]]:
        """``[(method, path), ...]`` in registration order."""
        return [(route.method, route.path) for route in self.routes]

    def __iter__(self) -> Iterator[Route]:
        return iter(self.routes)

    def __len__(self) -> int:
        return len(self.routes)
