"""Plugin package initialiser (source of truth).

Rebuild rules:
- Keep this file lightweight; do not import concrete plugins here so imports of
  ``smartloader.plugins`` remain side-effect free.
- Concrete plugin modules (``middleware``, ``guard``) self-register when
  imported elsewhere (see ``smartloader.__init__`` for eager imports).
"""

__all__: list[str] = []
