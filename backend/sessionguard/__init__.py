"""Expose the application factory at package level.

``from sessionguard import create_app`` is the entry point used by the WSGI
server and the ``flask`` CLI.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
