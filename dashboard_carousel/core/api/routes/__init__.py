"""
API route modules.

- carousel: image listing for the front-end
- system: health and capture status
- debug: diagnostics
"""

from .carousel import setup_carousel_routes
from .debug import setup_debug_routes
from .system import setup_system_routes


def setup_all_routes(app, controller):
    """Register all API routes with the application."""
    setup_system_routes(app, controller)
    setup_carousel_routes(app, controller)
    setup_debug_routes(app, controller)


__all__ = ["setup_all_routes"]
