"""REST API for the dashboard carousel."""

from .controller import APIController
from .server import APIServer

__all__ = ["APIController", "APIServer"]
