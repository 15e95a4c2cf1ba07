"""FastAPI routers acting as controllers in the MVC architecture."""

from . import account, analysis, history

__all__ = ["account", "analysis", "history"]
