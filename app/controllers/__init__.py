"""FastAPI routers acting as controllers in the MVC architecture."""

from . import audios, export, phrases, stats

__all__ = ["audios", "export", "phrases", "stats"]
