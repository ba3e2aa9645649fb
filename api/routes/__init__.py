"""API Routes Package."""

from api.routes import health, tools

__all__ = [
    "health",
    "tools",
]
