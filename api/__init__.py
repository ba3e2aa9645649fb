"""API Package.

FastAPI server exposing Fakturownia operations as agent tools.
"""

from api.server import create_app

__all__ = [
    "create_app",
]
