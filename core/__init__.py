"""Core module - settings and observability shared by connectors and the API.

Service-specific logic (endpoint table, request executor) belongs in /connectors/.
"""

__version__ = "1.0.0"
