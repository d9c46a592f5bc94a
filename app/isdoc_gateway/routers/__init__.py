"""
Routers package for FastAPI endpoints.

- extract: ISDOC extraction endpoint
- health: Health check
"""

from . import extract, health

__all__ = ["extract", "health"]
