"""
API routers.
"""

from api.routers import books, users

__all__ = ["books", "users"]
