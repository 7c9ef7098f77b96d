"""
FastAPI RESTful API for the Book Catalog.

This module provides a REST API for:
- User registration and login with JWT access tokens
- Book creation, lookup, search, pagination, update and deletion
"""
