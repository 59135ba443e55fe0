"""
API sub-package for the Render Relay service.

This package contains the FastAPI application, its route definitions and
Pydantic models. Import `api.main` or routers from `api.routes` directly.
"""

__all__ = []
