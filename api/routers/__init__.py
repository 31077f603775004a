"""
API routers for Trend Curator.

This package contains all FastAPI router modules for different API endpoints.
"""

__all__ = ["health", "processing", "signals", "trends"]
