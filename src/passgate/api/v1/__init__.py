"""
API v1 package.

Contains versioned API routes for the credential lifecycle API.
"""

from passgate.api.v1.routes import router

__all__ = ["router"]
