"""
Routes package for Company Arena API.
"""

from arena.routes.companies import router as companies_router
from arena.routes.votes import router as votes_router

__all__ = ["companies_router", "votes_router"]
