"""API routers for the Business Discovery Engine."""

from discovery.routers.explore import router as explore_router

__all__ = [
    "explore_router",
]
