"""API routers package"""
from portfolio.routers.auth import router as auth_router
from portfolio.routers.places import router as places_router
from portfolio.routers.people import router as people_router
from portfolio.routers.properties import router as properties_router
from portfolio.routers.deals import router as deals_router
from portfolio.routers.taxes import router as taxes_router
from portfolio.routers.analytics import router as analytics_router

__all__ = [
    "auth_router",
    "places_router",
    "people_router",
    "properties_router",
    "deals_router",
    "taxes_router",
    "analytics_router",
]
