"""Services package"""
from portfolio.services.auth import AuthService, get_password_hash, verify_password
from portfolio.services.places import PlaceService, resolve_place, resolve_town
from portfolio.services.people import PersonService, resolve_person
from portfolio.services.history import HistoryRollup, mill_rate_rollup, valuation_rollup
from portfolio.services.properties import PropertyService
from portfolio.services.deals import DealService
from portfolio.services.taxes import compute_portfolio_tax_summary, estimate_annual_tax

__all__ = [
    "AuthService",
    "get_password_hash",
    "verify_password",
    "PlaceService",
    "resolve_place",
    "resolve_town",
    "PersonService",
    "resolve_person",
    "HistoryRollup",
    "mill_rate_rollup",
    "valuation_rollup",
    "PropertyService",
    "DealService",
    "compute_portfolio_tax_summary",
    "estimate_annual_tax",
]
