"""Database models package"""
from portfolio.models.user import User
from portfolio.models.place import Place, PlaceKind
from portfolio.models.person import Person
from portfolio.models.property import Property
from portfolio.models.deal import Deal, DealStage, DealStatus
from portfolio.models.mill_rate import MillRateHistory
from portfolio.models.valuation import PropertyValuationHistory
from portfolio.models.tax_payment import TaxPayment

__all__ = [
    "User",
    "Place",
    "PlaceKind",
    "Person",
    "Property",
    "Deal",
    "DealStage",
    "DealStatus",
    "MillRateHistory",
    "PropertyValuationHistory",
    "TaxPayment",
]
