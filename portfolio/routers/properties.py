"""Properties router: properties, valuation history, tax payments and tax history"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import Field, field_validator
from typing import List, Optional
from datetime import datetime
import logging

from portfolio.config import settings
from portfolio.database import get_db
from portfolio.models.user import User
from portfolio.routers.auth import get_current_user
from portfolio.schemas import (
    AddressHints, CamelModel, DealSummary, MessageResponse, PersonSummary, PlaceSummary,
)
from portfolio.services.history import valuation_rollup
from portfolio.services.properties import PropertyService
from portfolio.services.taxes import estimate_annual_tax, property_tax_history

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/properties", tags=["Properties"])


def _as_float(value) -> Optional[float]:
    return float(value) if value is not None else None


# Request/Response Models
class PropertyFields(AddressHints):
    """Property attributes shared by create and update"""
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    type: Optional[str] = Field(None, max_length=100)
    available: Optional[bool] = None
    zip_code: Optional[str] = Field(None, max_length=10)
    acres: Optional[float] = Field(None, ge=0)
    zoning: Optional[str] = Field(None, max_length=100)

    purchase_price: Optional[float] = Field(None, ge=0)
    earnest_money: Optional[float] = Field(None, ge=0)
    closing_date: Optional[datetime] = None
    financing_type: Optional[str] = Field(None, max_length=100)
    financing_terms: Optional[str] = None
    balloon_due_date: Optional[datetime] = None

    title_settlement_fee: Optional[float] = Field(None, ge=0)
    title_examination: Optional[float] = Field(None, ge=0)
    owners_policy_premium: Optional[float] = Field(None, ge=0)
    recording_fees_deed: Optional[float] = Field(None, ge=0)
    state_tax_stamps: Optional[float] = Field(None, ge=0)
    e_recording_fee: Optional[float] = Field(None, ge=0)
    property_tax_proration: Optional[float] = Field(None, ge=0)
    real_estate_commission: Optional[float] = Field(None, ge=0)

    # Contact names, resolved to people
    seller: Optional[str] = None
    seller_agent: Optional[str] = None
    buyer_agent: Optional[str] = None
    title_company: Optional[str] = None


class PropertyCreate(PropertyFields):
    street_address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)


class PropertyUpdate(PropertyFields):
    street_address: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)


class TaxPaymentResponse(CamelModel):
    id: int
    property_id: int
    year: int
    amount: float
    payment_date: datetime
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime


class PropertyResponse(CamelModel):
    id: int
    name: Optional[str]
    description: Optional[str]
    type: Optional[str]
    available: Optional[bool]
    street_address: Optional[str]
    city: Optional[str]
    state: Optional[str]
    zip_code: Optional[str]
    place_id: Optional[int]
    acres: Optional[float]
    zoning: Optional[str]

    purchase_price: Optional[float]
    earnest_money: Optional[float]
    closing_date: Optional[datetime]
    financing_type: Optional[str]
    financing_terms: Optional[str]
    balloon_due_date: Optional[datetime]

    title_settlement_fee: Optional[float]
    title_examination: Optional[float]
    owners_policy_premium: Optional[float]
    recording_fees_deed: Optional[float]
    state_tax_stamps: Optional[float]
    e_recording_fee: Optional[float]
    property_tax_proration: Optional[float]
    real_estate_commission: Optional[float]

    assessed_value: Optional[float]
    market_value: Optional[float]
    last_assessment_date: Optional[datetime]
    assessment_notes: Optional[str]
    estimated_annual_taxes: Optional[float] = None

    place: Optional[PlaceSummary] = None
    seller: Optional[PersonSummary] = None
    seller_agent: Optional[PersonSummary] = None
    buyer_agent: Optional[PersonSummary] = None
    title_company: Optional[PersonSummary] = None
    original_deal: Optional[DealSummary] = None
    tax_payments: List[TaxPaymentResponse] = []

    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_property(cls, property_obj) -> "PropertyResponse":
        mill_rate = property_obj.place.mill_rate if property_obj.place is not None else None
        return cls.model_validate(property_obj).model_copy(
            update={"estimated_annual_taxes": _as_float(estimate_annual_tax(property_obj.assessed_value, mill_rate))}
        )


class ValuationCreate(CamelModel):
    year: int = Field(..., ge=settings.HISTORY_MIN_YEAR, le=settings.HISTORY_MAX_YEAR)
    assessed_value: Optional[float] = Field(None, ge=0)
    market_value: Optional[float] = Field(None, ge=0)
    assessment_date: Optional[datetime] = None
    assessment_notes: Optional[str] = None


class ValuationUpdate(CamelModel):
    assessed_value: Optional[float] = Field(None, ge=0)
    market_value: Optional[float] = Field(None, ge=0)
    assessment_date: Optional[datetime] = None
    assessment_notes: Optional[str] = None


class ValuationResponse(CamelModel):
    id: int
    property_id: int
    year: int
    assessed_value: Optional[float]
    market_value: Optional[float]
    assessment_date: Optional[datetime]
    assessment_notes: Optional[str]
    created_at: datetime
    updated_at: datetime


def _validate_payment_year(v: Optional[int]) -> Optional[int]:
    latest = datetime.utcnow().year + settings.TAX_PAYMENT_YEARS_AHEAD
    if v is not None and not settings.TAX_PAYMENT_MIN_YEAR <= v <= latest:
        raise ValueError(f"Year must be between {settings.TAX_PAYMENT_MIN_YEAR} and {latest}")
    return v


class TaxPaymentCreate(CamelModel):
    year: int
    amount: float = Field(..., ge=0)
    payment_date: datetime
    notes: Optional[str] = None

    @field_validator("year")
    @classmethod
    def validate_year(cls, v: Optional[int]) -> Optional[int]:
        return _validate_payment_year(v)


class TaxPaymentUpdate(CamelModel):
    year: Optional[int] = None
    amount: Optional[float] = Field(None, ge=0)
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("year")
    @classmethod
    def validate_year(cls, v: Optional[int]) -> Optional[int]:
        return _validate_payment_year(v)


class TaxYearResponse(CamelModel):
    year: Optional[int]
    mill_rate: float
    assessed_value: Optional[float]
    market_value: Optional[float]
    assessed_tax: Optional[float]
    market_tax: Optional[float]
    notes: Optional[str]


class TaxTrendResponse(CamelModel):
    change: float
    percent_change: Optional[float]


class TaxHistoryResponse(CamelModel):
    years: List[TaxYearResponse]
    current: Optional[TaxYearResponse]
    assessed_trend: Optional[TaxTrendResponse]
    market_trend: Optional[TaxTrendResponse]


def _fields(request: CamelModel, required=()) -> dict:
    data = request.model_dump(exclude_unset=True)
    # Required columns are never cleared by an explicit null
    return {k: v for k, v in data.items() if v is not None or k not in required}


# Properties
@router.get("", response_model=List[PropertyResponse])
async def list_properties(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    properties = await PropertyService(db, current_user.id).list_properties()
    return [PropertyResponse.from_property(p) for p in properties]


@router.post("", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
async def create_property(
    request: PropertyCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a property.

    Contact names are matched to (or create) people; city and state place
    the property in the hierarchy, under a county when ``county`` and
    ``placeType`` are given, otherwise as a standalone town.
    """
    data = _fields(request)
    data.setdefault("available", True)
    property_obj = await PropertyService(db, current_user.id).create_property(data)
    return PropertyResponse.from_property(property_obj)


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    property_obj = await PropertyService(db, current_user.id).get_property(property_id)
    return PropertyResponse.from_property(property_obj)


@router.put("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: int,
    request: PropertyUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = _fields(request, required=("available",))
    property_obj = await PropertyService(db, current_user.id).update_property(property_id, data)
    return PropertyResponse.from_property(property_obj)


@router.delete("/{property_id}", response_model=MessageResponse)
async def delete_property(
    property_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await PropertyService(db, current_user.id).delete_property(property_id)
    return MessageResponse(message="Property deleted successfully")


# Valuation history
@router.get("/{property_id}/valuations", response_model=List[ValuationResponse])
async def list_valuations(
    property_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    entries = await valuation_rollup.list_entries(db, property_id, current_user.id)
    return [ValuationResponse.model_validate(entry) for entry in entries]


@router.post("/{property_id}/valuations", response_model=ValuationResponse, status_code=status.HTTP_201_CREATED)
async def add_valuation(
    property_id: int,
    request: ValuationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Record a year's assessment; the property's current values follow the latest year"""
    entry = await valuation_rollup.add_entry(db, property_id, current_user.id, _fields(request))
    return ValuationResponse.model_validate(entry)


@router.put("/{property_id}/valuations/{valuation_id}", response_model=ValuationResponse)
async def update_valuation(
    property_id: int,
    valuation_id: int,
    request: ValuationUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    entry = await valuation_rollup.update_entry(db, property_id, valuation_id, current_user.id, _fields(request))
    return ValuationResponse.model_validate(entry)


@router.delete("/{property_id}/valuations/{valuation_id}", response_model=MessageResponse)
async def delete_valuation(
    property_id: int,
    valuation_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await valuation_rollup.delete_entry(db, property_id, valuation_id, current_user.id)
    return MessageResponse(message="Valuation entry deleted successfully")


# Tax payments
@router.get("/{property_id}/tax-payments", response_model=List[TaxPaymentResponse])
async def list_tax_payments(
    property_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    payments = await PropertyService(db, current_user.id).list_tax_payments(property_id)
    return [TaxPaymentResponse.model_validate(payment) for payment in payments]


@router.post("/{property_id}/tax-payments", response_model=TaxPaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_tax_payment(
    property_id: int,
    request: TaxPaymentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    payment = await PropertyService(db, current_user.id).create_tax_payment(property_id, _fields(request))
    return TaxPaymentResponse.model_validate(payment)


@router.put("/{property_id}/tax-payments/{payment_id}", response_model=TaxPaymentResponse)
async def update_tax_payment(
    property_id: int,
    payment_id: int,
    request: TaxPaymentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = _fields(request, required=("year", "amount", "payment_date"))
    payment = await PropertyService(db, current_user.id).update_tax_payment(property_id, payment_id, data)
    return TaxPaymentResponse.model_validate(payment)


@router.delete("/{property_id}/tax-payments/{payment_id}", response_model=MessageResponse)
async def delete_tax_payment(
    property_id: int,
    payment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await PropertyService(db, current_user.id).delete_tax_payment(property_id, payment_id)
    return MessageResponse(message="Tax payment deleted successfully")


# Tax history
@router.get("/{property_id}/tax-history", response_model=TaxHistoryResponse)
async def get_tax_history(
    property_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Taxes per year from valuation and mill-rate history, with trends"""
    history = await property_tax_history(db, property_id, current_user.id)
    return TaxHistoryResponse.model_validate(history)
