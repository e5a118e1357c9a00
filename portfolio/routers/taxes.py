"""Taxes router: portfolio-wide tax summary"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Optional
from datetime import datetime

from portfolio.database import get_db
from portfolio.models.user import User
from portfolio.routers.auth import get_current_user
from portfolio.schemas import CamelModel, PlaceSummary
from portfolio.services.taxes import compute_portfolio_tax_summary

router = APIRouter(prefix="/taxes", tags=["Taxes"])


class TaxSummaryResponse(CamelModel):
    total_properties: int
    properties_with_tax_data: int
    total_estimated_annual_taxes: float
    total_state_tax_stamps: float
    total_property_tax_proration: float
    average_estimated_taxes: float


class PlaceTaxGroupResponse(CamelModel):
    mill_rate: Optional[float]
    count: int
    total_estimated_taxes: float
    total_state_tax_stamps: float
    total_property_tax_proration: float
    property_ids: List[int]


class StateTaxGroupResponse(CamelModel):
    count: int
    total_estimated_taxes: float
    total_state_tax_stamps: float
    total_property_tax_proration: float
    places: Dict[str, PlaceTaxGroupResponse]


class PropertyTaxResponse(CamelModel):
    id: int
    name: Optional[str]
    street_address: Optional[str]
    city: Optional[str]
    state: Optional[str]
    zip_code: Optional[str]
    purchase_price: Optional[float]
    closing_date: Optional[datetime]
    state_tax_stamps: Optional[float]
    property_tax_proration: Optional[float]
    assessed_value: Optional[float]
    market_value: Optional[float]
    place: Optional[PlaceSummary] = None
    estimated_annual_taxes: Optional[float] = None


class PortfolioTaxResponse(CamelModel):
    summary: TaxSummaryResponse
    properties_by_state: Dict[str, StateTaxGroupResponse]
    properties: List[PropertyTaxResponse]


@router.get("", response_model=PortfolioTaxResponse)
async def get_tax_summary(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Estimated annual taxes, stamps and prorations, grouped by state and place"""
    result = await compute_portfolio_tax_summary(db, current_user.id)
    properties = [
        PropertyTaxResponse.model_validate(row.property).model_copy(
            update={
                "estimated_annual_taxes": (
                    float(row.estimated_annual_taxes) if row.estimated_annual_taxes is not None else None
                )
            }
        )
        for row in result.properties
    ]
    return PortfolioTaxResponse(
        summary=TaxSummaryResponse.model_validate(result.summary),
        properties_by_state={
            state: StateTaxGroupResponse.model_validate(group)
            for state, group in result.properties_by_state.items()
        },
        properties=properties,
    )
