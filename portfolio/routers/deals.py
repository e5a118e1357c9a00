"""Deals router: acquisition pipeline and promotion to properties"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import Field
from typing import List, Optional
from datetime import datetime
import logging

from portfolio.database import get_db
from portfolio.models.deal import DealStage, DealStatus
from portfolio.models.user import User
from portfolio.routers.auth import get_current_user
from portfolio.routers.properties import PropertyResponse
from portfolio.schemas import (
    AddressHints, CamelModel, MessageResponse, PersonSummary, PlaceSummary, PropertySummary,
)
from portfolio.services.deals import DealService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deals", tags=["Deals"])


# Request/Response Models
class DealFields(AddressHints):
    """Deal attributes shared by create and update"""
    description: Optional[str] = None
    target_closing_date: Optional[datetime] = None
    deal_notes: Optional[str] = None

    street_address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=10)
    acres: Optional[float] = Field(None, ge=0)
    zoning: Optional[str] = Field(None, max_length=100)

    asking_price: Optional[float] = Field(None, ge=0)
    offer_price: Optional[float] = Field(None, ge=0)
    earnest_money: Optional[float] = Field(None, ge=0)
    estimated_closing_costs: Optional[float] = Field(None, ge=0)
    purchase_price: Optional[float] = Field(None, ge=0)
    closing_date: Optional[datetime] = None
    financing_terms: Optional[str] = None
    financing_type: Optional[str] = Field(None, max_length=100)

    title_settlement_fee: Optional[float] = Field(None, ge=0)
    title_examination: Optional[float] = Field(None, ge=0)
    owners_policy_premium: Optional[float] = Field(None, ge=0)
    recording_fees_deed: Optional[float] = Field(None, ge=0)
    state_tax_stamps: Optional[float] = Field(None, ge=0)
    e_recording_fee: Optional[float] = Field(None, ge=0)
    real_estate_commission: Optional[float] = Field(None, ge=0)

    # Contact names, resolved to people
    seller: Optional[str] = None
    seller_agent: Optional[str] = None
    buyer_agent: Optional[str] = None
    title_company: Optional[str] = None


class DealCreate(DealFields):
    name: str = Field(..., min_length=1, max_length=255)
    deal_stage: DealStage = DealStage.LEAD
    deal_status: DealStatus = DealStatus.ACTIVE


class DealUpdate(DealFields):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    deal_stage: Optional[DealStage] = None
    deal_status: Optional[DealStatus] = None


class DealResponse(CamelModel):
    id: int
    name: str
    description: Optional[str]
    deal_stage: DealStage
    deal_status: DealStatus
    target_closing_date: Optional[datetime]
    deal_notes: Optional[str]

    street_address: Optional[str]
    city: Optional[str]
    state: Optional[str]
    zip_code: Optional[str]
    place_id: Optional[int]
    acres: Optional[float]
    zoning: Optional[str]

    asking_price: Optional[float]
    offer_price: Optional[float]
    earnest_money: Optional[float]
    estimated_closing_costs: Optional[float]
    purchase_price: Optional[float]
    closing_date: Optional[datetime]
    financing_terms: Optional[str]
    financing_type: Optional[str]

    title_settlement_fee: Optional[float]
    title_examination: Optional[float]
    owners_policy_premium: Optional[float]
    recording_fees_deed: Optional[float]
    state_tax_stamps: Optional[float]
    e_recording_fee: Optional[float]
    real_estate_commission: Optional[float]

    promoted_to_property_id: Optional[int]
    promoted_at: Optional[datetime]

    place: Optional[PlaceSummary] = None
    seller: Optional[PersonSummary] = None
    seller_agent: Optional[PersonSummary] = None
    buyer_agent: Optional[PersonSummary] = None
    title_company: Optional[PersonSummary] = None
    promoted_property: Optional[PropertySummary] = None

    created_at: datetime
    updated_at: datetime


class PromotionResponse(CamelModel):
    deal: DealResponse
    property: PropertyResponse
    message: str


def _fields(request: CamelModel) -> dict:
    data = request.model_dump(exclude_unset=True)
    # name, stage and status cannot be cleared
    return {
        k: v for k, v in data.items()
        if v is not None or k not in ("name", "deal_stage", "deal_status")
    }


@router.get("", response_model=List[DealResponse])
async def list_deals(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List deals, newest first"""
    deals = await DealService(db, current_user.id).list_deals()
    return [DealResponse.model_validate(deal) for deal in deals]


@router.post("", response_model=DealResponse, status_code=status.HTTP_201_CREATED)
async def create_deal(
    request: DealCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a deal; contact names and the address are resolved before it is saved"""
    deal = await DealService(db, current_user.id).create_deal(_fields(request))
    return DealResponse.model_validate(deal)


@router.get("/{deal_id}", response_model=DealResponse)
async def get_deal(
    deal_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    deal = await DealService(db, current_user.id).get_deal(deal_id)
    return DealResponse.model_validate(deal)


@router.put("/{deal_id}", response_model=DealResponse)
async def update_deal(
    deal_id: int,
    request: DealUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update the supplied fields of a deal"""
    deal = await DealService(db, current_user.id).update_deal(deal_id, _fields(request))
    return DealResponse.model_validate(deal)


@router.delete("/{deal_id}", response_model=MessageResponse)
async def delete_deal(
    deal_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await DealService(db, current_user.id).delete_deal(deal_id)
    return MessageResponse(message="Deal deleted successfully")


@router.post("/{deal_id}/promote", response_model=PromotionResponse, status_code=status.HTTP_201_CREATED)
async def promote_deal(
    deal_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Turn a won deal into a property"""
    deal, property_obj = await DealService(db, current_user.id).promote_deal(deal_id)
    return PromotionResponse(
        deal=DealResponse.model_validate(deal),
        property=PropertyResponse.from_property(property_obj),
        message="Deal successfully promoted to property",
    )
