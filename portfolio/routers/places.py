"""Places router: the place hierarchy and mill-rate history"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import EmailStr, Field
from typing import List, Optional
from datetime import datetime
import logging

from portfolio.config import settings
from portfolio.database import get_db
from portfolio.models.place import PlaceKind
from portfolio.models.user import User
from portfolio.routers.auth import get_current_user
from portfolio.schemas import CamelModel, MessageResponse, PropertySummary
from portfolio.services.places import PlaceService
from portfolio.services.history import mill_rate_rollup

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/places", tags=["Places"])


# Request/Response Models
class PlaceFields(CamelModel):
    """Editable place attributes"""
    state: Optional[str] = None
    country: Optional[str] = None
    description: Optional[str] = None
    kind: Optional[PlaceKind] = None
    parent_id: Optional[int] = None
    county_id: Optional[int] = None
    state_place_id: Optional[int] = None

    tax_payment_address: Optional[str] = None
    tax_payment_website: Optional[str] = None
    tax_office_phone: Optional[str] = None
    tax_due_month: Optional[int] = Field(None, ge=1, le=12)
    tax_due_day: Optional[int] = Field(None, ge=1, le=31)
    late_interest_rate: Optional[float] = Field(None, ge=0, le=100)
    assessment_month: Optional[int] = Field(None, ge=1, le=12)
    assessment_day: Optional[int] = Field(None, ge=1, le=31)
    tax_notes: Optional[str] = None

    zoning_office_address: Optional[str] = None
    zoning_office_phone: Optional[str] = None
    zoning_office_website_url: Optional[str] = None

    ceo_name: Optional[str] = None
    ceo_email: Optional[EmailStr] = None
    ceo_phone: Optional[str] = None

    plumbing_inspector_name: Optional[str] = None
    plumbing_inspector_email: Optional[EmailStr] = None
    plumbing_inspector_phone: Optional[str] = None


class PlaceCreate(PlaceFields):
    name: str = Field(..., min_length=1, max_length=255)
    kind: PlaceKind = PlaceKind.TOWN


class PlaceUpdate(PlaceFields):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class MillRateCreate(CamelModel):
    year: int = Field(..., ge=settings.HISTORY_MIN_YEAR, le=settings.HISTORY_MAX_YEAR)
    mill_rate: float = Field(..., ge=0)
    notes: Optional[str] = None


class MillRateUpdate(CamelModel):
    mill_rate: float = Field(..., ge=0)
    notes: Optional[str] = None


class MillRateResponse(CamelModel):
    id: int
    place_id: int
    year: int
    mill_rate: float
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime


class PlaceResponse(PlaceFields):
    id: int
    name: str
    kind: PlaceKind
    mill_rate: Optional[float] = None
    created_at: datetime
    updated_at: datetime


class PlaceListItem(PlaceResponse):
    property_count: int = 0


class PlaceDetailResponse(PlaceResponse):
    properties: List[PropertySummary] = []
    mill_rate_histories: List[MillRateResponse] = []


def _fields(request: CamelModel) -> dict:
    # Only what the client actually sent
    return request.model_dump(exclude_unset=True)


# Places
@router.get("", response_model=List[PlaceListItem])
async def list_places(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List places with the number of properties in each"""
    rows = await PlaceService(db, current_user.id).list_places()
    return [
        PlaceListItem.model_validate(place).model_copy(update={"property_count": count})
        for place, count in rows
    ]


@router.post("", response_model=PlaceDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_place(
    request: PlaceCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    place = await PlaceService(db, current_user.id).create_place(_fields(request))
    return PlaceDetailResponse.model_validate(place)


@router.get("/{place_id}", response_model=PlaceDetailResponse)
async def get_place(
    place_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    place = await PlaceService(db, current_user.id).get_place(place_id)
    return PlaceDetailResponse.model_validate(place)


@router.put("/{place_id}", response_model=PlaceDetailResponse)
async def update_place(
    place_id: int,
    request: PlaceUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    place = await PlaceService(db, current_user.id).update_place(place_id, _fields(request))
    return PlaceDetailResponse.model_validate(place)


@router.delete("/{place_id}", response_model=MessageResponse)
async def delete_place(
    place_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a place; refused while properties or child places reference it"""
    await PlaceService(db, current_user.id).delete_place(place_id)
    return MessageResponse(message="Place deleted successfully")


# Mill rate history
@router.get("/{place_id}/mill-rates", response_model=List[MillRateResponse])
async def list_mill_rates(
    place_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mill rate history, newest year first"""
    entries = await mill_rate_rollup.list_entries(db, place_id, current_user.id)
    return [MillRateResponse.model_validate(entry) for entry in entries]


@router.post("/{place_id}/mill-rates", response_model=MillRateResponse, status_code=status.HTTP_201_CREATED)
async def add_mill_rate(
    place_id: int,
    request: MillRateCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Record the mill rate for a year; the place's current rate follows the latest year"""
    entry = await mill_rate_rollup.add_entry(db, place_id, current_user.id, _fields(request))
    return MillRateResponse.model_validate(entry)


@router.put("/{place_id}/mill-rates/{mill_rate_id}", response_model=MillRateResponse)
async def update_mill_rate(
    place_id: int,
    mill_rate_id: int,
    request: MillRateUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    entry = await mill_rate_rollup.update_entry(db, place_id, mill_rate_id, current_user.id, _fields(request))
    return MillRateResponse.model_validate(entry)


@router.delete("/{place_id}/mill-rates/{mill_rate_id}", response_model=MessageResponse)
async def delete_mill_rate(
    place_id: int,
    mill_rate_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await mill_rate_rollup.delete_entry(db, place_id, mill_rate_id, current_user.id)
    return MessageResponse(message="Mill rate entry deleted successfully")
