"""Analytics router"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from portfolio.database import get_db
from portfolio.models.place import PlaceKind
from portfolio.models.user import User
from portfolio.routers.auth import get_current_user
from portfolio.schemas import CamelModel
from portfolio.services.taxes import county_mill_rates

router = APIRouter(prefix="/analytics", tags=["Analytics"])


class CountyMillRateResponse(CamelModel):
    year: int
    county: str
    mill_rate: float
    place_name: str
    place_kind: PlaceKind


@router.get("/mill-rates", response_model=List[CountyMillRateResponse])
async def get_mill_rate_analytics(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """County-level mill rates across years, newest first"""
    rows = await county_mill_rates(db, current_user.id)
    return [CountyMillRateResponse.model_validate(row) for row in rows]
