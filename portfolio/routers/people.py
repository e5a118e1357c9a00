"""People router: contacts referenced by deals and properties"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import EmailStr, Field
from typing import List, Optional
from datetime import datetime

from portfolio.database import get_db
from portfolio.models.user import User
from portfolio.routers.auth import get_current_user
from portfolio.schemas import CamelModel, DealSummary, MessageResponse, PropertySummary
from portfolio.services.people import PersonService

router = APIRouter(prefix="/people", tags=["People"])


class PersonFields(CamelModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=255)
    role: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PersonCreate(PersonFields):
    name: str = Field(..., min_length=1, max_length=255)


class PersonUpdate(PersonFields):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class PersonResponse(CamelModel):
    id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    company: Optional[str]
    role: Optional[str]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    properties_as_seller: List[PropertySummary] = []
    properties_as_seller_agent: List[PropertySummary] = []
    properties_as_buyer_agent: List[PropertySummary] = []
    properties_as_title_company: List[PropertySummary] = []
    deals_as_seller: List[DealSummary] = []
    deals_as_seller_agent: List[DealSummary] = []
    deals_as_buyer_agent: List[DealSummary] = []
    deals_as_title_company: List[DealSummary] = []


@router.get("", response_model=List[PersonResponse])
async def list_people(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    people = await PersonService(db, current_user.id).list_people()
    return [PersonResponse.model_validate(person) for person in people]


@router.post("", response_model=PersonResponse, status_code=status.HTTP_201_CREATED)
async def create_person(
    request: PersonCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = request.model_dump(exclude_unset=True)
    data["name"] = data["name"].strip()
    person = await PersonService(db, current_user.id).create_person(data)
    return PersonResponse.model_validate(person)


@router.get("/{person_id}", response_model=PersonResponse)
async def get_person(
    person_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a contact with every deal and property it appears on"""
    person = await PersonService(db, current_user.id).get_person(person_id)
    return PersonResponse.model_validate(person)


@router.put("/{person_id}", response_model=PersonResponse)
async def update_person(
    person_id: int,
    request: PersonUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = request.model_dump(exclude_unset=True)
    if data.get("name") is not None:
        data["name"] = data["name"].strip()
    else:
        data.pop("name", None)
    person = await PersonService(db, current_user.id).update_person(person_id, data)
    return PersonResponse.model_validate(person)


@router.delete("/{person_id}", response_model=MessageResponse)
async def delete_person(
    person_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await PersonService(db, current_user.id).delete_person(person_id)
    return MessageResponse(message="Person deleted successfully")
