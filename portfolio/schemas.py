"""Shared request/response building blocks.

Payloads are camelCase on the wire and snake_case in Python.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from portfolio.models.place import PlaceKind
from portfolio.models.deal import DealStage, DealStatus

LEAF_PLACE_KINDS = (PlaceKind.TOWN, PlaceKind.UT, PlaceKind.CITY)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AddressHints(CamelModel):
    """Write-only hints for placing an address in the state/county/town hierarchy"""
    county: Optional[str] = Field(None, max_length=100)
    place_type: Optional[PlaceKind] = None

    @field_validator("place_type")
    @classmethod
    def validate_place_type(cls, v: Optional[PlaceKind]) -> Optional[PlaceKind]:
        if v is not None and v not in LEAF_PLACE_KINDS:
            raise ValueError("placeType must be one of TOWN, UT or CITY")
        return v


class MessageResponse(CamelModel):
    message: str


class PersonSummary(CamelModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    role: Optional[str] = None


class PlaceSummary(CamelModel):
    id: int
    name: str
    kind: PlaceKind
    state: Optional[str] = None
    mill_rate: Optional[float] = None


class PropertySummary(CamelModel):
    id: int
    name: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    type: Optional[str] = None
    acres: Optional[float] = None
    purchase_price: Optional[float] = None


class DealSummary(CamelModel):
    id: int
    name: str
    deal_stage: DealStage
    deal_status: DealStatus
    city: Optional[str] = None
    state: Optional[str] = None
