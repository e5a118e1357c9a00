"""Places service: hierarchy resolution and CRUD"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portfolio.config import settings
from portfolio.models.place import Place, PlaceKind
from portfolio.models.property import Property
from portfolio.exceptions import ConflictError
from portfolio.services.ownership import owned, get_owned, find_or_create

logger = logging.getLogger(__name__)

PLACE_REFERENCES = ("parent_id", "county_id", "state_place_id")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


async def resolve_state(db: AsyncSession, state: str, owner_id: int) -> Place:
    """Find or create the top-level STATE place"""
    return await find_or_create(
        db, Place, owner_id,
        {"name": state, "kind": PlaceKind.STATE, "state": state, "parent_id": None},
        {"country": settings.DEFAULT_COUNTRY, "description": f"{state} State"},
    )


async def resolve_county(db: AsyncSession, state_place: Place, county: str, owner_id: int) -> Place:
    """Find or create a COUNTY place under ``state_place``"""
    state = state_place.name
    return await find_or_create(
        db, Place, owner_id,
        {"name": county, "kind": PlaceKind.COUNTY, "state": state, "parent_id": state_place.id},
        {
            "country": settings.DEFAULT_COUNTRY,
            "description": f"{county} County, {state}",
            "state_place_id": state_place.id,
        },
    )


async def resolve_place(
    db: AsyncSession,
    city: Optional[str],
    state: Optional[str],
    county: Optional[str],
    place_type: Optional[str],
    owner_id: int,
) -> Optional[Place]:
    """Find or create the STATE -> COUNTY -> TOWN/UT/CITY chain for an address.

    Returns the leaf place, or None when city or state is blank or when the
    county or place type needed to reach the leaf is missing. Intermediate
    levels that could be resolved are still created.
    """
    city = _clean(city)
    state = _clean(state)
    county = _clean(county)
    place_type = _clean(place_type)

    if not city or not state:
        return None

    state_place = await resolve_state(db, state, owner_id)

    county_place = None
    if county:
        county_place = await resolve_county(db, state_place, county, owner_id)

    place = None
    if place_type and county_place:
        place = await find_or_create(
            db, Place, owner_id,
            {"name": city, "kind": PlaceKind(place_type), "state": state, "parent_id": county_place.id},
            {
                "country": settings.DEFAULT_COUNTRY,
                "description": f"{city}, {county} County, {state}",
                "county_id": county_place.id,
                "state_place_id": state_place.id,
            },
        )

    return place


async def resolve_town(
    db: AsyncSession,
    city: Optional[str],
    state: Optional[str],
    owner_id: int,
) -> Optional[Place]:
    """Find or create a standalone TOWN place for a city/state pair"""
    city = _clean(city)
    state = _clean(state)
    if not city:
        return None

    return await find_or_create(
        db, Place, owner_id,
        {"name": city, "kind": PlaceKind.TOWN, "state": state, "parent_id": None},
        {
            "country": settings.DEFAULT_COUNTRY,
            "description": f"{city}, {state}" if state else city,
        },
    )


class PlaceService:
    """CRUD over an owner's places"""

    def __init__(self, db: AsyncSession, owner_id: int):
        self.db = db
        self.owner_id = owner_id

    async def list_places(self) -> List[Tuple[Place, int]]:
        """Places with the number of properties in each, newest first"""
        property_count = (
            select(func.count(Property.id))
            .where(Property.place_id == Place.id)
            .correlate(Place)
            .scalar_subquery()
        )
        result = await self.db.execute(
            owned(Place, self.owner_id)
            .add_columns(property_count)
            .order_by(Place.created_at.desc())
        )
        return [(place, count) for place, count in result.all()]

    async def get_place(self, place_id: int, refresh: bool = False) -> Place:
        return await get_owned(
            self.db, Place, place_id, self.owner_id,
            selectinload(Place.properties).selectinload(Property.place),
            selectinload(Place.mill_rate_histories),
            label="Place", refresh=refresh,
        )

    async def _ensure_unique(self, name: str, state: Optional[str], exclude_id: Optional[int] = None) -> None:
        stmt = owned(Place, self.owner_id).where(Place.name == name)
        stmt = stmt.where(Place.state.is_(None) if state is None else Place.state == state)
        if exclude_id is not None:
            stmt = stmt.where(Place.id != exclude_id)
        result = await self.db.execute(stmt)
        if result.scalars().first() is not None:
            raise ConflictError(message="A place with this name and state already exists")

    async def _check_references(self, data: Dict[str, Any]) -> None:
        """Hierarchy links may only point at the owner's own places"""
        for field in PLACE_REFERENCES:
            ref_id = data.get(field)
            if ref_id is not None:
                await get_owned(self.db, Place, ref_id, self.owner_id, label="Referenced place")

    async def create_place(self, data: Dict[str, Any]) -> Place:
        await self._ensure_unique(data["name"], data.get("state"))
        await self._check_references(data)

        data.setdefault("country", settings.DEFAULT_COUNTRY)
        place = Place(owner_id=self.owner_id, **data)
        self.db.add(place)
        await self.db.commit()
        logger.info(f"Created place {place.id} ({place.name}) for user {self.owner_id}")

        return await self.get_place(place.id, refresh=True)

    async def update_place(self, place_id: int, data: Dict[str, Any]) -> Place:
        place = await self.get_place(place_id)

        # name and kind cannot be cleared
        data = {k: v for k, v in data.items() if v is not None or k not in ("name", "kind")}

        await self._check_references(data)

        name = data.get("name", place.name)
        state = data.get("state", place.state)
        if name != place.name or state != place.state:
            await self._ensure_unique(name, state, exclude_id=place.id)

        for field, value in data.items():
            setattr(place, field, value)

        await self.db.commit()
        return await self.get_place(place.id, refresh=True)

    async def delete_place(self, place_id: int) -> None:
        """Delete a place and its mill rate history.

        Refused while any property sits in the place or any place hangs
        below it in the hierarchy.
        """
        place = await self.get_place(place_id)

        if place.properties:
            raise ConflictError(
                message="Cannot delete place that has associated properties. "
                        "Please remove or reassign the properties first.",
                details={"property_count": len(place.properties)},
            )

        children = await self.db.execute(
            select(func.count(Place.id)).where(
                Place.owner_id == self.owner_id,
                (Place.parent_id == place.id) | (Place.county_id == place.id) | (Place.state_place_id == place.id),
            )
        )
        child_count = children.scalar_one()
        if child_count:
            raise ConflictError(
                message="Cannot delete place that contains other places",
                details={"child_place_count": child_count},
            )

        await self.db.delete(place)
        await self.db.commit()
        logger.info(f"Deleted place {place_id} for user {self.owner_id}")
