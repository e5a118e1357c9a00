"""Tests for person and place resolution"""
import pytest
from unittest.mock import patch
from sqlalchemy import func, select

from portfolio.database import insert_ignore
from portfolio.models.person import Person
from portfolio.models.place import Place, PlaceKind
from portfolio.services.ownership import find_or_create
from portfolio.services.people import resolve_person
from portfolio.services.places import resolve_place, resolve_town
from portfolio.services.properties import PropertyService


async def _count(db, model, owner_id) -> int:
    result = await db.execute(select(func.count(model.id)).where(model.owner_id == owner_id))
    return result.scalar_one()


class TestResolvePerson:
    """find-or-create of contacts by exact name"""

    @pytest.mark.asyncio
    async def test_blank_name_resolves_to_none(self, db, owner):
        assert await resolve_person(db, None, owner.id) is None
        assert await resolve_person(db, "   ", owner.id) is None
        assert await _count(db, Person, owner.id) == 0

    @pytest.mark.asyncio
    async def test_repeated_resolution_returns_same_person(self, db, owner):
        """Second call finds the first row instead of inserting"""
        first = await resolve_person(db, "Jane Seller", owner.id, role="Seller")
        second = await resolve_person(db, "  Jane Seller ", owner.id)

        assert first.id == second.id
        assert first.role == "Seller"
        assert await _count(db, Person, owner.id) == 1

    @pytest.mark.asyncio
    async def test_matching_is_case_sensitive(self, db, owner):
        upper = await resolve_person(db, "John Smith", owner.id)
        lower = await resolve_person(db, "john smith", owner.id)

        assert upper.id != lower.id

    @pytest.mark.asyncio
    async def test_people_are_scoped_per_owner(self, db, owner, other_owner):
        mine = await resolve_person(db, "Pat Agent", owner.id)
        theirs = await resolve_person(db, "Pat Agent", other_owner.id)

        assert mine.id != theirs.id
        assert theirs.owner_id == other_owner.id


class TestResolvePlace:
    """STATE -> COUNTY -> leaf hierarchy"""

    @pytest.mark.asyncio
    async def test_full_chain_is_created(self, db, owner):
        town = await resolve_place(db, "Houlton", "Maine", "Aroostook", "TOWN", owner.id)

        assert town.kind == PlaceKind.TOWN
        assert town.description == "Houlton, Aroostook County, Maine"

        county = await db.get(Place, town.parent_id)
        state = await db.get(Place, county.parent_id)

        assert county.kind == PlaceKind.COUNTY
        assert county.description == "Aroostook County, Maine"
        assert state.kind == PlaceKind.STATE
        assert state.parent_id is None
        assert state.description == "Maine State"
        assert town.county_id == county.id
        assert town.state_place_id == state.id

    @pytest.mark.asyncio
    async def test_resolution_is_idempotent(self, db, owner):
        first = await resolve_place(db, "Houlton", "Maine", "Aroostook", "TOWN", owner.id)
        second = await resolve_place(db, " Houlton ", "Maine", "Aroostook", "TOWN", owner.id)

        assert first.id == second.id
        assert await _count(db, Place, owner.id) == 3

    @pytest.mark.asyncio
    async def test_sibling_towns_share_parents(self, db, owner):
        houlton = await resolve_place(db, "Houlton", "Maine", "Aroostook", "TOWN", owner.id)
        presque_isle = await resolve_place(db, "Presque Isle", "Maine", "Aroostook", "CITY", owner.id)

        assert houlton.parent_id == presque_isle.parent_id
        assert presque_isle.kind == PlaceKind.CITY
        assert await _count(db, Place, owner.id) == 4

    @pytest.mark.asyncio
    async def test_blank_city_or_state_returns_none(self, db, owner):
        assert await resolve_place(db, "", "Maine", "Aroostook", "TOWN", owner.id) is None
        assert await resolve_place(db, "Houlton", "  ", "Aroostook", "TOWN", owner.id) is None
        assert await _count(db, Place, owner.id) == 0

    @pytest.mark.asyncio
    async def test_missing_county_stops_at_state(self, db, owner):
        """No county means no leaf, but the state level is still recorded"""
        assert await resolve_place(db, "Houlton", "Maine", None, "TOWN", owner.id) is None

        result = await db.execute(select(Place).where(Place.owner_id == owner.id))
        places = result.scalars().all()
        assert [p.kind for p in places] == [PlaceKind.STATE]

    @pytest.mark.asyncio
    async def test_missing_place_type_stops_at_county(self, db, owner):
        assert await resolve_place(db, "Houlton", "Maine", "Aroostook", None, owner.id) is None
        assert await _count(db, Place, owner.id) == 2


class TestResolveTown:

    @pytest.mark.asyncio
    async def test_standalone_town(self, db, owner):
        town = await resolve_town(db, "Bangor", "Maine", owner.id)
        again = await resolve_town(db, "Bangor", "Maine", owner.id)

        assert town.id == again.id
        assert town.kind == PlaceKind.TOWN
        assert town.parent_id is None
        assert town.country == "United States"

    @pytest.mark.asyncio
    async def test_blank_city(self, db, owner):
        assert await resolve_town(db, " ", "Maine", owner.id) is None


class TestPropertyPlaceResolution:
    """Property writes place the address using the stored fields it keeps"""

    @pytest.mark.asyncio
    async def test_city_only_update_keeps_stored_state(self, db, owner):
        service = PropertyService(db, owner.id)
        lot = await service.create_property({"street_address": "12 Ridge Rd", "city": "Houlton", "state": "Maine"})

        moved = await service.update_property(lot.id, {"city": "Bangor"})

        assert moved.place.name == "Bangor"
        assert moved.place.state == "Maine"
        result = await db.execute(select(Place).where(Place.owner_id == owner.id, Place.state.is_(None)))
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_update_without_address_keeps_place(self, db, owner):
        service = PropertyService(db, owner.id)
        lot = await service.create_property({"street_address": "12 Ridge Rd", "city": "Houlton", "state": "Maine"})

        renamed = await service.update_property(lot.id, {"name": "Ridge lot"})

        assert renamed.place_id == lot.place_id
        assert await _count(db, Place, owner.id) == 1


class TestFindOrCreateRace:
    """A row inserted after the lookup is absorbed by the conflict clause"""

    @pytest.mark.asyncio
    async def test_insert_ignore_skips_duplicate(self, db, owner):
        values = {"owner_id": owner.id, "name": "Jane Seller"}

        await insert_ignore(db, Person, values)
        await insert_ignore(db, Person, values)

        assert await _count(db, Person, owner.id) == 1

    @pytest.mark.asyncio
    async def test_concurrent_insert_converges_on_one_row(self, db, owner):
        async def racing_insert(session, model, values):
            # Another request wins the race between our lookup and our insert
            await insert_ignore(session, model, {**values, "role": "Seller"})
            await insert_ignore(session, model, values)

        with patch("portfolio.services.ownership.insert_ignore", side_effect=racing_insert) as mock_insert:
            person = await find_or_create(db, Person, owner.id, {"name": "Jane Seller"}, {"role": "Buyer Agent"})

        mock_insert.assert_called_once()
        assert person.role == "Seller"
        assert await _count(db, Person, owner.id) == 1

    @pytest.mark.asyncio
    async def test_concurrent_place_insert(self, db, owner):
        async def racing_insert(session, model, values):
            await insert_ignore(session, model, values)
            await insert_ignore(session, model, values)

        with patch("portfolio.services.ownership.insert_ignore", side_effect=racing_insert):
            town = await resolve_town(db, "Bangor", "Maine", owner.id)

        assert town.kind == PlaceKind.TOWN
        assert await _count(db, Place, owner.id) == 1
