"""Tests for year-keyed history mirrored onto places and properties"""
import pytest
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

from portfolio.exceptions import ConflictError, NotFoundError
from portfolio.models.place import PlaceKind
from portfolio.services.history import latest_entry, mill_rate_rollup, valuation_rollup
from portfolio.services.places import PlaceService
from portfolio.services.properties import PropertyService


@pytest.fixture
def county_data():
    return {"name": "Aroostook", "kind": PlaceKind.COUNTY, "state": "Maine"}


async def _mill_rate(db, owner, place_id):
    place = await PlaceService(db, owner.id).get_place(place_id, refresh=True)
    return place.mill_rate


class TestLatestEntry:

    def test_empty_history(self):
        assert latest_entry([]) is None

    def test_picks_greatest_year_regardless_of_order(self):
        entries = [SimpleNamespace(year=y) for y in (2022, 2024, 2023)]
        assert latest_entry(entries).year == 2024


class TestMillRateRollup:
    """Place.mill_rate always follows the latest year's entry"""

    @pytest.mark.asyncio
    async def test_add_update_delete_sequence(self, db, owner, county_data):
        place = await PlaceService(db, owner.id).create_place(county_data)

        await mill_rate_rollup.add_entry(db, place.id, owner.id, {"year": 2022, "mill_rate": Decimal("10")})
        assert await _mill_rate(db, owner, place.id) == Decimal("10")

        latest = await mill_rate_rollup.add_entry(db, place.id, owner.id, {"year": 2024, "mill_rate": Decimal("12")})
        assert await _mill_rate(db, owner, place.id) == Decimal("12")

        # 2023 is not the latest year, the mirror stays on 2024
        await mill_rate_rollup.add_entry(db, place.id, owner.id, {"year": 2023, "mill_rate": Decimal("11")})
        assert await _mill_rate(db, owner, place.id) == Decimal("12")

        await mill_rate_rollup.delete_entry(db, place.id, latest.id, owner.id)
        assert await _mill_rate(db, owner, place.id) == Decimal("11")

    @pytest.mark.asyncio
    async def test_updating_latest_entry_re_mirrors(self, db, owner, county_data):
        place = await PlaceService(db, owner.id).create_place(county_data)
        entry = await mill_rate_rollup.add_entry(db, place.id, owner.id, {"year": 2024, "mill_rate": Decimal("12")})

        await mill_rate_rollup.update_entry(db, place.id, entry.id, owner.id, {"mill_rate": Decimal("13.5")})

        assert await _mill_rate(db, owner, place.id) == Decimal("13.5")

    @pytest.mark.asyncio
    async def test_updating_older_entry_leaves_mirror_alone(self, db, owner, county_data):
        """Only a change to the latest year propagates to the place"""
        place = await PlaceService(db, owner.id).create_place(county_data)
        older = await mill_rate_rollup.add_entry(db, place.id, owner.id, {"year": 2022, "mill_rate": Decimal("10")})
        await mill_rate_rollup.add_entry(db, place.id, owner.id, {"year": 2024, "mill_rate": Decimal("12")})

        updated = await mill_rate_rollup.update_entry(db, place.id, older.id, owner.id, {"mill_rate": Decimal("99")})

        assert updated.mill_rate == Decimal("99")
        assert await _mill_rate(db, owner, place.id) == Decimal("12")

    @pytest.mark.asyncio
    async def test_deleting_last_entry_clears_mirror(self, db, owner, county_data):
        place = await PlaceService(db, owner.id).create_place(county_data)
        entry = await mill_rate_rollup.add_entry(db, place.id, owner.id, {"year": 2024, "mill_rate": Decimal("12")})

        await mill_rate_rollup.delete_entry(db, place.id, entry.id, owner.id)

        assert await _mill_rate(db, owner, place.id) is None
        assert await mill_rate_rollup.list_entries(db, place.id, owner.id) == []

    @pytest.mark.asyncio
    async def test_duplicate_year_conflicts(self, db, owner, county_data):
        place = await PlaceService(db, owner.id).create_place(county_data)
        await mill_rate_rollup.add_entry(db, place.id, owner.id, {"year": 2024, "mill_rate": Decimal("12")})

        with pytest.raises(ConflictError) as exc_info:
            await mill_rate_rollup.add_entry(db, place.id, owner.id, {"year": 2024, "mill_rate": Decimal("99")})

        assert exc_info.value.status_code == 409
        assert "2024" in exc_info.value.message
        assert await _mill_rate(db, owner, place.id) == Decimal("12")

    @pytest.mark.asyncio
    async def test_entries_listed_newest_first(self, db, owner, county_data):
        place = await PlaceService(db, owner.id).create_place(county_data)
        for year in (2021, 2023, 2022):
            await mill_rate_rollup.add_entry(db, place.id, owner.id, {"year": year, "mill_rate": Decimal("10")})

        entries = await mill_rate_rollup.list_entries(db, place.id, owner.id)

        assert [e.year for e in entries] == [2023, 2022, 2021]

    @pytest.mark.asyncio
    async def test_other_owner_cannot_touch_history(self, db, owner, other_owner, county_data):
        place = await PlaceService(db, owner.id).create_place(county_data)
        entry = await mill_rate_rollup.add_entry(db, place.id, owner.id, {"year": 2024, "mill_rate": Decimal("12")})

        with pytest.raises(NotFoundError):
            await mill_rate_rollup.add_entry(db, place.id, other_owner.id, {"year": 2025, "mill_rate": Decimal("1")})
        with pytest.raises(NotFoundError):
            await mill_rate_rollup.update_entry(db, place.id, entry.id, other_owner.id, {"mill_rate": Decimal("1")})
        with pytest.raises(NotFoundError):
            await mill_rate_rollup.delete_entry(db, place.id, entry.id, other_owner.id)

        assert await _mill_rate(db, owner, place.id) == Decimal("12")


class TestValuationRollup:
    """Property assessment fields follow the latest valuation"""

    @pytest.mark.asyncio
    async def test_latest_valuation_is_mirrored(self, db, owner):
        service = PropertyService(db, owner.id)
        prop = await service.create_property({"street_address": "12 Ridge Rd", "city": "Houlton", "state": "Maine"})

        await valuation_rollup.add_entry(db, prop.id, owner.id, {
            "year": 2023,
            "assessed_value": Decimal("80000"),
            "market_value": Decimal("95000"),
            "assessment_date": datetime(2023, 4, 1),
            "assessment_notes": "Revaluation",
        })
        newest = await valuation_rollup.add_entry(db, prop.id, owner.id, {
            "year": 2024,
            "assessed_value": Decimal("85000"),
        })

        prop = await service.get_property(prop.id, refresh=True)
        assert prop.assessed_value == Decimal("85000")
        assert prop.market_value is None
        assert prop.last_assessment_date is None

        await valuation_rollup.delete_entry(db, prop.id, newest.id, owner.id)

        prop = await service.get_property(prop.id, refresh=True)
        assert prop.assessed_value == Decimal("80000")
        assert prop.market_value == Decimal("95000")
        assert prop.last_assessment_date == datetime(2023, 4, 1)
        assert prop.assessment_notes == "Revaluation"
