"""HTTP-level tests: error envelope, ownership and the main resource flows"""
import pytest

from conftest import auth_headers

API = "/api"


async def _create_property(client, user, **overrides):
    payload = {"streetAddress": "12 Ridge Rd", "city": "Houlton", "state": "Maine"}
    payload.update(overrides)
    response = await client.post(f"{API}/properties", json=payload, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


class TestErrorEnvelope:

    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, client):
        response = await client.get(f"{API}/properties")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "AUTHENTICATION_FAILED"
        assert body["path"] == "/api/properties"

    @pytest.mark.asyncio
    async def test_garbage_token_is_401(self, client):
        response = await client.get(f"{API}/places", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_validation_reports_every_field(self, client, owner):
        """A bad request lists each invalid field, not only the first"""
        place = (await client.post(f"{API}/places", json={"name": "Houlton"}, headers=auth_headers(owner))).json()

        response = await client.post(
            f"{API}/places/{place['id']}/mill-rates",
            json={"year": 1492},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        fields = {detail["field"] for detail in body["details"]}
        assert {"year", "millRate"} <= fields

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestPlacesApi:

    @pytest.mark.asyncio
    async def test_crud(self, client, owner):
        headers = auth_headers(owner)

        created = await client.post(
            f"{API}/places",
            json={"name": "Aroostook", "kind": "COUNTY", "state": "Maine", "taxDueMonth": 10},
            headers=headers,
        )
        assert created.status_code == 201
        place = created.json()
        assert place["kind"] == "COUNTY"
        assert place["taxDueMonth"] == 10
        assert place["country"] == "United States"
        assert place["millRate"] is None

        updated = await client.put(
            f"{API}/places/{place['id']}", json={"ceoName": "Sam Code"}, headers=headers,
        )
        assert updated.json()["ceoName"] == "Sam Code"
        assert updated.json()["name"] == "Aroostook"

        listing = await client.get(f"{API}/places", headers=headers)
        assert [(p["name"], p["propertyCount"]) for p in listing.json()] == [("Aroostook", 0)]

        deleted = await client.delete(f"{API}/places/{place['id']}", headers=headers)
        assert deleted.status_code == 200
        assert (await client.get(f"{API}/places/{place['id']}", headers=headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_duplicate_name_and_state_conflicts(self, client, owner):
        headers = auth_headers(owner)
        await client.post(f"{API}/places", json={"name": "Houlton", "state": "Maine"}, headers=headers)

        response = await client.post(f"{API}/places", json={"name": "Houlton", "state": "Maine"}, headers=headers)

        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_place_with_properties_cannot_be_deleted(self, client, owner):
        prop = await _create_property(client, owner)

        response = await client.delete(f"{API}/places/{prop['placeId']}", headers=auth_headers(owner))

        assert response.status_code == 409
        assert response.json()["details"] == {"property_count": 1}

    @pytest.mark.asyncio
    async def test_mill_rate_history_drives_current_rate(self, client, owner):
        headers = auth_headers(owner)
        place = (await client.post(f"{API}/places", json={"name": "Houlton"}, headers=headers)).json()
        url = f"{API}/places/{place['id']}/mill-rates"

        first = await client.post(url, json={"year": 2023, "millRate": 18.5}, headers=headers)
        second = await client.post(url, json={"year": 2024, "millRate": 20}, headers=headers)
        assert first.status_code == second.status_code == 201

        detail = (await client.get(f"{API}/places/{place['id']}", headers=headers)).json()
        assert detail["millRate"] == 20
        assert [h["year"] for h in detail["millRateHistories"]] == [2024, 2023]

        duplicate = await client.post(url, json={"year": 2024, "millRate": 1}, headers=headers)
        assert duplicate.status_code == 409

        removed = await client.delete(f"{url}/{second.json()['id']}", headers=headers)
        assert removed.status_code == 200
        detail = (await client.get(f"{API}/places/{place['id']}", headers=headers)).json()
        assert detail["millRate"] == 18.5

        missing = await client.put(f"{url}/99999", json={"millRate": 1}, headers=headers)
        assert missing.status_code == 404


class TestOwnershipIsolation:
    """Records of one owner are invisible to another"""

    @pytest.mark.asyncio
    async def test_other_owner_gets_404(self, client, owner, other_owner):
        prop = await _create_property(client, owner)
        intruder = auth_headers(other_owner)

        assert (await client.get(f"{API}/properties/{prop['id']}", headers=intruder)).status_code == 404
        assert (await client.put(
            f"{API}/properties/{prop['id']}", json={"name": "Mine now"}, headers=intruder,
        )).status_code == 404
        assert (await client.delete(f"{API}/properties/{prop['id']}", headers=intruder)).status_code == 404
        assert (await client.get(f"{API}/places/{prop['placeId']}", headers=intruder)).status_code == 404
        assert (await client.get(f"{API}/properties", headers=intruder)).json() == []

        still_there = await client.get(f"{API}/properties/{prop['id']}", headers=auth_headers(owner))
        assert still_there.json()["name"] is None

    @pytest.mark.asyncio
    async def test_places_cannot_link_to_another_owners_place(self, client, owner, other_owner):
        theirs = (await client.post(
            f"{API}/places", json={"name": "Aroostook", "kind": "COUNTY"}, headers=auth_headers(other_owner),
        )).json()
        headers = auth_headers(owner)

        created = await client.post(
            f"{API}/places", json={"name": "Mine", "parentId": theirs["id"], "countyId": theirs["id"]},
            headers=headers,
        )
        assert created.status_code == 404
        assert (await client.get(f"{API}/places", headers=headers)).json() == []

        mine = (await client.post(f"{API}/places", json={"name": "Mine"}, headers=headers)).json()
        updated = await client.put(
            f"{API}/places/{mine['id']}", json={"statePlaceId": theirs["id"]}, headers=headers,
        )
        assert updated.status_code == 404
        assert (await client.get(f"{API}/places/{mine['id']}", headers=headers)).json()["statePlaceId"] is None

        removed = await client.delete(f"{API}/places/{theirs['id']}", headers=auth_headers(other_owner))
        assert removed.status_code == 200

    @pytest.mark.asyncio
    async def test_places_can_link_to_own_places(self, client, owner):
        headers = auth_headers(owner)
        county = (await client.post(
            f"{API}/places", json={"name": "Aroostook", "kind": "COUNTY", "state": "Maine"}, headers=headers,
        )).json()

        town = await client.post(
            f"{API}/places",
            json={"name": "Houlton", "state": "Maine", "parentId": county["id"], "countyId": county["id"]},
            headers=headers,
        )

        assert town.status_code == 201
        assert town.json()["countyId"] == county["id"]


class TestPropertiesApi:

    @pytest.mark.asyncio
    async def test_create_resolves_contacts_and_place(self, client, owner):
        prop = await _create_property(client, owner, seller="Jane Seller", titleCompany="Katahdin Title")

        assert prop["seller"]["name"] == "Jane Seller"
        assert prop["titleCompany"]["name"] == "Katahdin Title"
        assert prop["place"]["name"] == "Houlton"
        assert prop["place"]["kind"] == "TOWN"
        assert prop["estimatedAnnualTaxes"] is None

    @pytest.mark.asyncio
    async def test_create_requires_address(self, client, owner):
        response = await client.post(f"{API}/properties", json={"name": "No address"}, headers=auth_headers(owner))

        assert response.status_code == 400
        fields = {detail["field"] for detail in response.json()["details"]}
        assert {"streetAddress", "city", "state"} <= fields

    @pytest.mark.asyncio
    async def test_valuation_sets_estimated_taxes(self, client, owner):
        headers = auth_headers(owner)
        prop = await _create_property(client, owner)
        await client.post(
            f"{API}/places/{prop['placeId']}/mill-rates", json={"year": 2024, "millRate": 20}, headers=headers,
        )

        valuation = await client.post(
            f"{API}/properties/{prop['id']}/valuations",
            json={"year": 2024, "assessedValue": 100000, "marketValue": 120000},
            headers=headers,
        )
        assert valuation.status_code == 201

        refreshed = (await client.get(f"{API}/properties/{prop['id']}", headers=headers)).json()
        assert refreshed["assessedValue"] == 100000
        assert refreshed["marketValue"] == 120000
        assert refreshed["estimatedAnnualTaxes"] == 2000

        history = (await client.get(f"{API}/properties/{prop['id']}/tax-history", headers=headers)).json()
        assert history["current"]["year"] == 2024
        assert history["current"]["marketTax"] == 2400
        assert history["assessedTrend"] is None

    @pytest.mark.asyncio
    async def test_tax_payments(self, client, owner):
        headers = auth_headers(owner)
        prop = await _create_property(client, owner)
        url = f"{API}/properties/{prop['id']}/tax-payments"

        created = await client.post(
            url, json={"year": 2023, "amount": 1875.5, "paymentDate": "2023-10-01T00:00:00"}, headers=headers,
        )
        assert created.status_code == 201
        assert created.json()["amount"] == 1875.5

        duplicate = await client.post(
            url, json={"year": 2023, "amount": 10, "paymentDate": "2023-11-01T00:00:00"}, headers=headers,
        )
        assert duplicate.status_code == 409

        later = await client.post(
            url, json={"year": 2024, "amount": 1900, "paymentDate": "2024-10-01T00:00:00"}, headers=headers,
        )
        moved = await client.put(f"{url}/{later.json()['id']}", json={"year": 2023}, headers=headers)
        assert moved.status_code == 409

        # Unchanged year on update is not a conflict with itself
        same = await client.put(f"{url}/{later.json()['id']}", json={"year": 2024, "amount": 1950}, headers=headers)
        assert same.status_code == 200
        assert same.json()["amount"] == 1950

        listing = (await client.get(url, headers=headers)).json()
        assert [p["year"] for p in listing] == [2024, 2023]

    @pytest.mark.asyncio
    async def test_tax_payment_year_out_of_range(self, client, owner):
        prop = await _create_property(client, owner)

        response = await client.post(
            f"{API}/properties/{prop['id']}/tax-payments",
            json={"year": 1800, "amount": 10, "paymentDate": "2023-10-01T00:00:00"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "year"


class TestDealsApi:

    @pytest.mark.asyncio
    async def test_promote_won_deal(self, client, owner):
        headers = auth_headers(owner)
        deal = (await client.post(
            f"{API}/deals",
            json={
                "name": "Ridge Road lot",
                "dealStage": "WON",
                "streetAddress": "12 Ridge Rd",
                "city": "Houlton",
                "state": "Maine",
                "county": "Aroostook",
                "placeType": "TOWN",
                "seller": "Jane Seller",
            },
            headers=headers,
        )).json()

        response = await client.post(f"{API}/deals/{deal['id']}/promote", headers=headers)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Deal successfully promoted to property"
        assert body["deal"]["promotedToPropertyId"] == body["property"]["id"]
        assert body["property"]["seller"]["name"] == "Jane Seller"
        assert body["property"]["originalDeal"]["id"] == deal["id"]

        again = await client.post(f"{API}/deals/{deal['id']}/promote", headers=headers)
        assert again.status_code == 400
        assert again.json()["error"] == "BUSINESS_RULE_VIOLATION"

    @pytest.mark.asyncio
    async def test_lead_cannot_be_promoted(self, client, owner):
        headers = auth_headers(owner)
        deal = (await client.post(f"{API}/deals", json={"name": "Maybe"}, headers=headers)).json()
        assert deal["dealStage"] == "LEAD"
        assert deal["dealStatus"] == "ACTIVE"

        response = await client.post(f"{API}/deals/{deal['id']}/promote", headers=headers)

        assert response.status_code == 400
        assert (await client.get(f"{API}/properties", headers=headers)).json() == []

    @pytest.mark.asyncio
    async def test_unknown_place_type_rejected(self, client, owner):
        response = await client.post(
            f"{API}/deals",
            json={"name": "Lot", "county": "Aroostook", "placeType": "COUNTY"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400


class TestTaxesApi:

    @pytest.mark.asyncio
    async def test_portfolio_summary(self, client, owner):
        headers = auth_headers(owner)
        prop = await _create_property(client, owner, propertyTaxProration=250)
        await client.post(
            f"{API}/places/{prop['placeId']}/mill-rates", json={"year": 2024, "millRate": 20}, headers=headers,
        )
        await client.post(
            f"{API}/properties/{prop['id']}/valuations", json={"year": 2024, "assessedValue": 50000},
            headers=headers,
        )

        response = await client.get(f"{API}/taxes", headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["summary"]["totalProperties"] == 1
        assert body["summary"]["totalEstimatedAnnualTaxes"] == 1000
        assert body["summary"]["averageEstimatedTaxes"] == 1000
        assert body["summary"]["totalPropertyTaxProration"] == 250
        houlton = body["propertiesByState"]["Maine"]["places"]["Houlton"]
        assert houlton["millRate"] == 20
        assert houlton["propertyIds"] == [prop["id"]]
        assert body["properties"][0]["estimatedAnnualTaxes"] == 1000

    @pytest.mark.asyncio
    async def test_empty_portfolio(self, client, owner):
        body = (await client.get(f"{API}/taxes", headers=auth_headers(owner))).json()

        assert body["summary"]["averageEstimatedTaxes"] == 0
        assert body["propertiesByState"] == {}


class TestAnalyticsApi:

    @pytest.mark.asyncio
    async def test_county_mill_rates(self, client, owner):
        headers = auth_headers(owner)
        county = (await client.post(
            f"{API}/places", json={"name": "Aroostook", "kind": "COUNTY", "state": "Maine"}, headers=headers,
        )).json()
        for year, rate in ((2022, 9.5), (2024, 10.25)):
            await client.post(
                f"{API}/places/{county['id']}/mill-rates", json={"year": year, "millRate": rate}, headers=headers,
            )

        rows = (await client.get(f"{API}/analytics/mill-rates", headers=headers)).json()

        assert [(r["year"], r["county"], r["millRate"]) for r in rows] == [
            (2024, "Aroostook", 10.25), (2022, "Aroostook", 9.5),
        ]


class TestPeopleApi:

    @pytest.mark.asyncio
    async def test_contacts_list_their_properties(self, client, owner):
        headers = auth_headers(owner)
        prop = await _create_property(client, owner, seller="Jane Seller")

        people = (await client.get(f"{API}/people", headers=headers)).json()
        assert [p["name"] for p in people] == ["Jane Seller"]
        assert people[0]["role"] == "Seller"
        assert [p["id"] for p in people[0]["propertiesAsSeller"]] == [prop["id"]]

        duplicate = await client.post(f"{API}/people", json={"name": "Jane Seller"}, headers=headers)
        assert duplicate.status_code == 409

    @pytest.mark.asyncio
    async def test_deleting_contact_keeps_property(self, client, owner):
        headers = auth_headers(owner)
        prop = await _create_property(client, owner, seller="Jane Seller")

        deleted = await client.delete(f"{API}/people/{prop['seller']['id']}", headers=headers)
        assert deleted.status_code == 200

        refreshed = (await client.get(f"{API}/properties/{prop['id']}", headers=headers)).json()
        assert refreshed["seller"] is None
        assert refreshed["streetAddress"] == "12 Ridge Rd"
