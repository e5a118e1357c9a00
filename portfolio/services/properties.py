"""Properties service: property CRUD and tax payments"""
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portfolio.models.property import Property
from portfolio.models.tax_payment import TaxPayment
from portfolio.exceptions import ConflictError, NotFoundError
from portfolio.services.ownership import owned, get_owned
from portfolio.services.people import resolve_person
from portfolio.services.places import resolve_place, resolve_town

logger = logging.getLogger(__name__)


PERSON_ROLES = {
    "seller": ("seller_id", "Seller"),
    "seller_agent": ("seller_agent_id", "Seller Agent"),
    "buyer_agent": ("buyer_agent_id", "Buyer Agent"),
    "title_company": ("title_company_id", "Title Company"),
}

PROPERTY_RELATIONS = (
    selectinload(Property.seller),
    selectinload(Property.seller_agent),
    selectinload(Property.buyer_agent),
    selectinload(Property.title_company),
    selectinload(Property.place),
    selectinload(Property.tax_payments),
    selectinload(Property.original_deal),
)


class PropertyService:
    """Property operations for one owner"""

    def __init__(self, db: AsyncSession, owner_id: int):
        self.db = db
        self.owner_id = owner_id

    async def list_properties(self) -> List[Property]:
        result = await self.db.execute(
            owned(Property, self.owner_id, *PROPERTY_RELATIONS).order_by(Property.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_property(self, property_id: int, refresh: bool = False) -> Property:
        return await get_owned(
            self.db, Property, property_id, self.owner_id, *PROPERTY_RELATIONS,
            label="Property", refresh=refresh,
        )

    async def _resolve_relations(self, data: Dict[str, Any], current: Optional[Property] = None) -> Dict[str, Any]:
        """Resolve contact names and the place; ``current`` supplies the stored address on update"""
        links: Dict[str, Any] = {}
        for field, (column, role) in PERSON_ROLES.items():
            person = await resolve_person(self.db, data.pop(field, None), self.owner_id, role=role)
            if person is not None:
                links[column] = person.id

        county = data.pop("county", None)
        place_type = data.pop("place_type", None)
        address_changed = any(key in data for key in ("city", "state")) or bool(county and place_type)
        city = data.get("city", current.city if current is not None else None)
        state = data.get("state", current.state if current is not None else None)
        if address_changed and city:
            if county and place_type:
                place = await resolve_place(self.db, city, state, county, place_type, self.owner_id)
            else:
                place = await resolve_town(self.db, city, state, self.owner_id)
            if place is not None:
                links["place_id"] = place.id

        return links

    async def create_property(self, data: Dict[str, Any]) -> Property:
        links = await self._resolve_relations(data)

        property_obj = Property(owner_id=self.owner_id, **data, **links)
        self.db.add(property_obj)
        await self.db.commit()
        logger.info(f"Created property {property_obj.id} for user {self.owner_id}")

        return await self.get_property(property_obj.id, refresh=True)

    async def update_property(self, property_id: int, data: Dict[str, Any]) -> Property:
        property_obj = await self.get_property(property_id)

        links = await self._resolve_relations(data, current=property_obj)
        for field, value in {**data, **links}.items():
            setattr(property_obj, field, value)

        await self.db.commit()
        return await self.get_property(property_obj.id, refresh=True)

    async def delete_property(self, property_id: int) -> None:
        """Delete a property with its valuation history and tax payments.

        A deal promoted into this property loses its link but keeps its
        promotion timestamp.
        """
        property_obj = await self.get_property(property_id)
        await self.db.delete(property_obj)
        await self.db.commit()
        logger.info(f"Deleted property {property_id} for user {self.owner_id}")

    # Tax payments

    async def list_tax_payments(self, property_id: int) -> List[TaxPayment]:
        await self.get_property(property_id)
        result = await self.db.execute(
            owned(TaxPayment, self.owner_id)
            .where(TaxPayment.property_id == property_id)
            .order_by(TaxPayment.year.desc())
        )
        return list(result.scalars().all())

    async def _get_tax_payment(self, property_id: int, payment_id: int) -> TaxPayment:
        result = await self.db.execute(
            owned(TaxPayment, self.owner_id).where(
                TaxPayment.id == payment_id,
                TaxPayment.property_id == property_id,
            )
        )
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundError(message="Tax payment not found")
        return payment

    async def _ensure_year_free(self, property_id: int, year: int) -> None:
        result = await self.db.execute(
            owned(TaxPayment, self.owner_id).where(
                TaxPayment.property_id == property_id,
                TaxPayment.year == year,
            )
        )
        if result.scalars().first() is not None:
            raise ConflictError(message=f"Tax payment for {year} already exists")

    async def create_tax_payment(self, property_id: int, data: Dict[str, Any]) -> TaxPayment:
        await self.get_property(property_id)
        await self._ensure_year_free(property_id, data["year"])

        payment = TaxPayment(owner_id=self.owner_id, property_id=property_id, **data)
        self.db.add(payment)
        await self.db.commit()
        logger.info(f"Recorded {payment.year} tax payment for property {property_id}")
        return payment

    async def update_tax_payment(self, property_id: int, payment_id: int, data: Dict[str, Any]) -> TaxPayment:
        payment = await self._get_tax_payment(property_id, payment_id)

        year = data.get("year")
        if year is not None and year != payment.year:
            await self._ensure_year_free(property_id, year)

        for field, value in data.items():
            setattr(payment, field, value)

        await self.db.commit()
        return payment

    async def delete_tax_payment(self, property_id: int, payment_id: int) -> None:
        payment = await self._get_tax_payment(property_id, payment_id)
        await self.db.delete(payment)
        await self.db.commit()
