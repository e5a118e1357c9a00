"""Deals service: pipeline CRUD and promotion of won deals to properties"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portfolio.config import settings
from portfolio.models.deal import Deal, DealStage
from portfolio.models.property import Property
from portfolio.exceptions import BusinessRuleError, ValidationError
from portfolio.services.ownership import owned, get_owned
from portfolio.services.people import resolve_person
from portfolio.services.places import resolve_place, resolve_town
from portfolio.services.properties import PropertyService

logger = logging.getLogger(__name__)


# Request field -> (deal foreign key, role recorded on newly created people)
PERSON_ROLES = {
    "seller": ("seller_id", "Seller"),
    "seller_agent": ("seller_agent_id", "Seller Agent"),
    "buyer_agent": ("buyer_agent_id", "Buyer Agent"),
    "title_company": ("title_company_id", "Title Company"),
}

# Address hierarchy hints; used for place resolution, not stored on the deal
PLACE_HINTS = ("county", "place_type")

DEAL_RELATIONS = (
    selectinload(Deal.seller),
    selectinload(Deal.seller_agent),
    selectinload(Deal.buyer_agent),
    selectinload(Deal.title_company),
    selectinload(Deal.place),
    selectinload(Deal.promoted_property),
)

PROMOTION_REQUIRED_FIELDS = (
    ("street_address", "Street address is required for property creation"),
    ("city", "City is required for property creation"),
    ("state", "State is required for property creation"),
)


async def resolve_relations(db: AsyncSession, data: Dict[str, Any], owner_id: int) -> Dict[str, Any]:
    """Turn person names and address hints in ``data`` into foreign keys.

    Pops the ``seller``/``seller_agent``/``buyer_agent``/``title_company`` names
    and the ``county``/``place_type`` hints, resolving them to people and a
    place. Only relations that resolved are returned, so an update leaves the
    others untouched.
    """
    names = {field: data.pop(field, None) for field in PERSON_ROLES}
    county, place_type = (data.pop(hint, None) for hint in PLACE_HINTS)

    # One session cannot run statements concurrently, so these run in turn
    links: Dict[str, Any] = {}
    for field, (column, role) in PERSON_ROLES.items():
        person = await resolve_person(db, names[field], owner_id, role=role)
        if person is not None:
            links[column] = person.id

    if data.get("city") and data.get("state"):
        place = await resolve_place(db, data["city"], data["state"], county, place_type, owner_id)
        if place is not None:
            links["place_id"] = place.id

    return links


def is_promoted(deal: Deal) -> bool:
    """True once a deal has been promoted, even if its property was later deleted"""
    return bool(deal.promoted_to_property_id or deal.promoted_at)


def missing_promotion_fields(deal: Deal) -> List[str]:
    """Messages for every address field a deal lacks for promotion"""
    return [message for field, message in PROMOTION_REQUIRED_FIELDS if not getattr(deal, field)]


def property_from_deal(deal: Deal, place_id: Optional[int]) -> Property:
    """Build the Property a won deal turns into.

    The deal's target closing date becomes the property's seller-financing
    balloon due date. Closing-cost detail stays on the deal.
    """
    return Property(
        owner_id=deal.owner_id,
        name=deal.name,
        description=deal.description,
        street_address=deal.street_address,
        city=deal.city,
        state=deal.state,
        zip_code=deal.zip_code,
        place_id=place_id,
        acres=deal.acres,
        zoning=deal.zoning,
        balloon_due_date=deal.target_closing_date,
        type=settings.PROMOTED_PROPERTY_TYPE,
        available=True,
    )


class DealService:
    """Deal pipeline operations for one owner"""

    def __init__(self, db: AsyncSession, owner_id: int):
        self.db = db
        self.owner_id = owner_id

    async def list_deals(self) -> List[Deal]:
        result = await self.db.execute(
            owned(Deal, self.owner_id, *DEAL_RELATIONS).order_by(Deal.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_deal(self, deal_id: int, refresh: bool = False) -> Deal:
        return await get_owned(
            self.db, Deal, deal_id, self.owner_id, *DEAL_RELATIONS,
            label="Deal", refresh=refresh,
        )

    async def create_deal(self, data: Dict[str, Any]) -> Deal:
        links = await resolve_relations(self.db, data, self.owner_id)

        deal = Deal(owner_id=self.owner_id, **data, **links)
        self.db.add(deal)
        await self.db.commit()
        logger.info(f"Created deal {deal.id} ({deal.name}) for user {self.owner_id}")

        return await self.get_deal(deal.id, refresh=True)

    async def update_deal(self, deal_id: int, data: Dict[str, Any]) -> Deal:
        deal = await self.get_deal(deal_id)

        links = await resolve_relations(self.db, data, self.owner_id)
        for field, value in {**data, **links}.items():
            setattr(deal, field, value)

        await self.db.commit()
        return await self.get_deal(deal.id, refresh=True)

    async def delete_deal(self, deal_id: int) -> None:
        deal = await self.get_deal(deal_id)

        if is_promoted(deal):
            raise BusinessRuleError(message="Cannot delete deal that has been promoted to a property")

        await self.db.delete(deal)
        await self.db.commit()
        logger.info(f"Deleted deal {deal_id} for user {self.owner_id}")

    async def promote_deal(self, deal_id: int) -> Tuple[Deal, Property]:
        """Convert a won deal into a property and link the two.

        Checks run in order and the first failure wins: ownership, not yet
        promoted, stage WON, then address completeness (all gaps reported at
        once). Place resolution, property creation and the deal update are
        committed together.
        """
        deal = await self.get_deal(deal_id)

        if is_promoted(deal):
            raise BusinessRuleError(message="Deal has already been promoted to a property")

        if deal.deal_stage != DealStage.WON:
            raise BusinessRuleError(
                message="Only deals in WON stage can be promoted to properties",
                details={"deal_stage": deal.deal_stage.value},
            )

        missing = missing_promotion_fields(deal)
        if missing:
            raise ValidationError(
                message="Missing required information for property creation",
                details=missing,
            )

        place_id = deal.place_id
        if place_id is None:
            place = await resolve_town(self.db, deal.city, deal.state, self.owner_id)
            place_id = place.id if place is not None else None

        property_obj = property_from_deal(deal, place_id)
        self.db.add(property_obj)
        deal.promoted_property = property_obj
        deal.promoted_at = datetime.utcnow()
        await self.db.commit()

        logger.info(f"Promoted deal {deal.id} to property {property_obj.id} for user {self.owner_id}")

        deal = await self.get_deal(deal.id, refresh=True)
        property_obj = await PropertyService(self.db, self.owner_id).get_property(property_obj.id, refresh=True)
        return deal, property_obj
