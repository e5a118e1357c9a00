"""People service: contact resolution and CRUD"""
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portfolio.models.person import Person
from portfolio.exceptions import ConflictError
from portfolio.services.ownership import owned, get_owned, find_or_create

logger = logging.getLogger(__name__)


async def resolve_person(
    db: AsyncSession,
    name: Optional[str],
    owner_id: int,
    role: Optional[str] = None,
) -> Optional[Person]:
    """Find a contact by exact name for this owner, creating it if needed.

    Blank names resolve to None. Matching is case sensitive: "John Smith"
    and "john smith" are two different people.
    """
    if not name or not name.strip():
        return None

    defaults = {"role": role} if role else None
    return await find_or_create(db, Person, owner_id, {"name": name.strip()}, defaults)


PERSON_RELATIONS = (
    selectinload(Person.properties_as_seller),
    selectinload(Person.properties_as_seller_agent),
    selectinload(Person.properties_as_buyer_agent),
    selectinload(Person.properties_as_title_company),
    selectinload(Person.deals_as_seller),
    selectinload(Person.deals_as_seller_agent),
    selectinload(Person.deals_as_buyer_agent),
    selectinload(Person.deals_as_title_company),
)


class PersonService:
    """CRUD over an owner's contacts"""

    def __init__(self, db: AsyncSession, owner_id: int):
        self.db = db
        self.owner_id = owner_id

    async def list_people(self) -> List[Person]:
        result = await self.db.execute(
            owned(Person, self.owner_id, *PERSON_RELATIONS).order_by(Person.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_person(self, person_id: int, refresh: bool = False) -> Person:
        return await get_owned(
            self.db, Person, person_id, self.owner_id, *PERSON_RELATIONS,
            label="Person", refresh=refresh,
        )

    async def _ensure_unique_name(self, name: str, exclude_id: Optional[int] = None) -> None:
        stmt = owned(Person, self.owner_id).where(Person.name == name)
        if exclude_id is not None:
            stmt = stmt.where(Person.id != exclude_id)
        result = await self.db.execute(stmt)
        if result.scalars().first() is not None:
            raise ConflictError(message="A person with this name already exists")

    async def create_person(self, data: Dict[str, Any]) -> Person:
        await self._ensure_unique_name(data["name"])

        person = Person(owner_id=self.owner_id, **data)
        self.db.add(person)
        await self.db.commit()
        logger.info(f"Created person {person.id} for user {self.owner_id}")

        return await self.get_person(person.id, refresh=True)

    async def update_person(self, person_id: int, data: Dict[str, Any]) -> Person:
        person = await self.get_person(person_id)

        if "name" in data and data["name"] != person.name:
            await self._ensure_unique_name(data["name"], exclude_id=person.id)

        for field, value in data.items():
            setattr(person, field, value)

        await self.db.commit()
        return await self.get_person(person.id, refresh=True)

    async def delete_person(self, person_id: int) -> None:
        """Delete a contact; deals and properties referencing it keep their other data"""
        person = await self.get_person(person_id)
        await self.db.delete(person)
        await self.db.commit()
        logger.info(f"Deleted person {person_id} for user {self.owner_id}")
