"""History rollup engine.

Mill rates (per place) and valuations (per property) are kept as one row per
year. The parent row carries a copy of the latest year's values so that list
and tax views can read a "current" figure without touching the history. After
every add, update or delete the latest entry is looked up again and, where
applicable, copied onto the parent.

Updating an entry that is not the latest year does not touch the parent.
"""
from typing import Any, Dict, Iterable, List, Optional, Type
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.models.place import Place
from portfolio.models.property import Property
from portfolio.models.mill_rate import MillRateHistory
from portfolio.models.valuation import PropertyValuationHistory
from portfolio.exceptions import ConflictError, NotFoundError
from portfolio.services.ownership import owned, get_owned

logger = logging.getLogger(__name__)


def latest_entry(entries: Iterable[Any]) -> Optional[Any]:
    """Entry with the greatest year, or None for an empty history"""
    latest = None
    for entry in entries:
        if latest is None or entry.year > latest.year:
            latest = entry
    return latest


class HistoryRollup:
    """Year-keyed child records mirrored onto their parent.

    ``mirror`` maps history attribute -> parent attribute.
    """

    def __init__(
        self,
        parent_model: Type,
        history_model: Type,
        parent_key: str,
        mirror: Dict[str, str],
        label: str,
        parent_label: str,
    ):
        self.parent_model = parent_model
        self.history_model = history_model
        self.parent_key = parent_key
        self.mirror = mirror
        self.label = label
        self.parent_label = parent_label

    def _entries(self, parent_id: int, owner_id: int):
        return owned(self.history_model, owner_id).where(
            getattr(self.history_model, self.parent_key) == parent_id
        )

    async def _get_parent(self, db: AsyncSession, parent_id: int, owner_id: int):
        return await get_owned(db, self.parent_model, parent_id, owner_id, label=self.parent_label)

    async def _get_entry(self, db: AsyncSession, parent_id: int, entry_id: int, owner_id: int):
        result = await db.execute(
            self._entries(parent_id, owner_id).where(self.history_model.id == entry_id)
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            raise NotFoundError(message=f"{self.label} entry not found")
        return entry

    async def _latest(self, db: AsyncSession, parent_id: int, owner_id: int):
        result = await db.execute(
            self._entries(parent_id, owner_id)
            .order_by(self.history_model.year.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    def apply_mirror(self, parent: Any, entry: Optional[Any]) -> None:
        """Copy ``entry`` onto ``parent``; None clears every mirrored field"""
        for source, target in self.mirror.items():
            setattr(parent, target, getattr(entry, source) if entry is not None else None)

    async def list_entries(self, db: AsyncSession, parent_id: int, owner_id: int) -> List[Any]:
        await self._get_parent(db, parent_id, owner_id)
        result = await db.execute(
            self._entries(parent_id, owner_id).order_by(self.history_model.year.desc())
        )
        return list(result.scalars().all())

    async def add_entry(self, db: AsyncSession, parent_id: int, owner_id: int, data: Dict[str, Any]):
        parent = await self._get_parent(db, parent_id, owner_id)

        year = data["year"]
        existing = await db.execute(
            self._entries(parent_id, owner_id).where(self.history_model.year == year)
        )
        if existing.scalars().first() is not None:
            raise ConflictError(message=f"{self.label} for {year} already exists")

        entry = self.history_model(owner_id=owner_id, **{self.parent_key: parent_id}, **data)
        db.add(entry)
        await db.flush()

        latest = await self._latest(db, parent_id, owner_id)
        if latest is not None and latest.year == year:
            self.apply_mirror(parent, entry)
            logger.info(f"{self.parent_label} {parent_id} now mirrors {self.label.lower()} for {year}")

        await db.commit()
        return entry

    async def update_entry(
        self, db: AsyncSession, parent_id: int, entry_id: int, owner_id: int, data: Dict[str, Any]
    ):
        entry = await self._get_entry(db, parent_id, entry_id, owner_id)

        for field, value in data.items():
            setattr(entry, field, value)
        await db.flush()

        latest = await self._latest(db, parent_id, owner_id)
        if latest is not None and latest.year == entry.year:
            parent = await self._get_parent(db, parent_id, owner_id)
            self.apply_mirror(parent, entry)
            logger.info(f"{self.parent_label} {parent_id} re-mirrored {self.label.lower()} for {entry.year}")

        await db.commit()
        return entry

    async def delete_entry(self, db: AsyncSession, parent_id: int, entry_id: int, owner_id: int) -> None:
        entry = await self._get_entry(db, parent_id, entry_id, owner_id)

        await db.delete(entry)
        await db.flush()

        parent = await self._get_parent(db, parent_id, owner_id)
        latest = await self._latest(db, parent_id, owner_id)
        self.apply_mirror(parent, latest)
        if latest is None:
            logger.info(f"{self.parent_label} {parent_id} has no {self.label.lower()} history left")

        await db.commit()


mill_rate_rollup = HistoryRollup(
    parent_model=Place,
    history_model=MillRateHistory,
    parent_key="place_id",
    mirror={"mill_rate": "mill_rate"},
    label="Mill rate",
    parent_label="Place",
)

valuation_rollup = HistoryRollup(
    parent_model=Property,
    history_model=PropertyValuationHistory,
    parent_key="property_id",
    mirror={
        "assessed_value": "assessed_value",
        "market_value": "market_value",
        "assessment_date": "last_assessment_date",
        "assessment_notes": "assessment_notes",
    },
    label="Valuation",
    parent_label="Property",
)
