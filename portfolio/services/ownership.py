"""Owner-scoped data access helpers.

Every portfolio table carries an ``owner_id``. Services never query those
tables directly: they go through :func:`owned` / :func:`get_owned`, which
inject the owner filter, so a row belonging to someone else is
indistinguishable from a row that does not exist.
"""
from typing import Any, Dict, Optional, Sequence, Type, TypeVar

from sqlalchemy import select, Select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import insert_ignore
from portfolio.exceptions import NotFoundError

T = TypeVar("T")


def owned(model: Type[T], owner_id: int, *options) -> Select:
    """SELECT of ``model`` restricted to rows owned by ``owner_id``"""
    stmt = select(model).where(model.owner_id == owner_id)
    if options:
        stmt = stmt.options(*options)
    return stmt


async def get_owned(
    db: AsyncSession,
    model: Type[T],
    object_id: int,
    owner_id: int,
    *options,
    label: Optional[str] = None,
    refresh: bool = False,
) -> T:
    """Fetch one owned row or raise NotFoundError"""
    stmt = owned(model, owner_id, *options).where(model.id == object_id)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    result = await db.execute(stmt)
    obj = result.scalar_one_or_none()
    if obj is None:
        raise NotFoundError(message=f"{label or model.__name__} not found")
    return obj


def _match(model, lookup: Dict[str, Any]) -> Sequence:
    clauses = []
    for field, value in lookup.items():
        column = getattr(model, field)
        clauses.append(column.is_(None) if value is None else column == value)
    return clauses


async def find_or_create(
    db: AsyncSession,
    model: Type[T],
    owner_id: int,
    lookup: Dict[str, Any],
    defaults: Optional[Dict[str, Any]] = None,
) -> T:
    """Return the owned row matching ``lookup``, inserting it first if missing.

    ``lookup`` must cover a unique index of ``model`` so that a concurrent
    insert of the same row is absorbed by the conflict clause and the
    re-select below returns the winner.
    """
    stmt = owned(model, owner_id).where(*_match(model, lookup))
    result = await db.execute(stmt)
    obj = result.scalars().first()
    if obj is not None:
        return obj

    values = {**(defaults or {}), **lookup, "owner_id": owner_id}
    await insert_ignore(db, model, values)

    result = await db.execute(stmt)
    return result.scalars().one()
