"""
Import county-level mill rate history from a CSV file.

The file has a ``year`` column followed by one column per county:

    year,Aroostook,Franklin,Hancock
    2023,10.25,8.1,
    2024,10.5,8.4,7.9

Blank cells are skipped. Counties are created under the given state with the
place resolver, and each rate is recorded through the mill rate history so
the county's current rate ends up at its latest year.

Run with: python -m scripts.seed_mill_rates rates.csv --user-id 1 --state Maine
"""
import asyncio
import csv
import sys
import os
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Tuple

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import async_session_maker, init_db, close_db
from portfolio.exceptions import ConflictError
from portfolio.services.history import mill_rate_rollup
from portfolio.services.places import resolve_county, resolve_state


def parse_county_mill_rates(lines: Iterable[str]) -> List[Tuple[int, str, Decimal]]:
    """(year, county, mill rate) for every filled cell of the CSV"""
    reader = csv.reader(lines)
    header = next(reader, None)
    if not header:
        return []

    counties = [name.strip() for name in header[1:]]
    rates = []
    for row in reader:
        if not row or not row[0].strip():
            continue
        year = int(row[0])
        for county, cell in zip(counties, row[1:]):
            cell = cell.strip()
            if not county or not cell:
                continue
            try:
                rates.append((year, county, Decimal(cell)))
            except InvalidOperation:
                print(f"  Skipping non-numeric rate {cell!r} for {county} {year}")
    return rates


async def import_county_mill_rates(
    db: AsyncSession,
    owner_id: int,
    state: str,
    rates: Iterable[Tuple[int, str, Decimal]],
) -> Dict[str, int]:
    """Record the rates for ``owner_id``; years already on file are left alone"""
    state_place = await resolve_state(db, state, owner_id)
    await db.commit()

    counts = {"created": 0, "skipped": 0}
    county_ids: Dict[str, int] = {}
    for year, county, mill_rate in rates:
        if county not in county_ids:
            county_place = await resolve_county(db, state_place, county, owner_id)
            await db.commit()
            county_ids[county] = county_place.id

        try:
            await mill_rate_rollup.add_entry(
                db, county_ids[county], owner_id,
                {"year": year, "mill_rate": mill_rate, "notes": f"{county} County mill rate for {year}"},
            )
            counts["created"] += 1
        except ConflictError:
            counts["skipped"] += 1

    return counts


async def main(path: str, owner_id: int, state: str):
    await init_db()

    with open(path, newline="", encoding="utf-8") as f:
        rates = parse_county_mill_rates(f)

    async with async_session_maker() as session:
        counts = await import_county_mill_rates(session, owner_id, state, rates)

    await close_db()

    print(f"\n{'='*50}")
    print(f"Mill rates imported for {state}")
    print(f"{'='*50}")
    print(f"Created: {counts['created']}")
    print(f"Already on file: {counts['skipped']}")
    print(f"{'='*50}\n")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Import county mill rate history")
    parser.add_argument("csv_file", help="CSV with a year column and one column per county")
    parser.add_argument("--user-id", type=int, required=True, help="Owner of the imported places")
    parser.add_argument("--state", type=str, default="Maine", help="State the counties belong to")

    args = parser.parse_args()
    asyncio.run(main(args.csv_file, args.user_id, args.state))
