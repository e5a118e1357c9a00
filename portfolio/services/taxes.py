"""Tax aggregation engine

Estimated property tax is ``assessed value * mill rate / 1000`` (a mill rate
is dollars owed per $1,000 of assessed value). The portfolio summary works
from the mirrored "current" values on properties and places; the per-year
calculations work from the valuation and mill-rate histories directly.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portfolio.models.place import Place, PlaceKind
from portfolio.models.property import Property
from portfolio.models.deal import Deal
from portfolio.models.mill_rate import MillRateHistory
from portfolio.services.ownership import owned, get_owned

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def _dec(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def estimate_annual_tax(assessed_value: Any, mill_rate: Any) -> Optional[Decimal]:
    """Estimated yearly tax, or None unless both inputs are present and non-zero"""
    if not assessed_value or not mill_rate:
        return None
    return (_dec(assessed_value) * _dec(mill_rate) / 1000).quantize(CENTS)


# Portfolio summary

@dataclass
class PlaceTaxGroup:
    """Totals for one place within a state"""
    mill_rate: Optional[Decimal] = None
    count: int = 0
    total_estimated_taxes: Decimal = ZERO
    total_state_tax_stamps: Decimal = ZERO
    total_property_tax_proration: Decimal = ZERO
    property_ids: List[int] = field(default_factory=list)


@dataclass
class StateTaxGroup:
    """Totals for one state plus its per-place breakdown"""
    count: int = 0
    total_estimated_taxes: Decimal = ZERO
    total_state_tax_stamps: Decimal = ZERO
    total_property_tax_proration: Decimal = ZERO
    places: Dict[str, PlaceTaxGroup] = field(default_factory=dict)


@dataclass
class TaxSummary:
    total_properties: int
    properties_with_tax_data: int
    total_estimated_annual_taxes: Decimal
    total_state_tax_stamps: Decimal
    total_property_tax_proration: Decimal
    average_estimated_taxes: Decimal


@dataclass
class PropertyTax:
    property: Any
    estimated_annual_taxes: Optional[Decimal]


@dataclass
class PortfolioTaxes:
    summary: TaxSummary
    properties_by_state: Dict[str, StateTaxGroup]
    properties: List[PropertyTax]


def _region(record: Any) -> tuple:
    place = getattr(record, "place", None)
    state = record.state or (place.state if place is not None else None) or "Unknown"
    place_name = (place.name if place is not None else None) or record.city or "Unknown Place"
    return state, place_name


def _group(groups: Dict[str, StateTaxGroup], record: Any) -> tuple:
    state, place_name = _region(record)
    state_group = groups.setdefault(state, StateTaxGroup())
    if place_name not in state_group.places:
        place = getattr(record, "place", None)
        state_group.places[place_name] = PlaceTaxGroup(
            mill_rate=_dec(place.mill_rate) if place is not None else None
        )
    return state_group, state_group.places[place_name]


def summarize_portfolio(properties: Sequence[Any], deals: Iterable[Any] = ()) -> PortfolioTaxes:
    """Aggregate estimated taxes, stamps and prorations across a portfolio.

    Properties are grouped by state (falling back to their place's state,
    then "Unknown") and by place name within the state (falling back to the
    city). Deals only add their state tax stamps, into groups created on
    demand, and never count as properties.
    """
    groups: Dict[str, StateTaxGroup] = {}
    rows: List[PropertyTax] = []
    total_estimated = ZERO
    total_stamps = ZERO
    total_proration = ZERO
    with_tax_data = 0

    for prop in properties:
        place = getattr(prop, "place", None)
        estimate = estimate_annual_tax(prop.assessed_value, place.mill_rate if place is not None else None)
        stamps = _dec(prop.state_tax_stamps) or ZERO
        proration = _dec(prop.property_tax_proration) or ZERO
        rows.append(PropertyTax(property=prop, estimated_annual_taxes=estimate))

        if estimate or stamps or proration:
            with_tax_data += 1
        total_estimated += estimate or ZERO
        total_stamps += stamps
        total_proration += proration

        state_group, place_group = _group(groups, prop)
        for group in (state_group, place_group):
            group.count += 1
            group.total_estimated_taxes += estimate or ZERO
            group.total_state_tax_stamps += stamps
            group.total_property_tax_proration += proration
        place_group.property_ids.append(prop.id)

    for deal in deals:
        stamps = _dec(deal.state_tax_stamps)
        if not stamps:
            continue
        with_tax_data += 1
        total_stamps += stamps
        state_group, place_group = _group(groups, deal)
        state_group.total_state_tax_stamps += stamps
        place_group.total_state_tax_stamps += stamps

    average = (total_estimated / with_tax_data).quantize(CENTS) if with_tax_data else ZERO

    summary = TaxSummary(
        total_properties=len(properties),
        properties_with_tax_data=with_tax_data,
        total_estimated_annual_taxes=total_estimated,
        total_state_tax_stamps=total_stamps,
        total_property_tax_proration=total_proration,
        average_estimated_taxes=average,
    )
    return PortfolioTaxes(summary=summary, properties_by_state=groups, properties=rows)


async def compute_portfolio_tax_summary(db: AsyncSession, owner_id: int) -> PortfolioTaxes:
    properties = await db.execute(
        owned(Property, owner_id, selectinload(Property.place)).order_by(Property.created_at.desc())
    )
    deals = await db.execute(owned(Deal, owner_id, selectinload(Deal.place)))

    result = summarize_portfolio(list(properties.scalars().all()), deals.scalars().all())
    logger.debug(
        f"Tax summary for user {owner_id}: {result.summary.total_properties} properties, "
        f"{result.summary.total_estimated_annual_taxes} estimated"
    )
    return result


# Per-year calculations

@dataclass
class TaxYear:
    """Tax for one year; ``year`` is None for an estimate from current values"""
    year: Optional[int]
    mill_rate: Decimal
    assessed_value: Optional[Decimal] = None
    market_value: Optional[Decimal] = None
    assessed_tax: Optional[Decimal] = None
    market_tax: Optional[Decimal] = None
    notes: Optional[str] = None


@dataclass
class TaxTrend:
    change: Decimal
    # None when the oldest year's tax rounds to zero
    percent_change: Optional[Decimal]


def _year_tax(value: Any, mill_rate: Any) -> Optional[Decimal]:
    # A recorded rate of zero is a real rate and yields zero tax
    if not value or mill_rate is None:
        return None
    return (_dec(value) * _dec(mill_rate) / 1000).quantize(CENTS)


def calculate_tax_for_year(year: int, mill_rates: Iterable[Any], valuations: Iterable[Any]) -> Optional[TaxYear]:
    """Tax for ``year`` when both a mill rate and a valuation exist for it"""
    rate = next((entry for entry in mill_rates if entry.year == year), None)
    valuation = next((entry for entry in valuations if entry.year == year), None)
    if rate is None or valuation is None:
        return None

    return TaxYear(
        year=year,
        mill_rate=_dec(rate.mill_rate),
        assessed_value=_dec(valuation.assessed_value),
        market_value=_dec(valuation.market_value),
        assessed_tax=_year_tax(valuation.assessed_value, rate.mill_rate),
        market_tax=_year_tax(valuation.market_value, rate.mill_rate),
        notes=rate.notes or valuation.assessment_notes,
    )


def calculate_taxes_for_all_years(mill_rates: Sequence[Any], valuations: Sequence[Any]) -> List[TaxYear]:
    """One TaxYear per year present in both histories, newest first"""
    years = {entry.year for entry in mill_rates} & {entry.year for entry in valuations}
    return [calculate_tax_for_year(year, mill_rates, valuations) for year in sorted(years, reverse=True)]


def current_tax_calculation(mill_rates: Sequence[Any], valuations: Sequence[Any]) -> Optional[TaxYear]:
    results = calculate_taxes_for_all_years(mill_rates, valuations)
    return results[0] if results else None


def _trend(amounts: List[Decimal]) -> Optional[TaxTrend]:
    # amounts are newest first
    if len(amounts) < 2:
        return None
    first, last = amounts[-1], amounts[0]
    change = last - first
    percent = (change / first * 100).quantize(CENTS) if first else None
    return TaxTrend(change=change, percent_change=percent)


def calculate_tax_trend(mill_rates: Sequence[Any], valuations: Sequence[Any]) -> Dict[str, Optional[TaxTrend]]:
    """Change between the oldest and newest taxed year, for assessed and market value"""
    results = calculate_taxes_for_all_years(mill_rates, valuations)
    return {
        "assessed": _trend([r.assessed_tax for r in results if r.assessed_tax is not None]),
        "market": _trend([r.market_tax for r in results if r.market_tax is not None]),
    }


@dataclass
class PropertyTaxHistory:
    years: List[TaxYear]
    current: Optional[TaxYear]
    assessed_trend: Optional[TaxTrend]
    market_trend: Optional[TaxTrend]


async def property_tax_history(db: AsyncSession, property_id: int, owner_id: int) -> PropertyTaxHistory:
    """Year-by-year taxes for a property from its own and its place's history.

    When no year appears in both histories the current figure is estimated
    from the mirrored values instead.
    """
    prop = await get_owned(
        db, Property, property_id, owner_id,
        selectinload(Property.valuation_histories),
        selectinload(Property.place).selectinload(Place.mill_rate_histories),
        label="Property", refresh=True,
    )

    mill_rates = list(prop.place.mill_rate_histories) if prop.place is not None else []
    valuations = list(prop.valuation_histories)

    years = calculate_taxes_for_all_years(mill_rates, valuations)
    current = years[0] if years else None
    if current is None and prop.place is not None and prop.place.mill_rate:
        current = TaxYear(
            year=None,
            mill_rate=_dec(prop.place.mill_rate),
            assessed_value=_dec(prop.assessed_value),
            market_value=_dec(prop.market_value),
            assessed_tax=estimate_annual_tax(prop.assessed_value, prop.place.mill_rate),
            market_tax=estimate_annual_tax(prop.market_value, prop.place.mill_rate),
            notes="Based on current mill rate",
        )

    trend = calculate_tax_trend(mill_rates, valuations)
    return PropertyTaxHistory(
        years=years,
        current=current,
        assessed_trend=trend["assessed"],
        market_trend=trend["market"],
    )


# Analytics

@dataclass
class CountyMillRate:
    year: int
    county: str
    mill_rate: Decimal
    place_name: str
    place_kind: PlaceKind


async def county_mill_rates(db: AsyncSession, owner_id: int) -> List[CountyMillRate]:
    """County-level mill-rate history, newest year first"""
    result = await db.execute(
        select(MillRateHistory, Place)
        .join(Place, MillRateHistory.place_id == Place.id)
        .where(
            MillRateHistory.owner_id == owner_id,
            Place.kind == PlaceKind.COUNTY,
        )
        .order_by(MillRateHistory.year.desc(), MillRateHistory.mill_rate.desc())
    )
    return [
        CountyMillRate(
            year=entry.year,
            county=place.name,
            mill_rate=_dec(entry.mill_rate),
            place_name=place.name,
            place_kind=place.kind,
        )
        for entry, place in result.all()
    ]
