"""Deterministic cost breakdown arithmetic.

Quantities follow the cost item's unit kind: area units use the project
area, length units use a tenth of it as an approximate perimeter, and every
other unit counts once. Money and quantities are rounded to cents with
half-up rounding on the decimal form of the float, and the total is the sum
of the rounded line totals so the breakdown always adds up.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from app.core.exceptions import ValidationError
from app.schemas.catalog import CostItemRecord, RegionRecord, UnitKind
from app.schemas.estimate import BreakdownLine, CostBreakdown

LENGTH_FACTOR = 0.1
CENT = Decimal("0.01")


def round_half_up(value: float) -> Decimal:
    """Round to two decimals, halves away from zero (2.675 -> 2.68)."""
    return Decimal(repr(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def quantity_for(item: CostItemRecord, area: float) -> float:
    kind = item.unit_kind
    if kind == UnitKind.AREA:
        return area
    if kind == UnitKind.LENGTH:
        return area * LENGTH_FACTOR
    return 1.0


def compute_breakdown(
    cost_items: Iterable[CostItemRecord],
    region: RegionRecord,
    area: float,
) -> CostBreakdown:
    """Price every cost item for the given region and area.

    Lines keep the order of ``cost_items``. Line totals are computed from
    unrounded operands and rounded once.

    Raises:
        ValidationError: If area is negative
    """
    if area < 0:
        raise ValidationError(f"Area must not be negative, got {area}")

    lines = []
    total = Decimal("0")
    for item in cost_items:
        adjusted_cost = item.base_cost * region.cost_multiplier
        quantity = quantity_for(item, area)
        line_total = round_half_up(quantity * adjusted_cost)
        total += line_total
        lines.append(
            BreakdownLine(
                item=item.name,
                quantity=float(round_half_up(quantity)),
                unit_cost=float(round_half_up(adjusted_cost)),
                total_cost=float(line_total),
                unit=item.unit,
            )
        )

    return CostBreakdown(lines=lines, total_cost=float(total))
