"""Catalog snapshots used by the estimation pipeline.

Resolved catalog rows are copied into these models so the pure calculation
code never touches ORM instances or an open session.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

AREA_UNITS = frozenset({"sq ft", "sqft", "sf", "square feet", "square foot", "sq. ft.", "sq.ft."})
LENGTH_UNITS = frozenset({"linear ft", "lf", "lin ft", "linear feet", "linear foot", "ft"})
COUNT_UNITS = frozenset({"each", "ea", "unit", "units", "item", "items", "job", "project"})


class UnitKind(str, Enum):
    """How a cost item's quantity scales with the project."""

    AREA = "area"
    LENGTH = "length"
    COUNT = "count"
    OTHER = "other"

    @classmethod
    def from_unit(cls, unit: Optional[str]) -> "UnitKind":
        """Classify a free-text unit label such as ``sq ft`` or ``linear ft``."""
        normalized = " ".join((unit or "").lower().split())
        if normalized in AREA_UNITS:
            return cls.AREA
        if normalized in LENGTH_UNITS:
            return cls.LENGTH
        if normalized in COUNT_UNITS:
            return cls.COUNT
        return cls.OTHER


class RegionRecord(BaseModel):
    """Pricing region."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str
    zip_code: Optional[str] = None
    cost_multiplier: float = Field(gt=0)


class ProjectTypeRecord(BaseModel):
    """Project type."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str
    description: Optional[str] = None


class CostItemRecord(BaseModel):
    """Priced line item of a project type."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    name: str
    description: Optional[str] = None
    unit: str
    base_cost: float = Field(ge=0)
    labor_cost: Optional[float] = Field(default=None, ge=0)
    material_cost: Optional[float] = Field(default=None, ge=0)
    equipment_cost: Optional[float] = Field(default=None, ge=0)

    @property
    def unit_kind(self) -> UnitKind:
        return UnitKind.from_unit(self.unit)
