"""SQLAlchemy models for the cost corpus and the pricing catalog."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    TIMESTAMP,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.config import settings
from app.core.database import Base

EMBEDDING_DIMENSIONS = settings.ollama.embedding_dimensions


class CostDoc(Base):
    """A passage of cost knowledge, searchable once it has an embedding."""

    __tablename__ = "cost_docs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str | None] = mapped_column(String, nullable=True)
    doc_type: Mapped[str | None] = mapped_column(String, nullable=True)
    # "metadata" is reserved on declarative models
    doc_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSONB, nullable=True, default=dict
    )
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSIONS), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=lambda: datetime.now(timezone.utc)
    )


class Region(Base):
    """Pricing region with a multiplier applied to base costs."""

    __tablename__ = "regions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    zip_code: Mapped[str | None] = mapped_column(String, nullable=True)
    cost_multiplier: Mapped[Decimal] = mapped_column(
        Numeric(6, 3), nullable=False, default=Decimal("1.000")
    )


class ProjectType(Base):
    """Kind of construction work, e.g. epoxy flooring."""

    __tablename__ = "project_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    cost_items: Mapped[list["CostItem"]] = relationship(
        "CostItem", back_populates="project_type"
    )


class CostItem(Base):
    """A priced line item belonging to exactly one project type."""

    __tablename__ = "cost_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("project_types.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit: Mapped[str] = mapped_column(String, nullable=False)  # sq ft | linear ft | each | ...
    base_cost: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    labor_cost: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    material_cost: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    equipment_cost: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))

    project_type: Mapped["ProjectType"] = relationship("ProjectType", back_populates="cost_items")
