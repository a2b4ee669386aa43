"""Database module for SQLAlchemy models."""

from app.database.models import CostDoc, CostItem, ProjectType, Region

__all__ = [
    "CostDoc",
    "CostItem",
    "ProjectType",
    "Region",
]
