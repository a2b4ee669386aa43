import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from app.core.exceptions import DatabaseError
from app.repositories.catalog_repository import (
    CostItemRepository,
    ProjectTypeRepository,
    RegionRepository,
)
from app.repositories.cost_doc_repository import CostDocRepository


def _sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect())).lower()


@pytest.fixture
def session():
    session = MagicMock()
    result = MagicMock()
    result.scalars.return_value.first.return_value = None
    result.scalars.return_value.all.return_value = []
    result.__iter__.return_value = iter([])
    session.execute = AsyncMock(return_value=result)
    session.flush = AsyncMock()
    return session


def _executed(session):
    return session.execute.await_args.args[0]


@pytest.mark.asyncio
async def test_region_match_uses_zip_or_name_with_lowest_id(session):
    await RegionRepository(session).find_match("Baltimore")

    sql = _sql(_executed(session))
    assert "regions.zip_code =" in sql
    assert "ilike" in sql
    assert "order by regions.id" in sql
    assert "limit" in sql


@pytest.mark.asyncio
async def test_project_type_match_is_case_insensitive_containment(session):
    await ProjectTypeRepository(session).find_by_name_fragment("epoxy")

    sql = _sql(_executed(session))
    assert "project_types.name ilike" in sql
    assert "order by project_types.id" in sql


@pytest.mark.asyncio
async def test_cost_items_ordered_by_id(session):
    items = await CostItemRepository(session).get_by_project_type(1)

    assert items == []
    sql = _sql(_executed(session))
    assert "cost_items.project_type_id =" in sql
    assert "order by cost_items.id" in sql


@pytest.mark.asyncio
async def test_find_similar_orders_by_distance_then_id(session):
    await CostDocRepository(session).find_similar([0.1] * 768, limit=5)

    sql = _sql(_executed(session))
    assert "<=>" in sql
    assert "cost_docs.embedding is not null" in sql
    assert sql.index("order by") < sql.index("cost_docs.id", sql.index("order by"))


@pytest.mark.asyncio
async def test_missing_embeddings_filters_by_prefix(session):
    await CostDocRepository(session).get_missing_embeddings(source_prefix="homewyse-scraper/", limit=10)

    sql = _sql(_executed(session))
    assert "cost_docs.embedding is null" in sql
    assert "cost_docs.source like" in sql
    assert "order by cost_docs.id" in sql


@pytest.mark.asyncio
async def test_sqlalchemy_errors_become_database_errors(session):
    session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection lost"))

    with pytest.raises(DatabaseError):
        await RegionRepository(session).find_match("21093")


@pytest.mark.asyncio
async def test_embedding_statistics_counts_rows_and_embeddings(session):
    session.execute.return_value.one.return_value = (4, 3)

    stats = await CostDocRepository(session).get_embedding_statistics(source_prefix="homewyse-scraper/")

    assert stats == {"total_documents": 4, "with_embeddings": 3}
    sql = _sql(_executed(session))
    assert "count(cost_docs.embedding)" in sql
    assert "cost_docs.source like" in sql


@pytest.mark.asyncio
async def test_update_embedding_flushes_without_committing(session):
    session.execute.return_value.rowcount = 1
    session.commit = AsyncMock()

    assert await CostDocRepository(session).update_embedding(5, [0.1] * 768) is True

    session.flush.assert_awaited_once()
    session.commit.assert_not_awaited()
    assert "update cost_docs" in _sql(_executed(session))
