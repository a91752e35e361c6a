"""Load select options for entity-backed fields from an async SQLAlchemy session.

Rendering is synchronous, so records are fetched first and registered as a
plain provider:

    await register_model_options(registry, "Project", db_session, Project)
    formation = Formation(task, registry=registry)
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from formation.options import OptionRegistry, pluck


async def fetch_records(db_session: AsyncSession, model: type, order_by: str | None = None) -> list[Any]:
    """Fetch every row of ``model``, optionally ordered by a column name."""
    query = select(model)
    if order_by:
        query = query.order_by(getattr(model, order_by).asc())
    result = await db_session.execute(query)
    return list(result.scalars().all())


async def fetch_options(
    db_session: AsyncSession,
    model: type,
    key: str = "id",
    label: str = "name",
) -> dict[Any, Any]:
    """Fetch ``{key: label}`` options for every row of ``model``, ordered by label."""
    records = await fetch_records(db_session, model, order_by=label)
    return pluck(records, label=label, key=key)


async def register_model_options(
    registry: OptionRegistry,
    reference: str,
    db_session: AsyncSession,
    model: type,
    order_by: str | None = "name",
) -> list[Any]:
    """Fetch the rows of ``model`` and register them under ``reference``."""
    records = await fetch_records(db_session, model, order_by=order_by)
    registry.register_entity(reference, lambda: records)
    return records
