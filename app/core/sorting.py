"""Shared sorting utilities for repository queries."""

from __future__ import annotations

from sqlalchemy import asc, desc
from sqlalchemy.orm import Query

from app.core.database import Base


def parse_order_by(
    model: type[Base],
    order_by: str | None,
    default_direction: str = "desc",
) -> list[tuple[str, str]]:
    """Parse ``"field:direction,field2"`` into ``(column, direction)`` pairs.

    Unknown columns are dropped and an unknown direction falls back to
    ``default_direction``. A field without a direction sorts ascending.
    """
    if not order_by:
        return []

    columns = model.__mapper__.columns  # type: ignore[attr-defined]
    keys: list[tuple[str, str]] = []
    for part in order_by.split(","):
        field, _, direction = part.strip().partition(":")
        if field not in columns or any(field == k for k, _ in keys):
            continue
        direction = direction or "asc"
        if direction not in ("asc", "desc"):
            direction = default_direction
        keys.append((field, direction))
    return keys


def apply_order_by(
    query: Query,  # type: ignore[type-arg]
    model: type[Base],
    order_by: str | None,
    default_field: str = "created_at",
    default_direction: str = "desc",
) -> Query:  # type: ignore[type-arg]
    """Apply ordering to a SQLAlchemy query.

    Args:
        query: The SQLAlchemy query to sort.
        model: The SQLAlchemy model class.
        order_by: Comma-separated sort keys in "field:direction" format
            (e.g. "order_status:asc,total:desc"). If None or nothing in it
            names a column, uses default_field and default_direction.
        default_field: Default column to sort by.
        default_direction: Default sort direction ("asc" or "desc").

    Returns:
        The query with ordering applied. ``id`` is always the final key so
        rows with equal sort values page consistently.
    """
    keys = parse_order_by(model, order_by, default_direction) or [
        (default_field, default_direction)
    ]
    if all(field != "id" for field, _ in keys):
        keys.append(("id", keys[-1][1]))

    for field, direction in keys:
        order_func = asc if direction == "asc" else desc
        query = query.order_by(order_func(getattr(model, field)))
    return query
