"""Composable WHERE / ORDER BY / LIMIT fragments for ``select()`` statements.

Each filter is a small value object with ``apply(stmt) -> stmt``; a filter
whose value is ``None`` leaves the statement unchanged, so optional query
predicates can be chained without branching:

    stmt = select(Task)
    stmt = EqualsFilter(Task.status, filters.status).apply(stmt)
    stmt = SearchFilter((Task.title, Task.description), filters.search).apply(stmt)
    stmt = OrderBy((Task.created_at, Task.id), "desc").apply(stmt)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, TypeAlias

from sqlalchemy import Select, func, or_
from sqlalchemy.orm import InstrumentedAttribute

Column: TypeAlias = "InstrumentedAttribute[Any]"


def _columns(value: Column | Sequence[Column]) -> tuple[Column, ...]:
    return tuple(value) if isinstance(value, Sequence) else (value,)


class StatementFilter(ABC):
    @abstractmethod
    def apply(self, statement: Select[Any]) -> Select[Any]: ...


@dataclass(frozen=True, slots=True)
class EqualsFilter(StatementFilter):
    """``column = value``."""

    column: Column
    value: Any

    def apply(self, statement: Select[Any]) -> Select[Any]:
        if self.value is None:
            return statement
        return statement.where(self.column == self.value)


@dataclass(frozen=True, slots=True)
class SearchFilter(StatementFilter):
    """Case-insensitive substring match on ANY of ``columns``.

    NULL columns never match.
    """

    columns: Column | Sequence[Column]
    term: str | None

    def apply(self, statement: Select[Any]) -> Select[Any]:
        if not self.term:
            return statement
        pattern = f"%{self.term.lower()}%"
        return statement.where(or_(*(func.lower(column).like(pattern) for column in _columns(self.columns))))


@dataclass(frozen=True, slots=True)
class BeforeAfter(StatementFilter):
    """Exclusive time window ``after < column < before``; either bound may be omitted."""

    column: Column
    before: datetime | None = None
    after: datetime | None = None

    def apply(self, statement: Select[Any]) -> Select[Any]:
        if self.after is not None:
            statement = statement.where(self.column > self.after)
        if self.before is not None:
            statement = statement.where(self.column < self.before)
        return statement


@dataclass(frozen=True, slots=True)
class OrderBy(StatementFilter):
    """Order by ``columns`` in one direction; list a unique column last for a stable order."""

    columns: Column | Sequence[Column]
    direction: Literal["asc", "desc"] = "asc"

    def apply(self, statement: Select[Any]) -> Select[Any]:
        columns = _columns(self.columns)
        if self.direction == "desc":
            return statement.order_by(*(column.desc() for column in columns))
        return statement.order_by(*(column.asc() for column in columns))


@dataclass(frozen=True, slots=True)
class LimitOffset(StatementFilter):
    limit: int
    offset: int = 0

    def apply(self, statement: Select[Any]) -> Select[Any]:
        return statement.limit(self.limit).offset(self.offset)
