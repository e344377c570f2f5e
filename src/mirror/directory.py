"""
Principal directories: find the account to impersonate by id or email.

- MemoryPrincipalDirectory: principals held in-process
- PostgresPrincipalDirectory: reads a users table through a psycopg cursor
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

import psycopg
from psycopg.rows import dict_row, kwargs_row

from mirror.base import DirectoryError

__all__ = [
    "DirectoryPrincipal",
    "MemoryPrincipalDirectory",
    "PostgresPrincipalDirectory",
]

# Row factories that yield dict-like rows (iteration gives keys, not values)
_DICT_LIKE_FACTORIES = frozenset({dict_row, kwargs_row})


@dataclass(frozen=True)
class DirectoryPrincipal:
    """Default principal type returned by PostgresPrincipalDirectory."""

    id: int | str
    email: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> DirectoryPrincipal:
        """Build a principal from a row. Ids that are neither int nor str
        (``uuid`` columns, for instance) are kept as their string form."""
        identifier = row["id"]
        if isinstance(identifier, bool) or not isinstance(identifier, (int, str)):
            identifier = str(identifier)
        extra = {k: v for k, v in row.items() if k not in ("id", "email")}
        return cls(id=identifier, email=row.get("email"), attributes=extra)


class MemoryPrincipalDirectory:
    """Directory over a fixed set of principals exposing ``id`` and ``email``."""

    def __init__(self, principals: Iterable[Any] = ()) -> None:
        self._by_id: dict[int | str, Any] = {}
        for principal in principals:
            self.add(principal)

    def add(self, principal: Any) -> None:
        self._by_id[principal.id] = principal

    def find_by_id(self, identifier: int | str) -> Any | None:
        return self._by_id.get(identifier)

    def find_by_email(self, email: str) -> Any | None:
        for principal in self._by_id.values():
            if getattr(principal, "email", None) == email:
                return principal
        return None


def _validate_identifier(value: str, what: str) -> str:
    """Allow ``name`` or ``schema.name`` made of plain SQL identifiers."""
    if not value or not all(part.isidentifier() for part in value.split(".")):
        raise ValueError(f"Invalid {what} name: {value!r}")
    return value


class PostgresPrincipalDirectory:
    """
    Looks principals up in a PostgreSQL table.

    Example:
        with conn.cursor() as cur:
            directory = PostgresPrincipalDirectory(cur, table="auth.users")
            user = directory.find_by_email("alice@example.com")

    Rows are turned into principals by ``factory`` (a callable taking the row
    as a dict). The default factory expects ``id`` and ``email`` columns; pass
    your own when the table names them differently. The cursor must use the
    default tuple row factory.
    """

    def __init__(
        self,
        cursor: psycopg.Cursor[tuple[Any, ...]],
        table: str = "users",
        id_column: str = "id",
        email_column: str = "email",
        factory: Callable[[dict[str, Any]], Any] = DirectoryPrincipal.from_row,
    ) -> None:
        if (
            hasattr(cursor, "row_factory")
            and cursor.row_factory in _DICT_LIKE_FACTORIES
        ):
            raise ValueError(
                "mirror requires tuple row factory (the default). "
                "Remove row_factory=dict_row or kwargs_row from your cursor/connection."
            )

        self.cursor = cursor
        self.table = _validate_identifier(table, "table")
        self.id_column = _validate_identifier(id_column, "column")
        self.email_column = _validate_identifier(email_column, "column")
        self.factory = factory

    def _fetch_one(self, sql: str, params: tuple[Any, ...]) -> dict[str, Any] | None:
        try:
            self.cursor.execute(sql, params)
            row = self.cursor.fetchone()
            if row is None:
                return None
            columns = [desc[0] for desc in self.cursor.description]
            return dict(zip(columns, row))
        except psycopg.Error as e:
            raise DirectoryError(str(e), getattr(e, "sqlstate", None)) from e

    def find_by_id(self, identifier: int | str) -> Any | None:
        row = self._fetch_one(
            f"SELECT * FROM {self.table} WHERE {self.id_column} = %s LIMIT 1",
            (identifier,),
        )
        return self.factory(row) if row is not None else None

    def find_by_email(self, email: str) -> Any | None:
        row = self._fetch_one(
            f"SELECT * FROM {self.table} WHERE {self.email_column} = %s LIMIT 1",
            (email,),
        )
        return self.factory(row) if row is not None else None
