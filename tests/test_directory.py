"""Tests for principal directories."""

import uuid

import psycopg
import pytest
from mirror import (
    DirectoryError,
    DirectoryPrincipal,
    MemoryPrincipalDirectory,
    PostgresPrincipalDirectory,
)
from psycopg.rows import dict_row, kwargs_row

from tests.helpers import FakeCursor, PlainUser


class TestMemoryPrincipalDirectory:
    def test_find_by_id(self, directory, users):
        assert directory.find_by_id(1) is users[1]
        assert directory.find_by_id(404) is None

    def test_find_by_email(self, directory, users):
        assert directory.find_by_email("plain@example.com") is users[3]
        assert directory.find_by_email("nobody@example.com") is None

    def test_add(self):
        directory = MemoryPrincipalDirectory()
        user = PlainUser("abc", "abc@example.com")

        directory.add(user)

        assert directory.find_by_id("abc") is user


class TestPostgresPrincipalDirectory:
    def test_find_by_id(self):
        cursor = FakeCursor(
            columns=("id", "email", "name"),
            rows=[(7, "alice@example.com", "Alice")],
        )
        directory = PostgresPrincipalDirectory(cursor)

        principal = directory.find_by_id(7)

        assert principal == DirectoryPrincipal(7, "alice@example.com")
        assert principal.attributes == {"name": "Alice"}
        assert cursor.executed == [
            ("SELECT * FROM users WHERE id = %s LIMIT 1", (7,))
        ]

    def test_find_by_email(self):
        cursor = FakeCursor(columns=("id", "email"), rows=[(8, "bob@example.com")])
        directory = PostgresPrincipalDirectory(cursor, table="auth.accounts")

        principal = directory.find_by_email("bob@example.com")

        assert principal.id == 8
        assert cursor.executed == [
            (
                "SELECT * FROM auth.accounts WHERE email = %s LIMIT 1",
                ("bob@example.com",),
            )
        ]

    def test_uuid_ids_become_strings(self):
        """uuid columns come back from psycopg as uuid.UUID."""
        user_id = uuid.uuid4()
        cursor = FakeCursor(columns=("id", "email"), rows=[(user_id, "u@example.com")])
        directory = PostgresPrincipalDirectory(cursor)

        principal = directory.find_by_email("u@example.com")

        assert principal.id == str(user_id)
        assert isinstance(principal.id, str)

    def test_integer_ids_are_kept(self):
        cursor = FakeCursor(columns=("id", "email"), rows=[(9, "n@example.com")])

        assert PostgresPrincipalDirectory(cursor).find_by_id(9).id == 9

    def test_missing_row_is_none(self):
        directory = PostgresPrincipalDirectory(FakeCursor(columns=("id", "email")))

        assert directory.find_by_id(1) is None
        assert directory.find_by_email("x@example.com") is None

    def test_custom_columns_and_factory(self):
        cursor = FakeCursor(columns=("user_id", "mail"), rows=[("u-1", "c@example.com")])
        directory = PostgresPrincipalDirectory(
            cursor,
            id_column="user_id",
            email_column="mail",
            factory=lambda row: PlainUser(row["user_id"], row["mail"]),
        )

        principal = directory.find_by_id("u-1")

        assert isinstance(principal, PlainUser)
        assert principal.id == "u-1"
        assert cursor.executed[0][0] == "SELECT * FROM users WHERE user_id = %s LIMIT 1"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"table": "users; DROP TABLE users"},
            {"table": ""},
            {"table": "auth..users"},
            {"id_column": "id = id OR 1"},
            {"email_column": "email--"},
        ],
    )
    def test_rejects_unsafe_identifiers(self, kwargs):
        with pytest.raises(ValueError, match="Invalid"):
            PostgresPrincipalDirectory(FakeCursor(), **kwargs)

    @pytest.mark.parametrize("factory", [dict_row, kwargs_row])
    def test_rejects_dict_row_factories(self, factory):
        cursor = FakeCursor()
        cursor.row_factory = factory

        with pytest.raises(ValueError, match="tuple row factory"):
            PostgresPrincipalDirectory(cursor)

    def test_database_errors_are_wrapped(self):
        error = psycopg.OperationalError("connection lost")
        directory = PostgresPrincipalDirectory(FakeCursor(error=error))

        with pytest.raises(DirectoryError, match="connection lost") as exc_info:
            directory.find_by_id(1)

        assert exc_info.value.__cause__ is error
        assert exc_info.value.sqlstate is None
