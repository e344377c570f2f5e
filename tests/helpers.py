"""Test helpers - principals, a controllable clock and a scripted cursor."""

from dataclasses import dataclass

from mirror import Impersonatable


@dataclass(eq=False)
class User(Impersonatable):
    """Principal with switchable policy answers."""

    id: int | str
    email: str
    may_impersonate: bool = True
    may_be_impersonated: bool = True

    def can_impersonate(self) -> bool:
        return self.may_impersonate

    def can_be_impersonated(self) -> bool:
        return self.may_be_impersonated


@dataclass(eq=False)
class PlainUser:
    """Principal that defines no policy methods at all."""

    id: int | str
    email: str


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCursor:
    """
    Stand-in for a psycopg cursor.

    Returns the queued rows in order and records every executed statement.
    """

    def __init__(self, columns=(), rows=(), error=None):
        self.description = [(name,) for name in columns]
        self._rows = list(rows)
        self._error = error
        self.executed: list[tuple[str, tuple]] = []

    def execute(self, sql, params=()):
        self.executed.append((sql, params))
        if self._error is not None:
            raise self._error

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None
