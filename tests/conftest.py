"""Pytest configuration and shared fixtures."""

from typing import Any, Callable

import pytest

from scaleseed.backends import StagingBackend
from scaleseed.config import ScaleSeedConfig

SMALL_COUNTS = {
    "workspaceCount": 3,
    "userCount": 12,
    "projectCount": 6,
    "taskCount": 120,
    "depCount": 60,
    "evProjectCount": 2,
    "evSnapshotWeeks": 4,
    "capacityDays": 14,
    "attachmentsCount": 40,
    "auditCount": 80,
}


class FakeCursor:
    """Minimal psycopg cursor double driven by a responder function."""

    def __init__(self, conn: "FakeConnection"):
        self.conn = conn
        self._rows: list[tuple] = []
        self.rowcount = -1

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc: Any) -> bool:
        return False

    def execute(self, query: Any, params: Any = None) -> None:
        text = query if isinstance(query, str) else repr(query)
        self.conn.executed.append((text, params))
        result = self.conn.responder(text, params)
        if isinstance(result, Exception):
            raise result
        if isinstance(result, int):
            self._rows = []
            self.rowcount = result
        else:
            self._rows = list(result or [])
            self.rowcount = len(self._rows)

    def fetchone(self) -> tuple | None:
        return self._rows[0] if self._rows else None

    def fetchall(self) -> list[tuple]:
        return list(self._rows)


class FakeConnection:
    """
    Records every statement and answers with ``responder(sql, params)``.

    The responder returns a list of row tuples, an int (rowcount, no rows) or
    an exception instance to raise.
    """

    def __init__(self, responder: Callable[[str, Any], Any] | None = None):
        self.responder = responder or (lambda sql, params: [])
        self.executed: list[tuple[str, Any]] = []

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)


@pytest.fixture
def fake_conn_factory() -> type[FakeConnection]:
    return FakeConnection


@pytest.fixture
def small_config() -> ScaleSeedConfig:
    """Seed config with counts small enough for in-memory runs."""
    return ScaleSeedConfig.from_options(seed=42, scale=0.01, overrides=SMALL_COUNTS)


@pytest.fixture
def strict_config() -> ScaleSeedConfig:
    return ScaleSeedConfig.from_options(
        seed=42, scale=0.01, strict_schema="true", overrides=SMALL_COUNTS
    )


@pytest.fixture
def staging() -> StagingBackend:
    return StagingBackend()
