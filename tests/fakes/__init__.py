"""Fake data sources and database drivers for coordinator and backend tests (no live network or servers)."""

from .drivers import FakeMySQLConnector, FakePsycopg2
from .sources import (
    CrashingLocalSource,
    FakeRemoteSource,
    FakeRemoteSourceAlwaysRaise,
    FakeRemoteSourceFailNThenSucceed,
    FailingLocalSource,
    InMemorySource,
)

__all__ = [
    "CrashingLocalSource",
    "FailingLocalSource",
    "FakeMySQLConnector",
    "FakePsycopg2",
    "FakeRemoteSource",
    "FakeRemoteSourceAlwaysRaise",
    "FakeRemoteSourceFailNThenSucceed",
    "InMemorySource",
]
