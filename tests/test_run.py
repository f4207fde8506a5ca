"""
tests.test_run
==============

Command-line parsing and wiring of :mod:`admitflow.run`.
"""

import pytest

from admitflow import run
from admitflow.store import StoreUnavailableError


class FakeConn:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def wired(monkeypatch):
    """Replace the store and agent so ``main`` runs without a database."""
    seen = {}

    class FakePostgresStore:
        def __init__(self, connection):
            seen["connection"] = connection

        def create_schema(self):
            seen["schema"] = True

    class FakeAgent:
        def __init__(self, store, config):
            seen["config"] = config

        def run(self):
            return "stats"

    monkeypatch.setattr(run, "PostgresStore", FakePostgresStore)
    monkeypatch.setattr(run, "Agent", FakeAgent)
    return seen


@pytest.mark.integration
def test_defaults():
    args = run.build_parser().parse_args([])
    assert (args.hours, args.target) == (12, 100000)


@pytest.mark.integration
def test_main_passes_limits_and_closes_connection(wired):
    conn = FakeConn()

    assert run.main(["--hours=6", "--target=500"], connect=lambda: conn) == "stats"
    assert wired["config"].max_hours == 6.0
    assert wired["config"].target == 500
    assert wired["schema"] is True
    assert conn.closed


@pytest.mark.integration
def test_unknown_flags_are_rejected():
    with pytest.raises(SystemExit):
        run.build_parser().parse_args(["--pages=3"])


@pytest.mark.integration
def test_unreachable_store_propagates():
    def refuse():
        raise StoreUnavailableError("DB connection error: refused")

    with pytest.raises(StoreUnavailableError):
        run.main([], connect=refuse)
