# tests/conftest.py
"""
Shared fixtures for the admitflow test suite.

Everything runs offline: the store is an in-memory fake with the same
method surface as :class:`admitflow.store.PostgresStore`, and waits are
patched out of the fetcher and the agent.
"""

import itertools
from dataclasses import replace

import pytest

from admitflow.models import School
from admitflow.reference import load_aliases, load_blocklist
from admitflow.store import DuplicateRecordError


class FakeStore:
    """In-memory stand-in for :class:`admitflow.store.PostgresStore`.

    Records and schools live in dicts keyed by id. Reads hand out copies,
    so callers cannot change stored state without going through
    ``update_record``, just as with a real database.

    :param schools: Schools to pre-load.
    :type schools: iterable[School]
    """

    def __init__(self, schools=()):
        self.schools = {}
        self.records = {}
        self.system_user_calls = 0
        self._ids = itertools.count(1)
        for school in schools:
            self.create_school(replace(school))

    # ---------- schools ----------

    def find_schools(self, name=None, contains=None, max_rank=None):
        found = []
        for school in self.schools.values():
            if name is not None and school.name.lower() != name.lower():
                continue
            if contains is not None and contains.lower() not in school.name.lower():
                continue
            if max_rank is not None and (school.rank is None or school.rank > max_rank):
                continue
            found.append(replace(school))
        return found

    def create_school(self, school):
        school.id = next(self._ids)
        self.schools[school.id] = replace(school)
        return school

    def update_school(self, school_id, **changes):
        for key, value in changes.items():
            setattr(self.schools[school_id], key, value)
        return 1

    # ---------- records ----------

    def _dedup_key(self, r):
        return (r.school_id, r.year, r.outcome, r.gpa, r.sat)

    def count_records(self, verified=None):
        if verified is None:
            return len(self.records)
        return sum(1 for r in self.records.values() if r.is_verified == verified)

    def find_first_record(self, school_id, year, outcome, gpa=None, sat=None):
        key = (school_id, year, outcome, gpa, sat)
        for record in self.records.values():
            if self._dedup_key(record) == key:
                return replace(record)
        return None

    def create_record(self, record):
        key = self._dedup_key(record)
        if any(self._dedup_key(r) == key for r in self.records.values()):
            raise DuplicateRecordError(f"duplicate {key}")
        record.id = next(self._ids)
        self.records[record.id] = replace(record)
        return record

    def find_unverified_records(self):
        rows = []
        for record in self.records.values():
            if record.is_verified:
                continue
            school = self.schools[record.school_id]
            rows.append(replace(record, school_name=school.name, school_rank=school.rank))
        return rows

    def update_record(self, record_id, **changes):
        for key, value in changes.items():
            setattr(self.records[record_id], key, value)
        return 1

    def delete_record(self, record_id):
        del self.records[record_id]
        return 1

    def get_or_create_system_user(self):
        self.system_user_calls += 1
        return 1


TOP_SCHOOLS = (
    School(name="Massachusetts Institute of Technology", rank=2, acceptance_rate=4.0),
    School(name="Stanford University", rank=3, acceptance_rate=3.9),
    School(name="Yale University", rank=5, acceptance_rate=4.6),
    School(name="Duke University", rank=7, acceptance_rate=6.0),
    School(name="Rice University", rank=17, acceptance_rate=8.0),
)


@pytest.fixture
def store():
    """Fake store pre-loaded with a handful of top-ranked schools."""
    return FakeStore(TOP_SCHOOLS)


@pytest.fixture
def empty_store():
    return FakeStore()


@pytest.fixture
def aliases():
    return load_aliases()


@pytest.fixture
def blocklist():
    return load_blocklist()


@pytest.fixture
def sleeps(monkeypatch):
    """Record every ``time.sleep`` call instead of sleeping."""
    calls = []
    monkeypatch.setattr("time.sleep", calls.append)
    return calls


# ------------------------------
# Markers for pytest
# ------------------------------
def pytest_configure(config):
    config.addinivalue_line("markers", "fetch: HTTP fetching and retry/backoff")
    config.addinivalue_line("markers", "extract: candidate extraction from text")
    config.addinivalue_line("markers", "resolve: school-name resolution")
    config.addinivalue_line("markers", "synth: synthetic record generation")
    config.addinivalue_line("markers", "verify: verifier rules and GPA normalization")
    config.addinivalue_line("markers", "db: PostgreSQL store with fake connections")
    config.addinivalue_line("markers", "agent: orchestrator cycle and stop conditions")
    config.addinivalue_line("markers", "integration: end-to-end flows")
