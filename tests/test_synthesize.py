"""
tests.test_synthesize
=====================

Tier mapping, score ranges and outcome skew of the synthesizer. All runs
use a seeded :class:`random.Random`.
"""

import random
from collections import Counter
from datetime import date

import pytest

from admitflow.models import ROUNDS, SYNTHETIC_TAG, School
from admitflow.synthesize import MAJORS, Synthesizer, difficulty_tier, draw_outcome

from conftest import FakeStore

TODAY = date(2025, 6, 1)


def elite_store():
    return FakeStore([
        School(name="Princeton University", rank=1, acceptance_rate=5.8),
        School(name="Massachusetts Institute of Technology", rank=2, acceptance_rate=4.0),
        School(name="Rice University", rank=17, acceptance_rate=8.0),
    ])


@pytest.mark.synth
@pytest.mark.parametrize(
    "rank, rate, tier",
    [
        (1, None, "elite"),
        (20, None, "elite"),
        (21, None, "highly_selective"),
        (75, None, "selective"),
        (150, None, "moderate"),
        (151, None, "accessible"),
        (None, 8.0, "elite"),
        (None, 35.0, "selective"),
        (None, 90.0, "accessible"),
        (None, None, "accessible"),
        (5, 80.0, "elite"),
    ],
)
def test_difficulty_tier(rank, rate, tier):
    assert difficulty_tier(rank, rate) == tier


@pytest.mark.synth
def test_elite_pool_clusters_near_top_scores():
    store = elite_store()
    created = Synthesizer(store, rng=random.Random(7), today=TODAY).synthesize(100)

    assert created == len(store.records) > 0
    for record in store.records.values():
        assert 3.85 <= float(record.gpa) <= 4.0
        assert 1500 <= int(record.sat) <= 1600
        assert record.year in (2024, 2025)
        assert record.round in ROUNDS
        assert record.major in MAJORS
        assert SYNTHETIC_TAG in record.tags
        assert record.visibility == "ANONYMOUS"
        assert record.is_verified is False


@pytest.mark.synth
def test_elite_outcomes_skew_toward_admitted():
    synthesizer = Synthesizer(elite_store(), rng=random.Random(42), today=TODAY)
    school = School(name="Princeton University", rank=1, id=1)

    outcomes = Counter(synthesizer.make_record(school).outcome for _ in range(2000))

    assert outcomes["ADMITTED"] > outcomes["REJECTED"]
    assert outcomes["WAITLISTED"] > 0


@pytest.mark.synth
def test_weak_scores_skew_toward_rejected():
    rng = random.Random(3)
    outcomes = Counter(draw_outcome(3.0, 1100, rng) for _ in range(2000))
    assert outcomes["REJECTED"] > outcomes["ADMITTED"]


@pytest.mark.synth
def test_same_seed_same_records():
    school = School(name="Rice University", rank=17, id=3)
    a = Synthesizer(elite_store(), rng=random.Random(11), today=TODAY)
    b = Synthesizer(elite_store(), rng=random.Random(11), today=TODAY)
    assert [a.make_record(school) for _ in range(20)] == [b.make_record(school) for _ in range(20)]


@pytest.mark.synth
def test_only_ranked_schools_within_100_are_sampled():
    store = FakeStore([
        School(name="Unranked College"),
        School(name="Far Down University", rank=180),
        School(name="Rice University", rank=17),
    ])
    Synthesizer(store, rng=random.Random(0), today=TODAY).synthesize(30)

    sampled = {store.schools[r.school_id].name for r in store.records.values()}
    assert sampled == {"Rice University"}


@pytest.mark.synth
def test_empty_pool_creates_nothing(empty_store):
    assert Synthesizer(empty_store, rng=random.Random(0)).synthesize(10) == 0
    assert empty_store.records == {}
