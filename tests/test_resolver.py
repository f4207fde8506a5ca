"""
tests.test_resolver
===================

Alias lookup, store fallback and school creation in
:class:`admitflow.resolver.SchoolResolver`.
"""

import pytest

from admitflow.models import School
from admitflow.resolver import SchoolResolver, normalize_name


def school_id(store, name):
    (school,) = store.find_schools(name=name)
    return school.id


@pytest.mark.resolve
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  The Ohio State University ", "ohio state"),
        ("Boston College", "boston"),
        ("MIT", "mit"),
        ("", ""),
    ],
)
def test_normalize_name(raw, expected):
    assert normalize_name(raw) == expected


@pytest.mark.resolve
def test_alias_resolves_to_existing_school(store):
    resolver = SchoolResolver(store)
    assert resolver.resolve("MIT") == school_id(store, "Massachusetts Institute of Technology")
    assert resolver.resolve("stanford") == school_id(store, "Stanford University")


@pytest.mark.resolve
def test_canonical_name_resolves_to_itself(store):
    resolver = SchoolResolver(store)
    assert resolver.resolve("Yale University") == school_id(store, "Yale University")


@pytest.mark.resolve
def test_containment_fallback(store):
    resolver = SchoolResolver(store)
    assert resolver.canonical_name("Stanford GSB") == "Stanford University"
    assert resolver.resolve("Stanford GSB") == school_id(store, "Stanford University")


@pytest.mark.resolve
def test_containment_can_be_disabled(store):
    resolver = SchoolResolver(store, containment=False)
    assert resolver.canonical_name("Stanford GSB") is None

    new_id = resolver.resolve("Stanford GSB")
    assert store.schools[new_id].name == "Stanford GSB"


@pytest.mark.resolve
def test_store_partial_match_before_creating(store):
    store.create_school(School(name="Olin Business School at Washington"))
    resolver = SchoolResolver(store, aliases={})

    assert resolver.resolve("olin business school") == school_id(
        store, "Olin Business School at Washington"
    )


@pytest.mark.resolve
def test_unknown_name_creates_us_school_once(empty_store):
    resolver = SchoolResolver(empty_store, aliases={})

    first = resolver.resolve("Hogwarts School")
    second = resolver.resolve("Hogwarts School")

    assert first == second
    assert len(empty_store.schools) == 1
    assert empty_store.schools[first].country == "US"


@pytest.mark.resolve
def test_alias_hit_creates_canonical_school_when_missing(empty_store):
    resolver = SchoolResolver(empty_store)
    new_id = resolver.resolve("cmu")
    assert empty_store.schools[new_id].name == "Carnegie Mellon University"


@pytest.mark.resolve
@pytest.mark.parametrize("raw", ["x", "???", "University", "12 schools", "Some Random Place"])
def test_resolution_is_total(empty_store, raw):
    assert isinstance(SchoolResolver(empty_store).resolve(raw), int)


@pytest.mark.resolve
def test_blank_and_stopword_names_still_resolve(empty_store):
    resolver = SchoolResolver(empty_store)
    assert isinstance(resolver.resolve("   "), int)
    assert isinstance(resolver.resolve("the"), int)
    assert resolver.resolve("   ") == resolver.resolve("   ")


@pytest.mark.resolve
@pytest.mark.parametrize("raw", [None, ""])
def test_missing_name_is_rejected(store, raw):
    with pytest.raises(ValueError):
        SchoolResolver(store).resolve(raw)
