"""
School-name resolution.

Maps a raw school name from the forum to the id of a canonical
:class:`~admitflow.models.School`, creating the school when nothing
matches. Resolution never fails for a non-empty name.
"""

import re

from .console import log
from .models import School
from .reference import load_aliases

_LEADING_THE_RE = re.compile(r"^the\s+")
_TRAILING_SUFFIX_RE = re.compile(r"\s+(?:university|college)$")

# Containment in the "alias contains input" direction needs a longer input
MIN_CONTAINED_LENGTH = 3


def normalize_name(raw):
    """Trim, lower-case, drop a leading "the" and a trailing "university"/"college".

    >>> normalize_name("  The Ohio State University ")
    'ohio state'
    """
    name = " ".join((raw or "").split()).lower()
    name = _LEADING_THE_RE.sub("", name)
    name = _TRAILING_SUFFIX_RE.sub("", name)
    return name


class SchoolResolver:
    """Resolve raw names to school ids against an alias table and the store.

    Lookup order: alias table (including canonical names themselves),
    optional substring containment against the aliases, the store by
    exact then partial name, and finally creation of a new school.
    Results are cached per raw name for the life of the resolver.

    :param store: Persistence store with ``find_schools`` and ``create_school``.
    :param aliases: Alias table; defaults to the bundled one.
    :type aliases: dict[str, str] or None
    :param containment: Enable the substring fallback.
    :type containment: bool
    """

    def __init__(self, store, aliases=None, containment=True):
        self.store = store
        self.aliases = load_aliases() if aliases is None else aliases
        self.containment = containment
        self._by_canonical = {}
        for alias, name in self.aliases.items():
            self._by_canonical.setdefault(normalize_name(name), name)
        # Longest alias first so "penn state" wins over "penn"
        self._ordered = sorted(self.aliases.items(), key=lambda kv: (-len(kv[0]), kv[0]))
        self._cache = {}

    def canonical_name(self, raw):
        """Return the canonical name for ``raw`` from the alias table, or None."""
        name = normalize_name(raw)
        if not name:
            return None
        if name in self.aliases:
            return self.aliases[name]
        if name in self._by_canonical:
            return self._by_canonical[name]
        if self.containment:
            return self._contained(name)
        return None

    def _contained(self, name):
        for alias, canonical in self._ordered:
            if re.search(r"(?<!\w)" + re.escape(alias) + r"(?!\w)", name):
                return canonical
        if len(name) > MIN_CONTAINED_LENGTH:
            for alias, canonical in self._ordered:
                if name in alias:
                    return canonical
        return None

    def resolve(self, raw):
        """Return the school id for ``raw``.

        :param raw: School name as written.
        :type raw: str
        :returns: Id of an existing or newly created school.
        :rtype: int
        :raises ValueError: If ``raw`` is ``None`` or ``""``.
        """
        if not raw:
            raise ValueError("Cannot resolve an empty school name")
        key = raw.strip() or raw
        if key in self._cache:
            return self._cache[key]

        school_id = self._lookup(key)
        self._cache[key] = school_id
        return school_id

    def _lookup(self, raw):
        canonical = self.canonical_name(raw)
        target = canonical or raw

        found = self.store.find_schools(name=target)
        if not found and canonical is None:
            normalized = normalize_name(raw)
            if len(normalized) > MIN_CONTAINED_LENGTH:
                found = self.store.find_schools(contains=normalized)
        if found:
            return found[0].id

        school = self.store.create_school(School(name=target, country="US"))
        log("INFO", f"Created school {target!r}")
        return school.id
