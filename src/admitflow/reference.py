"""
Reference tables for school identity and data-quality checks.

The alias table, the school-name blocklist and the canonical school list
ship as JSON files under :data:`admitflow.paths.DATA_DIR`. Each loader
reads its file once per process and returns plain Python containers, so
the extractor, resolver and verifier stay pure functions over explicit
reference data.
"""

import json
import re
from dataclasses import dataclass
from functools import lru_cache

from .paths import ALIAS_FILE, BLOCKLIST_FILE, REFERENCE_SCHOOLS_FILE


@dataclass(frozen=True)
class Blocklist:
    """Known-bad school names: literal tokens plus compiled noise patterns."""

    tokens: frozenset
    patterns: tuple


def _read_json(path):
    """Read one JSON document from ``path``.

    :param path: Path to a UTF-8 JSON file.
    :type path: str
    :returns: Decoded JSON value.
    """
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=None)
def load_aliases(path=ALIAS_FILE):
    """Load the alias → canonical-name table.

    Keys are lower-cased on load so lookups can assume lower-case input.

    :param path: Path to the alias JSON object.
    :type path: str
    :returns: Mapping of lower-case alias to canonical school name.
    :rtype: dict[str, str]
    """
    raw = _read_json(path)
    return {alias.strip().lower(): name for alias, name in raw.items()}


@lru_cache(maxsize=None)
def load_blocklist(path=BLOCKLIST_FILE):
    """Load the school-name blocklist.

    :param path: Path to the blocklist JSON object with ``tokens`` and
        ``patterns`` arrays.
    :type path: str
    :returns: Literal tokens and compiled regular expressions.
    :rtype: Blocklist
    """
    raw = _read_json(path)
    return Blocklist(
        tokens=frozenset(raw.get("tokens", [])),
        patterns=tuple(re.compile(p) for p in raw.get("patterns", [])),
    )


def load_reference_schools(path=REFERENCE_SCHOOLS_FILE):
    """Load the canonical school list used to seed the store.

    :param path: Path to the JSON array of school objects.
    :type path: str
    :returns: List of school dicts (``name``, ``rank``, ``acceptance_rate``, ...).
    :rtype: list[dict]
    """
    data = _read_json(path)
    return [row for row in data if isinstance(row, dict) and row.get("name")]
