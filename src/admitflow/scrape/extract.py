"""
Admission-record extraction from forum text.

Turns one unit of free text (a post title plus body, or a single comment)
into zero or more :class:`~admitflow.models.Candidate` records. The unit's
scores, graduation year, round and background tags are shared by every
candidate; each candidate carries its own school and outcome, paired by
proximity in the text.

Extraction is a pure function of the text and the alias table: no I/O
and no randomness. Each field has its own ``extract_*`` helper so it can
be tested on its own.
"""

# Import regular expressions for pattern matching
import re

# Import date to default the application year
from datetime import date

from ..models import Candidate, DEFAULT_ROUND, normalize_tags
from ..normalize import (
    ACT_RANGE,
    GPA_RANGE,
    SAT_RANGE,
    TOEFL_RANGE,
    in_range,
    normalize_gpa,
    parse_number,
)
from ..reference import load_aliases

# Max distance in characters between a school mention and its outcome word
PROXIMITY_WINDOW = 200

# ---------- Year ----------

CLASS_OF_RE = re.compile(r"class of (\d{4})")
BARE_YEAR_RE = re.compile(r"\b(20\d{2})\b")

# ---------- Scores (first pattern whose value is in range wins) ----------

GPA_PATTERNS = (
    re.compile(r"\bgpa\b(?:\s*\((?:uw|w|unweighted|weighted)\))?[:\s]*(\d+(?:\.\d+)?)"),
    re.compile(r"\b(\d\.\d{1,2})\s*/\s*4(?:\.0+)?\b"),
    re.compile(r"\b(\d\.\d{1,2})\s*(?:uw|unweighted)\b"),
)
SAT_PATTERNS = (
    re.compile(r"\bsat\b[:\s]*(\d{3,4})\b"),
    re.compile(r"\b(\d{3,4})\s*/\s*1600\b"),
    re.compile(r"\b(\d{4})\s*sat\b"),
)
ACT_PATTERNS = (
    re.compile(r"\bact\b[:\s]*(\d{1,2})\b"),
    re.compile(r"\b(\d{2})\s*act\b"),
)
TOEFL_PATTERNS = (
    re.compile(r"\btoefl\b[:\s]*(\d{2,3})\b"),
    re.compile(r"\b(\d{3})\s*toefl\b"),
)

# ---------- Major ----------

MAJOR_RE = re.compile(r"\b(?:intended\s+)?major\s*:\s*([a-z][a-z &/\-]{1,40})")
MAJOR_ABBREVIATIONS = {
    "cs": "Computer Science",
    "econ": "Economics",
    "ee": "Electrical Engineering",
    "mech e": "Mechanical Engineering",
    "bio": "Biology",
    "math": "Mathematics",
    "poli sci": "Political Science",
    "polisci": "Political Science",
}

# ---------- Tags (independent tests, order irrelevant) ----------

TAG_PATTERNS = {
    "international": re.compile(
        r"\b(?:international|intl|china|chinese|india|indian|korea|korean|vietnamese)\b"
    ),
    "first_gen": re.compile(r"\bfirst[- ]?gen(?:eration)?\b"),
    "legacy": re.compile(r"\blegacy\b"),
    "athlete": re.compile(r"\b(?:athlete|recruited)\b"),
    "research": re.compile(r"\bresearch\b"),
    "olympiad": re.compile(r"\b(?:olympiad|usamo|usaco|usabo|usnco)\b"),
    "STEM": re.compile(r"\bstem\b"),
    "CS": re.compile(r"\b(?:cs|computer science)\b"),
    "business": re.compile(r"\b(?:business|finance|econ|economics)\b"),
    "engineering": re.compile(r"\bengineering\b"),
    "pre-med": re.compile(r"\bpre-?med\b"),
}

# First matching high-school type wins
SCHOOL_TYPE_PATTERNS = (
    ("PRIVATE_US", re.compile(r"\b(?:private|boarding|prep)\s*school\b")),
    ("PUBLIC_US", re.compile(r"\bpublic\s*(?:school|high)\b")),
    ("CHINA_INTL", re.compile(r"\b(?:china|chinese|beijing|shanghai|shenzhen)\b.*\binternational\s*school\b")),
    ("CHINA_PUBLIC", re.compile(r"\b(?:beijing|shanghai|shenzhen)\b")),
)

# ---------- Outcomes (precedence order) ----------

OUTCOME_PATTERNS = (
    ("ADMITTED", re.compile(r"\b(?:accepted|admitted)\b")),
    ("REJECTED", re.compile(r"\b(?:rejected|denied)\b")),
    ("WAITLISTED", re.compile(r"\bwait-?list(?:ed)?\b")),
    ("DEFERRED", re.compile(r"\bdeferred\b")),
)

# ---------- Round (precedence order: EA, ED, REA) ----------

EA_RE = re.compile(r"\b(?:ea|early action)\b")
ED2_RE = re.compile(r"\b(?:ed ?2|ed ?ii|early decision (?:2|ii))\b")
ED_RE = re.compile(r"\b(?:ed|ed ?1|early decision)\b")
REA_RE = re.compile(r"\b(?:rea|scea|restrictive early action|single[- ]choice early action)\b")


def build_buffer(title, body):
    """Lower-case and join title and body into one search buffer."""
    return f"{title or ''}\n{body or ''}".lower()


def extract_year(buffer, default_year=None):
    """Return the graduation year: "class of NNNN", then a bare 20xx year."""
    match = CLASS_OF_RE.search(buffer) or BARE_YEAR_RE.search(buffer)
    if match:
        return int(match.group(1))
    return default_year if default_year is not None else date.today().year


def _first_in_range(patterns, buffer, bounds, fix=None):
    for pattern in patterns:
        for match in pattern.finditer(buffer):
            raw = match.group(1)
            value = fix(raw) if fix else raw
            number = parse_number(value)
            if number is not None and in_range(number, bounds):
                return value
    return None


def extract_gpa(buffer):
    return _first_in_range(GPA_PATTERNS, buffer, GPA_RANGE, fix=normalize_gpa)


def extract_sat(buffer):
    return _first_in_range(SAT_PATTERNS, buffer, SAT_RANGE)


def extract_act(buffer):
    return _first_in_range(ACT_PATTERNS, buffer, ACT_RANGE)


def extract_toefl(buffer):
    return _first_in_range(TOEFL_PATTERNS, buffer, TOEFL_RANGE)


def extract_major(buffer):
    match = MAJOR_RE.search(buffer)
    if not match:
        return None
    raw = match.group(1).strip(" -/&")
    if not raw:
        return None
    return MAJOR_ABBREVIATIONS.get(raw, raw.title())


def extract_tags(buffer):
    """Return the background tags found anywhere in the buffer."""
    tags = [tag for tag, pattern in TAG_PATTERNS.items() if pattern.search(buffer)]
    for tag, pattern in SCHOOL_TYPE_PATTERNS:
        if pattern.search(buffer):
            tags.append(tag)
            break
    return normalize_tags(tags)


def extract_round(buffer):
    """Return the application round; EA beats ED beats REA, default RD."""
    if EA_RE.search(buffer):
        return "EA"
    if ED2_RE.search(buffer):
        return "ED2"
    if ED_RE.search(buffer):
        return "ED"
    if REA_RE.search(buffer):
        return "REA"
    return DEFAULT_ROUND


def match_outcome(buffer, school_positions, window=PROXIMITY_WINDOW):
    """Return the first outcome whose keyword lies near a school mention.

    :param buffer: Lower-cased search buffer.
    :type buffer: str
    :param school_positions: Start offsets of the school's mentions.
    :type school_positions: list[int]
    :param window: Distance in characters the keyword must stay under.
    :type window: int
    :returns: Outcome name, or ``None`` when nothing is close enough.
    :rtype: str or None
    """
    for outcome, pattern in OUTCOME_PATTERNS:
        for match in pattern.finditer(buffer):
            if any(abs(match.start() - pos) < window for pos in school_positions):
                return outcome
    return None


def _alias_regex(alias):
    return re.compile(r"(?<!\w)" + re.escape(alias) + r"(?!\w)")


class Extractor:
    """Candidate extraction over a fixed alias table.

    Aliases are tried longest first; a mention claims its span so that a
    shorter alias inside it ("penn" inside "penn state") is not matched
    again.

    :param aliases: Mapping of lower-case alias to canonical school name.
        Defaults to the bundled table.
    :type aliases: dict[str, str] or None
    :param default_year: Year used when the text names none. Defaults to
        the current year at call time.
    :type default_year: int or None
    """

    def __init__(self, aliases=None, default_year=None):
        table = load_aliases() if aliases is None else aliases
        ordered = sorted(table.items(), key=lambda kv: (-len(kv[0]), kv[0]))
        self.aliases = [(alias, name, _alias_regex(alias)) for alias, name in ordered]
        self.default_year = default_year

    def find_schools(self, buffer):
        """Return ``(canonical_name, [positions])`` for each school mentioned.

        Results are ordered by first mention.
        """
        claimed = []
        found = {}
        for _alias, name, pattern in self.aliases:
            for match in pattern.finditer(buffer):
                span = match.span()
                if any(span[0] < end and start < span[1] for start, end in claimed):
                    continue
                claimed.append(span)
                found.setdefault(name, []).append(span[0])
        return sorted(found.items(), key=lambda item: min(item[1]))

    def extract(self, title, body):
        """Extract candidate records from one unit of text.

        :param title: Post title, or ``""`` for a comment.
        :type title: str
        :param body: Post body or comment text.
        :type body: str
        :returns: One candidate per school with a nearby outcome keyword.
        :rtype: list[admitflow.models.Candidate]
        """
        buffer = build_buffer(title, body)

        schools = self.find_schools(buffer)
        if not schools:
            return []

        shared = dict(
            year=extract_year(buffer, self.default_year),
            round=extract_round(buffer),
            gpa=extract_gpa(buffer),
            sat=extract_sat(buffer),
            act=extract_act(buffer),
            toefl=extract_toefl(buffer),
            major=extract_major(buffer),
            tags=extract_tags(buffer),
        )

        candidates = []
        for name, positions in schools:
            outcome = match_outcome(buffer, positions)
            if outcome is None:
                continue
            candidates.append(Candidate(school_name=name, outcome=outcome, **shared))
        return candidates


def extract(title, body, aliases=None):
    """Module-level shortcut for ``Extractor(aliases).extract(title, body)``."""
    return Extractor(aliases).extract(title, body)
