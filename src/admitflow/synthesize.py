"""
Synthetic admission records.

Fills out the dataset with plausible, clearly tagged records for ranked
schools. Scores are drawn around a tier-specific base, and the outcome is
a weighted draw that depends on how strong the scores are. Every record
is unverified, anonymous and tagged ``source:synthetic``, so it passes
through the same verifier as scraped data.
"""

import random
from datetime import date

from .console import log
from .models import AdmissionRecord, SYNTHETIC_TAG
from .store import DuplicateRecordError

# Only ranked schools inside this bound are sampled
MAX_SYNTHETIC_RANK = 100

# (rank ceiling, tier); rank takes precedence over acceptance rate
RANK_TIERS = (
    (20, "elite"),
    (50, "highly_selective"),
    (100, "selective"),
    (150, "moderate"),
)
# (acceptance-rate ceiling in percent, tier)
ACCEPTANCE_TIERS = (
    (10, "elite"),
    (20, "highly_selective"),
    (40, "selective"),
    (60, "moderate"),
)
FALLBACK_TIER = "accessible"

# tier -> (GPA base, SAT base); jitter is added on top
TIER_BASES = {
    "elite": (3.85, 1500),
    "highly_selective": (3.70, 1400),
    "selective": (3.50, 1300),
    "moderate": (3.30, 1200),
    "accessible": (3.00, 1100),
}
GPA_JITTER = 0.15
SAT_JITTER = 100

# (min GPA, min SAT, admit probability, waitlist share of the remainder)
OUTCOME_BANDS = (
    (3.9, 1550, 0.60, 0.5),
    (3.7, 1450, 0.35, 0.4),
)
DEFAULT_OUTCOME_BAND = (0.15, 0.3)

ROUND_WEIGHTS = (("RD", 0.45), ("EA", 0.25), ("ED", 0.20), ("REA", 0.05), ("ED2", 0.05))

# How many recent application years to spread records over
YEAR_SPAN = 2

MAJORS = (
    "Computer Science", "Economics", "Biology", "Mathematics", "Physics",
    "Chemistry", "Engineering", "Business", "Political Science", "Psychology",
    "English", "History", "Philosophy", "Neuroscience", "Statistics",
    "Data Science", "Mechanical Engineering", "Electrical Engineering",
    "Chemical Engineering", "Biomedical Engineering", "Aerospace Engineering",
    "Civil Engineering", "Finance", "Marketing", "International Relations",
)

# Profile archetypes
TAG_SETS = (
    ("PUBLIC_US", "research"),
    ("PUBLIC_US", "leadership"),
    ("PRIVATE_US", "research", "olympiad"),
    ("international", "CHINA_INTL", "research"),
    ("international", "OTHER_INTL", "volunteer"),
    ("first_gen", "urm"),
    ("legacy",),
    ("athlete", "recruited"),
    ("research", "olympiad", "USAMO_qualifier"),
    ("entrepreneur", "startup"),
)


def difficulty_tier(rank=None, acceptance_rate=None):
    """Return one of the five tiers for a school.

    :param rank: Selectivity rank (1 is most selective).
    :type rank: int or None
    :param acceptance_rate: Acceptance rate in percent.
    :type acceptance_rate: float or None
    :rtype: str
    """
    if rank is not None:
        for ceiling, tier in RANK_TIERS:
            if rank <= ceiling:
                return tier
        return FALLBACK_TIER
    if acceptance_rate is not None:
        for ceiling, tier in ACCEPTANCE_TIERS:
            if acceptance_rate <= ceiling:
                return tier
    return FALLBACK_TIER


def draw_outcome(gpa, sat, rng):
    """Weighted outcome draw; stronger scores skew toward ADMITTED."""
    admit, waitlist_share = DEFAULT_OUTCOME_BAND
    for min_gpa, min_sat, band_admit, band_waitlist in OUTCOME_BANDS:
        if gpa >= min_gpa and sat >= min_sat:
            admit, waitlist_share = band_admit, band_waitlist
            break

    if rng.random() < admit:
        return "ADMITTED"
    if rng.random() < waitlist_share:
        return "WAITLISTED"
    return "REJECTED"


class Synthesizer:
    """Create synthetic records for ranked schools.

    :param store: Persistence store.
    :param rng: Random source; pass a seeded :class:`random.Random` for
        reproducible runs.
    :type rng: random.Random or None
    :param user_id: Author of record for created rows.
    :type user_id: int or None
    :param today: Clock override for the application year.
    :type today: datetime.date or None
    """

    def __init__(self, store, rng=None, user_id=None, today=None):
        self.store = store
        self.rng = rng or random.Random()
        self.user_id = user_id
        self.today = today

    def school_pool(self):
        return self.store.find_schools(max_rank=MAX_SYNTHETIC_RANK)

    def make_record(self, school):
        """Build one unsaved synthetic record for ``school``."""
        rng = self.rng
        gpa_base, sat_base = TIER_BASES[difficulty_tier(school.rank, school.acceptance_rate)]
        gpa = round(min(gpa_base + rng.uniform(0, GPA_JITTER), 4.0), 2)
        sat = min(sat_base + rng.randint(0, SAT_JITTER), 1600)

        rounds, weights = zip(*ROUND_WEIGHTS)
        year = (self.today or date.today()).year - rng.randint(0, YEAR_SPAN - 1)

        return AdmissionRecord(
            school_id=school.id,
            user_id=self.user_id,
            year=year,
            round=rng.choices(rounds, weights=weights)[0],
            outcome=draw_outcome(gpa, sat, rng),
            gpa=f"{gpa:.2f}",
            sat=str(sat),
            major=rng.choice(MAJORS),
            tags=rng.choice(TAG_SETS) + (SYNTHETIC_TAG,),
        )

    def synthesize(self, count):
        """Create up to ``count`` records and return how many were created.

        Duplicates of existing rows are skipped, so the result can be
        below ``count``.

        :param count: Number of records to attempt.
        :type count: int
        :rtype: int
        """
        pool = self.school_pool()
        if not pool:
            log("WARN", f"No schools ranked <= {MAX_SYNTHETIC_RANK}; nothing to synthesize")
            return 0

        created = 0
        for _ in range(count):
            school = self.rng.choice(pool)
            try:
                self.store.create_record(self.make_record(school))
                created += 1
            except DuplicateRecordError:
                continue

        log("OK", f"Synthesized {created}/{count} records")
        return created
