"""
Record types shared by the extractor, synthesizer, verifier and store.

Candidates come out of text extraction; admission records are what the
store persists; run statistics are threaded through the agent loop.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Literal, Tuple

# ---- Literals ----
Outcome = Literal["ADMITTED", "REJECTED", "WAITLISTED", "DEFERRED"]
Round = Literal["EA", "ED", "ED2", "REA", "RD"]
Visibility = Literal["ANONYMOUS", "PUBLIC", "PRIVATE"]

OUTCOMES = ("ADMITTED", "REJECTED", "WAITLISTED", "DEFERRED")
ROUNDS = ("EA", "ED", "ED2", "REA", "RD")
DEFAULT_ROUND: Round = "RD"

# Pipeline-sourced records are never attributed to a person
ANONYMOUS: Visibility = "ANONYMOUS"

SYNTHETIC_TAG = "source:synthetic"


def normalize_tags(tags) -> Tuple[str, ...]:
    """Deduplicate tags; order is not meaningful so keep them sorted."""
    return tuple(sorted({t for t in (tags or ()) if t}))


@dataclass(frozen=True)
class Candidate:
    """
    One school+outcome pair pulled out of a unit of text, not yet resolved
    to a school id.
    """
    school_name: str
    outcome: Outcome
    year: int
    round: Round = DEFAULT_ROUND
    gpa: Optional[str] = None
    sat: Optional[str] = None
    act: Optional[str] = None
    toefl: Optional[str] = None
    major: Optional[str] = None
    tags: Tuple[str, ...] = ()

    def to_record(self, school_id, extra_tags=()) -> "AdmissionRecord":
        return AdmissionRecord(
            school_id=school_id,
            year=self.year,
            round=self.round,
            outcome=self.outcome,
            gpa=self.gpa,
            sat=self.sat,
            act=self.act,
            toefl=self.toefl,
            major=self.major,
            tags=normalize_tags(tuple(self.tags) + tuple(extra_tags)),
        )


@dataclass
class AdmissionRecord:
    """
    Persisted admission outcome. Created unverified; the verifier moves it
    to verified (possibly with a normalized GPA) or deletes it.
    """
    # REQUIRED
    school_id: int
    year: int
    outcome: Outcome

    # Optional
    round: Round = DEFAULT_ROUND
    gpa: Optional[str] = None
    sat: Optional[str] = None
    act: Optional[str] = None
    toefl: Optional[str] = None
    major: Optional[str] = None
    tags: Tuple[str, ...] = ()
    visibility: Visibility = ANONYMOUS
    is_verified: bool = False
    verified_at: Optional[datetime] = None

    # Filled in by the store
    id: Optional[int] = None
    user_id: Optional[int] = None

    # Joined school columns, only present on rows read for verification
    school_name: Optional[str] = None
    school_rank: Optional[int] = None

    def __post_init__(self):
        if self.school_id is None:
            raise ValueError("AdmissionRecord requires a school reference")
        if self.outcome not in OUTCOMES:
            raise ValueError(f"Unknown outcome {self.outcome!r}")
        if self.round not in ROUNDS:
            raise ValueError(f"Unknown round {self.round!r}")
        self.tags = normalize_tags(self.tags)


@dataclass
class School:
    """Canonical school. ``name`` is the resolution key."""
    name: str
    name_localized: Optional[str] = None
    country: str = "US"
    state: Optional[str] = None
    city: Optional[str] = None
    rank: Optional[int] = None
    acceptance_rate: Optional[float] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class RunStatistics:
    """
    Counters for one agent run. Passed into each cycle and returned with
    that cycle's counts added; never persisted.
    """
    started_at: datetime = field(default_factory=datetime.now)
    rounds: int = 0
    fetched: int = 0
    synthesized: int = 0
    verified: int = 0
    deleted: int = 0
    skipped: int = 0
    errors: int = 0

    def add(self, **deltas) -> "RunStatistics":
        """Return a copy with each named counter increased by its delta."""
        return replace(self, **{k: getattr(self, k) + v for k, v in deltas.items()})

    def runtime_minutes(self, now=None) -> int:
        now = now or datetime.now()
        return round((now - self.started_at).total_seconds() / 60)
