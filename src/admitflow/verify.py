"""
Quality gate for unverified admission records.

Every unverified record is visited once. Its GPA is normalized first
(see :func:`admitflow.normalize.normalize_gpa`), then the deletion rules
run in order; the first rule that fires deletes the record. A record
that survives is marked verified with a timestamp, and a repaired GPA is
written back in the same update.
"""

from datetime import datetime

from .console import log
from .normalize import (
    ACT_RANGE,
    GPA_RANGE,
    SAT_RANGE,
    TOEFL_RANGE,
    in_range,
    normalize_gpa,
    parse_number,
)
from .reference import load_blocklist

MIN_SCHOOL_NAME_LENGTH = 3

# Rank used when a school has none, so it never counts as highly selective
UNRANKED = 999

# Admits at these schools with scores below the floors are implausible
IMPLAUSIBLE_MAX_RANK = 10
IMPLAUSIBLE_GPA_FLOOR = 2.5
IMPLAUSIBLE_SAT_FLOOR = 1100


def is_invalid_school_name(name, blocklist):
    """Return True for names that are list fragments rather than schools.

    :param name: School name as stored.
    :type name: str or None
    :param blocklist: Literal tokens and noise patterns.
    :type blocklist: admitflow.reference.Blocklist
    :rtype: bool
    """
    name = (name or "").strip()
    if len(name) < MIN_SCHOOL_NAME_LENGTH:
        return True
    if name.lower() in {t.lower() for t in blocklist.tokens}:
        return True
    return any(p.search(name) for p in blocklist.patterns)


def _out_of_range(value, bounds):
    number = parse_number(value)
    return number is not None and not in_range(number, bounds)


def deletion_reason(record, blocklist):
    """Return why ``record`` must be deleted, or ``None`` if it passes.

    Rules, first match wins:

    1. the school name is blocklisted or matches a noise pattern;
    2. the GPA is the bare ``"."`` artifact;
    3. GPA, SAT, ACT or TOEFL lies outside its range;
    4. an ADMITTED record at a top-10 school has GPA < 2.5 or SAT < 1100.

    :param record: Record with ``school_name`` and ``school_rank`` joined in.
    :type record: admitflow.models.AdmissionRecord
    :param blocklist: Literal tokens and noise patterns.
    :type blocklist: admitflow.reference.Blocklist
    :rtype: str or None
    """
    if is_invalid_school_name(record.school_name, blocklist):
        return f"invalid school name {record.school_name!r}"

    if record.gpa is not None and record.gpa.strip() == ".":
        return "GPA is '.'"

    for field, bounds in (
        ("gpa", GPA_RANGE),
        ("sat", SAT_RANGE),
        ("act", ACT_RANGE),
        ("toefl", TOEFL_RANGE),
    ):
        value = getattr(record, field)
        if _out_of_range(value, bounds):
            return f"{field.upper()} {value!r} out of range"

    rank = record.school_rank if record.school_rank is not None else UNRANKED
    if rank <= IMPLAUSIBLE_MAX_RANK and record.outcome == "ADMITTED":
        gpa = parse_number(record.gpa)
        sat = parse_number(record.sat)
        if (gpa is not None and gpa < IMPLAUSIBLE_GPA_FLOOR) or (
            sat is not None and sat < IMPLAUSIBLE_SAT_FLOOR
        ):
            return f"implausible admit at rank {rank}"

    return None


class Verifier:
    """Move every unverified record to verified or deleted.

    :param store: Persistence store.
    :param blocklist: School-name blocklist; defaults to the bundled one.
    :type blocklist: admitflow.reference.Blocklist or None
    :param clock: Callable returning the verification timestamp.
    :type clock: callable or None
    """

    def __init__(self, store, blocklist=None, clock=None):
        self.store = store
        self.blocklist = load_blocklist() if blocklist is None else blocklist
        self.clock = clock or datetime.now

    def verify_record(self, record):
        """Verify or delete one record. Returns True if it was verified."""
        original_gpa = record.gpa
        record.gpa = normalize_gpa(original_gpa)

        reason = deletion_reason(record, self.blocklist)
        if reason:
            self.store.delete_record(record.id)
            return False

        changes = {"is_verified": True, "verified_at": self.clock()}
        if record.gpa != original_gpa:
            changes["gpa"] = record.gpa
        self.store.update_record(record.id, **changes)
        return True

    def verify_all(self):
        """Run the gate over every unverified record.

        :returns: ``(verified_count, deleted_count)``.
        :rtype: tuple[int, int]
        """
        verified = deleted = 0
        for record in self.store.find_unverified_records():
            if self.verify_record(record):
                verified += 1
            else:
                deleted += 1

        if verified or deleted:
            log("OK", f"Verified {verified}, deleted {deleted}")
        return verified, deleted
