"""
Seed the schools table from the bundled reference list.

Missing schools are created; existing ones (matched by name,
case-insensitively) get their rank and acceptance rate refreshed.
Ranks drive the synthesizer's school pool and the verifier's
implausibility check, so this runs before the first agent run.
"""

from .console import log
from .models import School
from .reference import load_reference_schools
from .store import PostgresStore, create_connection

# Columns refreshed on schools that already exist
REFRESHED_COLUMNS = ("rank", "acceptance_rate", "state", "city")


def seed_schools(store, schools=None):
    """Create or refresh every reference school.

    :param store: Persistence store.
    :param schools: School dicts; defaults to the bundled list.
    :type schools: list[dict] or None
    :returns: ``(created, updated)``.
    :rtype: tuple[int, int]
    """
    schools = load_reference_schools() if schools is None else schools
    created = updated = 0

    for row in schools:
        existing = store.find_schools(name=row["name"])
        if existing:
            changes = {
                column: row[column]
                for column in REFRESHED_COLUMNS
                if row.get(column) is not None
                and getattr(existing[0], column) != row[column]
            }
            if changes:
                store.update_school(existing[0].id, **changes)
                updated += 1
            continue

        store.create_school(School(
            name=row["name"],
            name_localized=row.get("name_localized"),
            country=row.get("country") or "US",
            state=row.get("state"),
            city=row.get("city"),
            rank=row.get("rank"),
            acceptance_rate=row.get("acceptance_rate"),
        ))
        created += 1

    log("OK", f"Schools seeded: {created} created, {updated} updated")
    return created, updated


def main(connect=create_connection):
    connection = connect()
    try:
        store = PostgresStore(connection)
        store.create_schema()
        return seed_schools(store)
    finally:
        connection.close()


if __name__ == "__main__":  # pragma: no cover
    main()
