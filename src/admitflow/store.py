"""
PostgreSQL persistence for schools, admission records and the system user.

All SQL is composed with :mod:`psycopg.sql`. Two failure classes are told
apart explicitly:

* a unique-constraint violation becomes :class:`DuplicateRecordError`,
  which ingestion counts as "skipped";
* a connectivity failure becomes :class:`StoreUnavailableError`, which
  propagates out of the current stage.
"""

# Used to read database credentials from environment variables
import os

# PostgreSQL database adapter for Python (psycopg3)
import psycopg

# sql module for safe SQL composition
from psycopg import sql

# Rows come back as dicts so they map onto the model dataclasses by name
from psycopg.rows import dict_row

from psycopg import OperationalError
from psycopg.errors import UniqueViolation

from .console import log
from .models import AdmissionRecord, School

SYSTEM_USER_EMAIL = "system@studyabroad.ai"
SYSTEM_USER_NAME = "Data Agent"

SCHEMA = (
    sql.SQL("""
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            email TEXT UNIQUE NOT NULL,
            name TEXT
        );
    """),
    sql.SQL("""
        CREATE TABLE IF NOT EXISTS schools (
            id SERIAL PRIMARY KEY,
            name TEXT UNIQUE NOT NULL,
            name_localized TEXT,
            country TEXT NOT NULL DEFAULT 'US',
            state TEXT,
            city TEXT,
            rank INTEGER,
            acceptance_rate REAL
        );
    """),
    sql.SQL("""
        CREATE TABLE IF NOT EXISTS admission_records (
            id SERIAL PRIMARY KEY,
            user_id INTEGER REFERENCES users(id),
            school_id INTEGER NOT NULL REFERENCES schools(id),
            year INTEGER NOT NULL,
            round TEXT NOT NULL DEFAULT 'RD',
            outcome TEXT NOT NULL,
            gpa TEXT,
            sat TEXT,
            act TEXT,
            toefl TEXT,
            major TEXT,
            tags TEXT[] NOT NULL DEFAULT '{}',
            visibility TEXT NOT NULL DEFAULT 'ANONYMOUS',
            is_verified BOOLEAN NOT NULL DEFAULT FALSE,
            verified_at TIMESTAMP,
            created_at TIMESTAMP NOT NULL DEFAULT now()
        );
    """),
    sql.SQL("""
        CREATE UNIQUE INDEX IF NOT EXISTS admission_records_dedup
        ON admission_records (school_id, year, outcome,
                              COALESCE(gpa, ''), COALESCE(sat, ''));
    """),
)

RECORD_COLUMNS = (
    "user_id", "school_id", "year", "round", "outcome", "gpa", "sat", "act",
    "toefl", "major", "tags", "visibility", "is_verified", "verified_at",
)

# Columns the verifier is allowed to change
UPDATABLE_RECORD_COLUMNS = frozenset({"gpa", "is_verified", "verified_at"})

SCHOOL_COLUMNS = (
    "name", "name_localized", "country", "state", "city", "rank", "acceptance_rate",
)


class StoreError(Exception):
    """Base class for persistence failures."""


class DuplicateRecordError(StoreError):
    """The row already exists (unique constraint)."""


class StoreUnavailableError(StoreError):
    """The database could not be reached or the connection dropped."""


def create_connection(
    db_name=None,
    db_user=None,
    db_password=None,
    db_host=None,
    db_port=None,
):
    """Open a psycopg3 connection.

    Each credential resolves explicit argument → environment variable
    (``DB_NAME``, ``DB_USER``, ``DB_PASSWORD``, ``DB_HOST``, ``DB_PORT``)
    → non-secret default. There is no default password.

    :returns: An open connection.
    :rtype: psycopg.Connection
    :raises StoreUnavailableError: If the server cannot be reached.
    """
    resolved_name = db_name or os.environ.get("DB_NAME", "admitflow")
    resolved_user = db_user or os.environ.get("DB_USER", "postgres")
    resolved_password = db_password or os.environ.get("DB_PASSWORD", "")
    resolved_host = db_host or os.environ.get("DB_HOST", "127.0.0.1")
    resolved_port = db_port or os.environ.get("DB_PORT", "5432")

    try:
        return psycopg.connect(
            dbname=resolved_name,
            user=resolved_user,
            password=resolved_password,
            host=resolved_host,
            port=resolved_port,
        )
    except OperationalError as e:
        raise StoreUnavailableError(f"DB connection error: {e}") from e


def _school_from_row(row):
    return School(**{k: row.get(k) for k in ("id",) + SCHOOL_COLUMNS})


def _record_from_row(row):
    data = {k: row[k] for k in ("id",) + RECORD_COLUMNS if k in row}
    data["tags"] = tuple(data.get("tags") or ())
    return AdmissionRecord(
        school_name=row.get("school_name"),
        school_rank=row.get("school_rank"),
        **data,
    )


class PostgresStore:
    """Admission-record, school and user collections on one connection.

    Every public method runs in its own transaction and commits on
    success.

    :param connection: An open psycopg3 connection.
    :type connection: psycopg.Connection
    """

    def __init__(self, connection):
        self.connection = connection

    def _run(self, query, params=None, fetch=None):
        """Execute one statement and commit.

        :param fetch: ``"one"``, ``"all"`` or ``None``.
        :raises DuplicateRecordError: On a unique-constraint violation.
        :raises StoreUnavailableError: On a connectivity failure.
        """
        try:
            with self.connection.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                if fetch == "one":
                    result = cur.fetchone()
                elif fetch == "all":
                    result = cur.fetchall()
                else:
                    result = cur.rowcount
            self.connection.commit()
            return result
        except UniqueViolation as e:
            self.connection.rollback()
            raise DuplicateRecordError(str(e)) from e
        except OperationalError as e:
            raise StoreUnavailableError(str(e)) from e
        except psycopg.Error:
            # Leave the session usable for the next statement
            if not self.connection.closed:
                self.connection.rollback()
            raise

    def create_schema(self):
        for statement in SCHEMA:
            self._run(statement)

    # ---------- admission records ----------

    def count_records(self, verified=None):
        """Return the number of records, optionally filtered by verification."""
        query = sql.SQL("SELECT COUNT(*) AS n FROM admission_records")
        params = None
        if verified is not None:
            query = query + sql.SQL(" WHERE is_verified = %s")
            params = (verified,)
        row = self._run(query, params, fetch="one")
        return row["n"] if row else 0

    def find_first_record(self, school_id, year, outcome, gpa=None, sat=None):
        """Dedup lookup on (school, year, outcome, GPA, SAT); NULLs compare equal."""
        query = sql.SQL("""
            SELECT * FROM admission_records
            WHERE school_id = %s AND year = %s AND outcome = %s
              AND gpa IS NOT DISTINCT FROM %s
              AND sat IS NOT DISTINCT FROM %s
            LIMIT 1;
        """)
        row = self._run(query, (school_id, year, outcome, gpa, sat), fetch="one")
        return _record_from_row(row) if row else None

    def create_record(self, record):
        """Insert ``record`` and return it with its new id.

        :raises DuplicateRecordError: If an identical record exists.
        """
        query = sql.SQL("INSERT INTO admission_records ({}) VALUES ({}) RETURNING id;").format(
            sql.SQL(", ").join(sql.Identifier(c) for c in RECORD_COLUMNS),
            sql.SQL(", ").join(sql.Placeholder() for _ in RECORD_COLUMNS),
        )
        params = [getattr(record, c) for c in RECORD_COLUMNS]
        params[RECORD_COLUMNS.index("tags")] = list(record.tags)
        row = self._run(query, params, fetch="one")
        record.id = row["id"]
        return record

    def find_unverified_records(self):
        """Return every unverified record joined with its school's name and rank."""
        query = sql.SQL("""
            SELECT r.*, s.name AS school_name, s.rank AS school_rank
            FROM admission_records r
            JOIN schools s ON s.id = r.school_id
            WHERE r.is_verified = FALSE
            ORDER BY r.id;
        """)
        return [_record_from_row(row) for row in self._run(query, fetch="all")]

    def update_record(self, record_id, **changes):
        unknown = set(changes) - UPDATABLE_RECORD_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")
        query = sql.SQL("UPDATE admission_records SET {} WHERE id = %s;").format(
            sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(c)) for c in changes
            )
        )
        return self._run(query, list(changes.values()) + [record_id])

    def delete_record(self, record_id):
        query = sql.SQL("DELETE FROM admission_records WHERE id = %s;")
        return self._run(query, (record_id,))

    # ---------- schools ----------

    def find_schools(self, name=None, contains=None, max_rank=None):
        """Find schools by exact name or substring (both case-insensitive), or rank.

        :returns: Matching schools ordered by id.
        :rtype: list[admitflow.models.School]
        """
        clauses = []
        params = []
        if name is not None:
            clauses.append(sql.SQL("LOWER(name) = LOWER(%s)"))
            params.append(name)
        if contains is not None:
            clauses.append(sql.SQL("name ILIKE %s"))
            params.append(f"%{contains}%")
        if max_rank is not None:
            clauses.append(sql.SQL("rank IS NOT NULL AND rank <= %s"))
            params.append(max_rank)

        query = sql.SQL("SELECT * FROM schools")
        if clauses:
            query = query + sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses)
        query = query + sql.SQL(" ORDER BY id;")
        return [_school_from_row(row) for row in self._run(query, params, fetch="all")]

    def create_school(self, school):
        query = sql.SQL("INSERT INTO schools ({}) VALUES ({}) RETURNING id;").format(
            sql.SQL(", ").join(sql.Identifier(c) for c in SCHOOL_COLUMNS),
            sql.SQL(", ").join(sql.Placeholder() for _ in SCHOOL_COLUMNS),
        )
        row = self._run(query, [getattr(school, c) for c in SCHOOL_COLUMNS], fetch="one")
        school.id = row["id"]
        return school

    def update_school(self, school_id, **changes):
        unknown = set(changes) - set(SCHOOL_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown school columns: {sorted(unknown)}")
        query = sql.SQL("UPDATE schools SET {} WHERE id = %s;").format(
            sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(c)) for c in changes
            )
        )
        return self._run(query, list(changes.values()) + [school_id])

    # ---------- system user ----------

    def get_or_create_system_user(self):
        """Return the id of the user that authors every pipeline record."""
        query = sql.SQL("""
            INSERT INTO users (email, name) VALUES (%s, %s)
            ON CONFLICT (email) DO UPDATE SET email = EXCLUDED.email
            RETURNING id;
        """)
        row = self._run(query, (SYSTEM_USER_EMAIL, SYSTEM_USER_NAME), fetch="one")
        log("INFO", f"System user id {row['id']}")
        return row["id"]
