"""SQLite database layer for candtrack.

Handles schema creation, connection management and reference seeding.
Candidate, election and run rows are written only through the merge
engine, the election resolver and the run ledger.
All queries use parameterized statements to prevent SQL injection.
"""

from __future__ import annotations

import logging
import sqlite3

from candtrack.models import DB_FILENAME
from candtrack.reference import (
    STATES,
    general_election_date,
    house_districts,
    regular_senate_class,
    regular_senate_states,
    special_senate_elections,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS states (
    code         TEXT    PRIMARY KEY,
    name         TEXT    NOT NULL,
    fips_code    TEXT    NOT NULL UNIQUE,
    house_seats  INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS elections (
    election_id   INTEGER PRIMARY KEY,
    state         TEXT    NOT NULL REFERENCES states(code),
    office        TEXT    NOT NULL CHECK (office IN ('senate', 'house', 'governor')),
    district      INTEGER,
    senate_class  INTEGER CHECK (senate_class IN (1, 2, 3)),
    election_type TEXT    NOT NULL DEFAULT 'regular'
        CHECK (election_type IN ('regular', 'special', 'primary', 'runoff')),
    election_date TEXT    NOT NULL,
    created_at    TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    CHECK (
        (office = 'house' AND district IS NOT NULL AND district >= 0)
        OR (office IN ('senate', 'governor') AND district IS NULL)
    ),
    CHECK (office = 'senate' OR senate_class IS NULL)
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_elections_unique_seat
    ON elections(state, office, COALESCE(district, -1),
                 COALESCE(senate_class, 0), election_type, election_date);
CREATE INDEX IF NOT EXISTS idx_elections_lookup
    ON elections(state, office, district);

CREATE TABLE IF NOT EXISTS candidates (
    candidate_id    INTEGER PRIMARY KEY,
    election_id     INTEGER NOT NULL REFERENCES elections(election_id),
    provider_id     TEXT,
    full_name       TEXT    NOT NULL,
    first_name      TEXT,
    last_name       TEXT,
    party           TEXT    NOT NULL,
    state           TEXT    NOT NULL REFERENCES states(code),
    office          TEXT    NOT NULL,
    district        INTEGER,
    senate_class    INTEGER CHECK (senate_class IN (1, 2, 3)),
    incumbent       INTEGER NOT NULL DEFAULT 0,
    status          TEXT    NOT NULL DEFAULT 'declared',
    election_type   TEXT    NOT NULL DEFAULT 'regular',
    election_date   TEXT    NOT NULL,
    ballotpedia_url TEXT,
    data_confidence REAL    NOT NULL DEFAULT 0.5
        CHECK (data_confidence >= 0 AND data_confidence <= 1),
    data_sources    TEXT    NOT NULL DEFAULT '[]',
    merge_count     INTEGER NOT NULL DEFAULT 1,
    last_verified   TEXT,
    created_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    CHECK (
        (office = 'house' AND district IS NOT NULL)
        OR (office IN ('senate', 'governor') AND district IS NULL)
    )
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_candidates_provider_id
    ON candidates(provider_id) WHERE provider_id IS NOT NULL;
CREATE UNIQUE INDEX IF NOT EXISTS idx_candidates_natural_key
    ON candidates(election_id, full_name) WHERE provider_id IS NULL;
CREATE INDEX IF NOT EXISTS idx_candidates_election
    ON candidates(election_id);
CREATE INDEX IF NOT EXISTS idx_candidates_state_office
    ON candidates(state, office);

CREATE TABLE IF NOT EXISTS collection_runs (
    run_id          INTEGER PRIMARY KEY,
    source          TEXT    NOT NULL,
    status          TEXT    NOT NULL DEFAULT 'running'
        CHECK (status IN ('running', 'completed', 'failed')),
    records_found   INTEGER NOT NULL DEFAULT 0,
    records_added   INTEGER NOT NULL DEFAULT 0,
    records_updated INTEGER NOT NULL DEFAULT 0,
    errors          TEXT    NOT NULL DEFAULT '[]',
    started_at      TEXT    NOT NULL,
    completed_at    TEXT,
    duration_ms     INTEGER
);

CREATE INDEX IF NOT EXISTS idx_collection_runs_source
    ON collection_runs(source);
CREATE INDEX IF NOT EXISTS idx_collection_runs_started_at
    ON collection_runs(started_at);
"""


def open_db(path: str = DB_FILENAME) -> sqlite3.Connection:
    """Open (or create) the SQLite database with recommended pragmas.

    Args:
        path: Filesystem path to the database file.

    Returns:
        An open sqlite3.Connection with WAL mode and foreign keys enabled.
        A busy timeout lets collectors for different providers share
        the file.
    """
    conn = sqlite3.connect(path, timeout=30.0)
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute("PRAGMA cache_size = -64000")  # 64 MB
    conn.row_factory = sqlite3.Row
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes if they do not exist.

    Args:
        conn: An open database connection.
    """
    conn.executescript(SCHEMA_SQL)
    conn.commit()


# ── Reference data ─────────────────────────────────────────────────────────


def seed_states(conn: sqlite3.Connection) -> int:
    """Insert or refresh the states reference table.

    Returns:
        Number of rows written.
    """
    before = conn.total_changes
    conn.executemany(
        """\
        INSERT INTO states (code, name, fips_code, house_seats)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(code) DO UPDATE SET house_seats = excluded.house_seats
        """,
        [(s.code, s.name, s.fips_code, s.house_seats) for s in STATES],
    )
    conn.commit()
    return conn.total_changes - before


def insert_election(
    conn: sqlite3.Connection,
    state: str,
    office: str,
    district: int | None,
    senate_class: int | None,
    election_type: str,
    election_date: str,
) -> int:
    """Insert an election, doing nothing if the seat row already exists.

    Returns:
        1 if a row was inserted, 0 otherwise.
    """
    cursor = conn.execute(
        """\
        INSERT INTO elections
            (state, office, district, senate_class, election_type, election_date)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT DO NOTHING
        """,
        (state, office, district, senate_class, election_type, election_date),
    )
    return cursor.rowcount


def seed_elections(conn: sqlite3.Connection, cycle: int) -> int:
    """Create the cycle's regular Senate, special Senate and House elections.

    Args:
        conn: Database connection with the states table seeded.
        cycle: Election year.

    Returns:
        Number of elections newly inserted.
    """
    date = general_election_date(cycle)
    inserted = 0

    senate_class = regular_senate_class(cycle)
    for code in regular_senate_states(cycle):
        inserted += insert_election(
            conn, code, "senate", None, senate_class, "regular", date
        )

    for code, special_class in special_senate_elections(cycle).items():
        inserted += insert_election(
            conn, code, "senate", None, special_class, "special", date
        )

    for state in STATES:
        for district in house_districts(state):
            inserted += insert_election(
                conn, state.code, "house", district, None, "regular", date
            )

    conn.commit()
    logger.info("Seeded %d new elections for %d.", inserted, cycle)
    return inserted


def seed_reference(conn: sqlite3.Connection, cycle: int) -> int:
    """Seed states and the cycle's elections. Safe to re-run.

    Returns:
        Number of elections newly inserted.
    """
    seed_states(conn)
    return seed_elections(conn, cycle)


def get_states(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    """Return all states ordered by code."""
    return conn.execute(
        "SELECT code, name, house_seats FROM states ORDER BY code"
    ).fetchall()
