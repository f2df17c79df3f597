"""Tests for candtrack.resolver.ElectionResolver."""

from __future__ import annotations

import sqlite3

import pytest

from candtrack.db import init_schema, insert_election, open_db, seed_reference, seed_states
from candtrack.models import ElectionType, Office
from candtrack.resolver import ElectionResolver

DATE = "2026-11-03"


@pytest.fixture()
def db() -> sqlite3.Connection:
    conn = open_db(":memory:")
    init_schema(conn)
    seed_reference(conn, 2026)
    return conn


def _count(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) FROM elections").fetchone()[0]


class TestFind:
    """Tests for exact seat lookup."""

    def test_house_seat(self, db: sqlite3.Connection) -> None:
        e = ElectionResolver(db).find("OH", Office.HOUSE, 3)
        assert e is not None
        assert (e.state, e.office, e.district) == ("OH", Office.HOUSE, 3)

    def test_senate_seat(self, db: sqlite3.Connection) -> None:
        e = ElectionResolver(db).find("TX", Office.SENATE, None)
        assert e is not None
        assert e.senate_class == 2

    def test_most_recent_date_wins(self, db: sqlite3.Connection) -> None:
        with db:
            insert_election(db, "OH", "house", 3, None, "regular", "2028-11-07")
        e = ElectionResolver(db).find("OH", Office.HOUSE, 3)
        assert e is not None
        assert e.election_date == "2028-11-07"

    def test_missing(self, db: sqlite3.Connection) -> None:
        assert ElectionResolver(db).find("OH", Office.HOUSE, 99) is None


class TestResolve:
    """Tests for resolve, including lazy creation."""

    def test_existing_election_no_insert(self, db: sqlite3.Connection) -> None:
        before = _count(db)
        e = ElectionResolver(db).resolve(
            "OH", Office.HOUSE, 3, None,
            election_type=ElectionType.REGULAR, election_date=DATE,
        )
        assert e is not None and e.election_id is not None
        assert _count(db) == before

    def test_special_matches_seeded_special(self, db: sqlite3.Connection) -> None:
        e = ElectionResolver(db).resolve(
            "OH", Office.SENATE, None, 3,
            election_type=ElectionType.SPECIAL, election_date=DATE,
        )
        assert e is not None
        assert e.election_type is ElectionType.SPECIAL

    def test_special_created_once(self, db: sqlite3.Connection) -> None:
        resolver = ElectionResolver(db)
        before = _count(db)
        first = resolver.resolve(
            "OH", Office.HOUSE, 6, None,
            election_type=ElectionType.SPECIAL, election_date="2026-06-09",
        )
        second = resolver.resolve(
            "OH", Office.HOUSE, 6, None,
            election_type=ElectionType.SPECIAL, election_date="2026-06-09",
        )
        assert first is not None and second is not None
        assert first.election_id == second.election_id
        assert first.election_type is ElectionType.SPECIAL
        assert _count(db) == before + 1

    def test_regular_fallback_for_valid_seat(self) -> None:
        conn = open_db(":memory:")
        init_schema(conn)
        seed_states(conn)
        e = ElectionResolver(conn).resolve(
            "OH", Office.HOUSE, 3, None,
            election_type=ElectionType.REGULAR, election_date=DATE,
        )
        assert e is not None
        assert _count(conn) == 1

    def test_out_of_range_district_is_none(self, db: sqlite3.Connection) -> None:
        before = _count(db)
        e = ElectionResolver(db).resolve(
            "OH", Office.HOUSE, 40, None,
            election_type=ElectionType.REGULAR, election_date=DATE,
        )
        assert e is None
        assert _count(db) == before

    def test_unknown_state_is_none(self, db: sqlite3.Connection) -> None:
        e = ElectionResolver(db).resolve(
            "PR", Office.HOUSE, 0, None,
            election_type=ElectionType.REGULAR, election_date=DATE,
        )
        assert e is None

    def test_at_large_only_district_zero(self, db: sqlite3.Connection) -> None:
        resolver = ElectionResolver(db)
        assert resolver.resolve(
            "WY", Office.HOUSE, 0, None,
            election_type=ElectionType.REGULAR, election_date=DATE,
        ) is not None
        assert resolver.resolve(
            "WY", Office.HOUSE, 1, None,
            election_type=ElectionType.REGULAR, election_date=DATE,
        ) is None

    def test_regular_senate_not_up_is_none(self, db: sqlite3.Connection) -> None:
        e = ElectionResolver(db).resolve(
            "CA", Office.SENATE, None, None,
            election_type=ElectionType.REGULAR, election_date=DATE,
        )
        assert e is None
