"""Tests for candtrack.verify integrity checks."""

from __future__ import annotations

import datetime as dt
import sqlite3

import pytest

from candtrack.db import init_schema, open_db, seed_reference
from candtrack.ledger import RunLedger
from candtrack.verify import (
    check_no_running,
    check_orphans,
    default_checks,
    make_recent_activity_check,
    verify_database,
)

NOW = dt.datetime(2026, 10, 18, 12, 0, tzinfo=dt.timezone.utc)


@pytest.fixture()
def db() -> sqlite3.Connection:
    conn = open_db(":memory:")
    init_schema(conn)
    seed_reference(conn, 2026)
    return conn


def _ledger(conn: sqlite3.Connection, stamp: str = "2026-10-18T11:00:00.000+00:00") -> RunLedger:
    return RunLedger(conn, clock=lambda: stamp)


class TestVerifyDatabase:
    """Tests for the full check suite."""

    def test_healthy_database_passes(self, db: sqlite3.Connection) -> None:
        ledger = _ledger(db)
        ledger.complete(ledger.start("fec"))

        report = verify_database(db, 2026, default_checks(now=lambda: NOW))

        assert report.failed == 0
        assert report.warnings == 0
        assert report.exit_code == 0
        assert report.passed == len(report.results)

    def test_empty_database_fails(self) -> None:
        conn = open_db(":memory:")
        init_schema(conn)

        report = verify_database(conn, 2026, default_checks(now=lambda: NOW))

        assert report.exit_code == 1
        failed = {r.name for r in report.results if r.passed is False}
        assert "States seeded" in failed
        assert "House elections for 2026" in failed
        assert "Recent collection activity" in failed

    def test_missing_tables_are_warnings(self) -> None:
        conn = sqlite3.connect(":memory:")

        report = verify_database(conn, 2026, default_checks(now=lambda: NOW))

        assert report.warnings == len(report.results)
        assert report.exit_code == 0


class TestChecks:
    def test_stale_activity(self, db: sqlite3.Connection) -> None:
        ledger = _ledger(db, "2026-09-01T00:00:00.000+00:00")
        ledger.complete(ledger.start("fec"))
        result = make_recent_activity_check(lambda: NOW)(db, 2026)
        assert result.passed is False

    def test_running_run_flagged(self, db: sqlite3.Connection) -> None:
        _ledger(db).start("ballotpedia")
        assert check_no_running(db, 2026).passed is False

    def test_orphans_detected(self, db: sqlite3.Connection) -> None:
        db.execute("PRAGMA foreign_keys = OFF")
        db.execute(
            """\
            INSERT INTO candidates
                (election_id, full_name, party, state, office, district, election_date)
            VALUES (99999, 'Ghost', 'other', 'OH', 'house', 3, '2026-11-03')
            """
        )
        result = check_orphans(db, 2026)
        assert result.passed is False
        assert result.detail == "1 orphans"
