"""Tests for candtrack.ledger.RunLedger."""

from __future__ import annotations

import sqlite3
from unittest.mock import MagicMock

import pytest

from candtrack.db import init_schema, open_db
from candtrack.errors import LedgerError
from candtrack.ledger import RunLedger, deserialize_errors, serialize_errors
from candtrack.models import MergeResult, RecordResult, RunError, RunStatus


@pytest.fixture()
def db() -> sqlite3.Connection:
    conn = open_db(":memory:")
    init_schema(conn)
    return conn


def _clock(*stamps: str) -> MagicMock:
    return MagicMock(side_effect=list(stamps))


class TestLifecycle:
    """Tests for start, record and finalize."""

    def test_start_inserts_running_row(self, db: sqlite3.Connection) -> None:
        run = RunLedger(db).start("fec")
        assert run.run_id is not None
        stored = RunLedger(db).get(run.run_id)
        assert stored is not None
        assert stored.status is RunStatus.RUNNING
        assert stored.source == "fec"

    def test_complete_persists_counters(self, db: sqlite3.Connection) -> None:
        ledger = RunLedger(
            db,
            clock=_clock("2026-10-18T12:00:00.000+00:00", "2026-10-18T12:00:01.500+00:00"),
        )
        run = ledger.start("fec")
        ledger.record(run, RecordResult.merged(MergeResult(1, inserted=True)))
        ledger.record(run, RecordResult.merged(MergeResult(1, inserted=False)))
        ledger.record(run, RecordResult.skipped("No matching election", "OH house-40 X"))
        ledger.record(run, RecordResult.failed("boom", "TX senate Y"))
        ledger.complete(run)

        stored = ledger.get(run.run_id)
        assert stored is not None
        assert stored.status is RunStatus.COMPLETED
        assert stored.records_found == 4
        assert stored.records_added == 1
        assert stored.records_updated == 1
        assert stored.duration_ms == 1500
        assert [e.context for e in stored.errors] == ["OH house-40 X", "TX senate Y"]

    def test_fail_records_error(self, db: sqlite3.Connection) -> None:
        ledger = RunLedger(db)
        run = ledger.start("fec")
        ledger.fail(run, RuntimeError("store gone"))

        stored = ledger.get(run.run_id)
        assert stored is not None
        assert stored.status is RunStatus.FAILED
        assert stored.completed_at is not None
        assert stored.errors[-1] == RunError("store gone", "RuntimeError")

    def test_finalize_only_once(self, db: sqlite3.Connection) -> None:
        ledger = RunLedger(db)
        run = ledger.start("fec")
        ledger.complete(run)
        with pytest.raises(LedgerError):
            ledger.complete(run)
        with pytest.raises(LedgerError):
            ledger.fail(run, RuntimeError("late"))

    def test_record_after_finalize_rejected(self, db: sqlite3.Connection) -> None:
        ledger = RunLedger(db)
        run = ledger.start("fec")
        ledger.complete(run)
        with pytest.raises(LedgerError):
            ledger.add_error(run, "late")

    def test_stale_handle_rejected_by_store(self, db: sqlite3.Connection) -> None:
        ledger = RunLedger(db)
        run = ledger.start("fec")
        copy = RunLedger(db).get(run.run_id)
        assert copy is not None
        ledger.complete(run)
        with pytest.raises(LedgerError):
            ledger.complete(copy)

    def test_latest(self, db: sqlite3.Connection) -> None:
        ledger = RunLedger(db)
        ledger.complete(ledger.start("fec"))
        second = ledger.start("fec")
        ledger.start("ballotpedia")
        latest = ledger.latest("fec")
        assert latest is not None
        assert latest.run_id == second.run_id
        assert ledger.latest("nope") is None


class TestErrorSerialization:
    def test_round_trip_preserves_order(self) -> None:
        errors = [RunError("a", "x"), RunError("b")]
        assert deserialize_errors(serialize_errors(errors)) == errors

    def test_tolerates_empty_and_garbage(self) -> None:
        assert deserialize_errors(None) == []
        assert deserialize_errors("{}") == []
        assert deserialize_errors('[1, {"message": "m"}]') == [RunError("m", "")]
