"""Collection run ledger: the append-only audit trail of pipeline runs.

A run is inserted as ``running`` when a collector starts and finalized
exactly once, to ``completed`` or ``failed``. Rows are never deleted.
"""

from __future__ import annotations

import datetime as dt
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import asdict

import orjson

from candtrack.errors import LedgerError
from candtrack.models import (
    CollectionRun,
    Outcome,
    RecordResult,
    RunError,
    RunStatus,
    utc_now,
)

logger = logging.getLogger(__name__)


def _duration_ms(started_at: str, completed_at: str) -> int:
    start = dt.datetime.fromisoformat(started_at)
    end = dt.datetime.fromisoformat(completed_at)
    return max(0, int((end - start).total_seconds() * 1000))


def serialize_errors(errors: list[RunError]) -> str:
    """Encode an error list as JSON text for the ``errors`` column."""
    return orjson.dumps([asdict(e) for e in errors]).decode()


def deserialize_errors(raw: str | bytes | None) -> list[RunError]:
    """Decode the ``errors`` column back into RunError entries."""
    if not raw:
        return []
    data = orjson.loads(raw)
    if not isinstance(data, list):
        return []
    return [
        RunError(message=str(e.get("message", "")), context=str(e.get("context", "")))
        for e in data
        if isinstance(e, dict)
    ]


def _row_to_run(row: sqlite3.Row) -> CollectionRun:
    return CollectionRun(
        source=row["source"],
        run_id=row["run_id"],
        status=RunStatus(row["status"]),
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        records_found=row["records_found"],
        records_added=row["records_added"],
        records_updated=row["records_updated"],
        duration_ms=row["duration_ms"],
        errors=deserialize_errors(row["errors"]),
    )


class RunLedger:
    """Creates, updates and finalizes ``collection_runs`` rows.

    Args:
        conn: Open database connection.
        clock: Returns the current time as ISO text.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self._conn = conn
        self._clock = clock

    def start(self, source: str) -> CollectionRun:
        """Insert a ``running`` row for *source* and return its run."""
        run = CollectionRun(source=source, started_at=self._clock())
        with self._conn:
            cursor = self._conn.execute(
                """\
                INSERT INTO collection_runs (source, status, started_at)
                VALUES (?, ?, ?)
                RETURNING run_id
                """,
                (source, RunStatus.RUNNING.value, run.started_at),
            )
            run.run_id = cursor.fetchall()[0][0]
        logger.info("Started %s collection run %d.", source, run.run_id)
        return run

    def record(self, run: CollectionRun, result: RecordResult) -> None:
        """Count one provider record and keep its error entry, if any."""
        self._require_running(run)
        run.records_found += 1
        if result.outcome is Outcome.ADDED:
            run.records_added += 1
        elif result.outcome is Outcome.UPDATED:
            run.records_updated += 1
        if result.error is not None:
            run.errors.append(result.error)

    def add_error(self, run: CollectionRun, message: str, context: str = "") -> None:
        """Append an error that is not tied to a single record."""
        self._require_running(run)
        run.errors.append(RunError(message=message, context=context))

    def complete(self, run: CollectionRun) -> CollectionRun:
        """Finalize *run* as completed."""
        return self._finalize(run, RunStatus.COMPLETED)

    def fail(self, run: CollectionRun, exc: BaseException) -> CollectionRun:
        """Finalize *run* as failed, recording *exc* as the last error."""
        self._require_running(run)
        run.errors.append(
            RunError(message=str(exc) or type(exc).__name__, context=type(exc).__name__)
        )
        return self._finalize(run, RunStatus.FAILED)

    def get(self, run_id: int) -> CollectionRun | None:
        row = self._conn.execute(
            "SELECT * FROM collection_runs WHERE run_id = ?", (run_id,)
        ).fetchone()
        return _row_to_run(row) if row else None

    def latest(self, source: str) -> CollectionRun | None:
        """Return the most recently started run for *source*."""
        row = self._conn.execute(
            """\
            SELECT * FROM collection_runs WHERE source = ?
            ORDER BY started_at DESC, run_id DESC LIMIT 1
            """,
            (source,),
        ).fetchone()
        return _row_to_run(row) if row else None

    def _require_running(self, run: CollectionRun) -> None:
        if run.status is not RunStatus.RUNNING:
            raise LedgerError(
                f"Run {run.run_id} ({run.source}) is already {run.status.value}"
            )

    def _finalize(self, run: CollectionRun, status: RunStatus) -> CollectionRun:
        self._require_running(run)
        completed_at = self._clock()
        duration = _duration_ms(run.started_at, completed_at)
        with self._conn:
            cursor = self._conn.execute(
                """\
                UPDATE collection_runs SET
                    status = ?, records_found = ?, records_added = ?,
                    records_updated = ?, errors = ?, completed_at = ?,
                    duration_ms = ?
                WHERE run_id = ? AND status = 'running'
                """,
                (
                    status.value,
                    run.records_found,
                    run.records_added,
                    run.records_updated,
                    serialize_errors(run.errors),
                    completed_at,
                    duration,
                    run.run_id,
                ),
            )
        if cursor.rowcount != 1:
            raise LedgerError(f"Run {run.run_id} is not running in the store")
        run.status = status
        run.completed_at = completed_at
        run.duration_ms = duration
        logger.info(
            "%s run %d %s: %d found, %d added, %d updated, %d errors (%d ms).",
            run.source,
            run.run_id,
            status.value,
            run.records_found,
            run.records_added,
            run.records_updated,
            len(run.errors),
            duration,
        )
        return run
