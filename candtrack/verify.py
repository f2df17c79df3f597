"""Post-collection integrity checks over the candidate store.

Each check runs one read-only query and turns the result into a pass or
fail line. A check whose query errors (e.g. a table missing because the
schema was never created) is reported as a warning rather than a failure.
"""

from __future__ import annotations

import datetime as dt
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field

from candtrack.reference import (
    STATES,
    general_election_date,
    regular_senate_states,
    special_senate_elections,
)

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_DAYS = 7


@dataclass
class CheckResult:
    """Outcome of one verification check.

    Attributes:
        name: Human-readable check name.
        passed: Whether the check held; None when it could not run.
        detail: Short explanation ("435/435 House seats").
    """

    name: str
    passed: bool | None
    detail: str


@dataclass
class VerifyReport:
    results: list[CheckResult] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed is True)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.passed is False)

    @property
    def warnings(self) -> int:
        return sum(1 for r in self.results if r.passed is None)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0


def _count(conn: sqlite3.Connection, sql: str, params: tuple = ()) -> int:
    return int(conn.execute(sql, params).fetchone()[0])


# ── Checks ─────────────────────────────────────────────────────────────────


def check_states(conn: sqlite3.Connection, cycle: int) -> CheckResult:
    cnt = _count(conn, "SELECT COUNT(*) FROM states")
    return CheckResult("States seeded", cnt >= len(STATES), f"{cnt} states found")


def check_senate_elections(conn: sqlite3.Connection, cycle: int) -> CheckResult:
    expected = len(regular_senate_states(cycle)) + len(special_senate_elections(cycle))
    cnt = _count(
        conn,
        "SELECT COUNT(*) FROM elections WHERE office = 'senate' AND election_date = ?",
        (general_election_date(cycle),),
    )
    return CheckResult(
        f"Senate elections for {cycle}", cnt >= expected, f"{cnt}/{expected} seats"
    )


def check_house_elections(conn: sqlite3.Connection, cycle: int) -> CheckResult:
    expected = sum(s.house_seats for s in STATES)
    cnt = _count(
        conn,
        """\
        SELECT COUNT(*) FROM elections
        WHERE office = 'house' AND election_type = 'regular' AND election_date = ?
        """,
        (general_election_date(cycle),),
    )
    return CheckResult(
        f"House elections for {cycle}", cnt == expected, f"{cnt}/{expected} House seats"
    )


def check_orphans(conn: sqlite3.Connection, cycle: int) -> CheckResult:
    cnt = _count(
        conn,
        """\
        SELECT COUNT(*) FROM candidates c
        LEFT JOIN elections e ON c.election_id = e.election_id
        WHERE e.election_id IS NULL
        """,
    )
    return CheckResult(
        "No orphaned candidates", cnt == 0, "clean" if cnt == 0 else f"{cnt} orphans"
    )


def check_confidence(conn: sqlite3.Connection, cycle: int) -> CheckResult:
    cnt = _count(
        conn,
        "SELECT COUNT(*) FROM candidates WHERE data_confidence < 0 OR data_confidence > 1",
    )
    return CheckResult(
        "Data confidence in valid range",
        cnt == 0,
        "all valid" if cnt == 0 else f"{cnt} out of range",
    )


def check_run_accounting(conn: sqlite3.Connection, cycle: int) -> CheckResult:
    cnt = _count(
        conn,
        """\
        SELECT COUNT(*) FROM collection_runs
        WHERE records_added + records_updated > records_found
        """,
    )
    return CheckResult(
        "Run counters consistent",
        cnt == 0,
        "consistent" if cnt == 0 else f"{cnt} runs over-counted",
    )


def check_no_running(conn: sqlite3.Connection, cycle: int) -> CheckResult:
    cnt = _count(
        conn, "SELECT COUNT(*) FROM collection_runs WHERE status = 'running'"
    )
    return CheckResult(
        "No unfinished runs",
        cnt == 0,
        "all finalized" if cnt == 0 else f"{cnt} runs still running",
    )


def make_recent_activity_check(
    now: Callable[[], dt.datetime],
    days: int = RECENT_ACTIVITY_DAYS,
) -> Callable[[sqlite3.Connection, int], CheckResult]:
    """Build a check that at least one run started in the last *days* days."""

    def check_recent_activity(conn: sqlite3.Connection, cycle: int) -> CheckResult:
        cutoff = (now() - dt.timedelta(days=days)).isoformat(timespec="milliseconds")
        cnt = _count(
            conn,
            "SELECT COUNT(*) FROM collection_runs WHERE started_at > ?",
            (cutoff,),
        )
        return CheckResult(
            "Recent collection activity", cnt > 0, f"{cnt} runs in last {days} days"
        )

    return check_recent_activity


def default_checks(
    now: Callable[[], dt.datetime] = lambda: dt.datetime.now(dt.timezone.utc),
) -> list[Callable[[sqlite3.Connection, int], CheckResult]]:
    return [
        check_states,
        check_senate_elections,
        check_house_elections,
        check_orphans,
        check_confidence,
        check_run_accounting,
        check_no_running,
        make_recent_activity_check(now),
    ]


def verify_database(
    conn: sqlite3.Connection,
    cycle: int,
    checks: list[Callable[[sqlite3.Connection, int], CheckResult]] | None = None,
) -> VerifyReport:
    """Run every integrity check and log one line per check.

    Args:
        conn: Open database connection.
        cycle: Election year whose seeded contests are checked.
        checks: Checks to run; defaults to ``default_checks()``.

    Returns:
        The report; ``exit_code`` is non-zero if any check failed.
    """
    report = VerifyReport()
    for check in checks if checks is not None else default_checks():
        try:
            result = check(conn, cycle)
        except sqlite3.Error as exc:
            name = check.__name__.removeprefix("check_").replace("_", " ")
            result = CheckResult(name, None, str(exc))
            logger.warning("WARN %s: %s", result.name, result.detail)
        else:
            if result.passed:
                logger.info("PASS %s: %s", result.name, result.detail)
            else:
                logger.error("FAIL %s: %s", result.name, result.detail)
        report.results.append(result)

    logger.info(
        "Verification: %d passed, %d failed, %d warnings.",
        report.passed,
        report.failed,
        report.warnings,
    )
    return report
