"""Pipeline orchestrator: chains the seed, collect and verify stages.

Each stage is idempotent (seed and merge use upsert semantics) so any
stage can be re-run without duplicating data. Collectors for different
sources are independent: one source failing does not stop the others.
"""

from __future__ import annotations

import logging
import sqlite3

from candtrack.collectors import COLLECTOR_REGISTRY, get_collector
from candtrack.collectors.base import CollectorConfig
from candtrack.db import init_schema, open_db, seed_reference
from candtrack.errors import CandtrackError, ConfigError
from candtrack.models import DB_FILENAME, DEFAULT_CYCLE, CollectionRun
from candtrack.verify import verify_database

# Import collectors to trigger registration via register_collector()
import candtrack.collectors.ballotpedia  # noqa: F401
import candtrack.collectors.fec  # noqa: F401

logger = logging.getLogger(__name__)

STAGES = ("seed", "collect", "verify")


def run_pipeline(
    cycle: int = DEFAULT_CYCLE,
    source: str = "all",
    stage: str | None = None,
    db_path: str = DB_FILENAME,
    fec_api_key: str = "",
) -> int:
    """Run the candtrack pipeline for one election cycle.

    Args:
        cycle: Election year (e.g. 2026).
        source: Collector name ("fec", "ballotpedia") or "all" for every
            registered collector.
        stage: Optional stage filter: "seed", "collect" or "verify".
            If None, all stages run in order.
        db_path: Path to the SQLite database file.
        fec_api_key: OpenFEC credential.

    Returns:
        Process exit code: 0 on success, 1 if a collection run failed or
        a verification check failed.
    """
    conn = open_db(db_path)
    init_schema(conn)

    try:
        return _run(conn, cycle, source, stage, fec_api_key)
    finally:
        conn.close()


def _run(
    conn: sqlite3.Connection,
    cycle: int,
    source: str,
    stage: str | None,
    fec_api_key: str,
) -> int:
    if source == "all":
        source_names = list(COLLECTOR_REGISTRY.keys())
    else:
        source_names = [source]

    exit_code = 0

    # Stage 1: Seed reference data
    if stage in (None, "seed"):
        seed_reference(conn, cycle)

    # Stage 2: Collect
    if stage in (None, "collect"):
        config = CollectorConfig(cycle=cycle, fec_api_key=fec_api_key)
        for name in source_names:
            if collect_source(conn, name, config) is None:
                exit_code = 1
        _log_summary(conn, cycle)

    # Stage 3: Verify
    if stage in (None, "verify"):
        report = verify_database(conn, cycle)
        exit_code = max(exit_code, report.exit_code)

    return exit_code


def collect_source(
    conn: sqlite3.Connection,
    name: str,
    config: CollectorConfig,
) -> CollectionRun | None:
    """Run one registered collector.

    Args:
        conn: Open database connection.
        name: Registered collector name.
        config: Shared collector settings.

    Returns:
        The completed run, or None if the source is unknown or the run
        failed (a failed run is already recorded in the ledger).
    """
    try:
        collector = get_collector(name)(config)
    except ConfigError as exc:
        logger.error("%s", exc)
        return None

    try:
        return collector.run(conn)
    except (CandtrackError, sqlite3.Error) as exc:
        logger.error("%s collection aborted: %s", name, exc)
        return None
    finally:
        collector.client.close()


def _log_summary(conn: sqlite3.Connection, cycle: int) -> None:
    """Log a summary of the database contents for a given cycle.

    Args:
        conn: Open database connection.
        cycle: Election year to summarize.
    """
    like = f"{cycle}-%"
    elections = conn.execute(
        "SELECT COUNT(*) FROM elections WHERE election_date LIKE ?", (like,)
    ).fetchone()[0]

    candidates = conn.execute(
        """\
        SELECT COUNT(*) FROM candidates c
        JOIN elections e ON c.election_id = e.election_id
        WHERE e.election_date LIKE ?
        """,
        (like,),
    ).fetchone()[0]

    sources = conn.execute(
        """\
        SELECT COUNT(*) FROM candidates c
        JOIN elections e ON c.election_id = e.election_id
        WHERE e.election_date LIKE ? AND json_array_length(c.data_sources) > 1
        """,
        (like,),
    ).fetchone()[0]

    logger.info(
        "Database summary for %d: %d elections, %d candidates, %d seen by multiple sources.",
        cycle,
        elections,
        candidates,
        sources,
    )
