"""CLI entry point for candtrack.

Usage::

    python -m candtrack --cycle 2026 --stage seed
    python -m candtrack --cycle 2026 --source fec --stage collect
    python -m candtrack --cycle 2026 --source all
    python -m candtrack --stage verify
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from candtrack.models import DB_FILENAME, DEFAULT_CYCLE


def main() -> None:
    """Parse CLI arguments and run the pipeline."""
    parser = argparse.ArgumentParser(
        prog="candtrack",
        description="Collect and reconcile US federal candidate data.",
    )
    parser.add_argument(
        "--cycle",
        type=int,
        default=DEFAULT_CYCLE,
        help=f"Election year (default: {DEFAULT_CYCLE})",
    )
    parser.add_argument(
        "--source",
        type=str,
        default="all",
        choices=["fec", "ballotpedia", "all"],
        help='Source to collect: "fec", "ballotpedia", or "all"',
    )
    parser.add_argument(
        "--stage",
        type=str,
        default=None,
        choices=["seed", "collect", "verify"],
        help="Run only this pipeline stage (default: all stages)",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=DB_FILENAME,
        help=f"SQLite database path (default: {DB_FILENAME})",
    )
    parser.add_argument(
        "--fec-api-key",
        type=str,
        default=os.environ.get("FEC_API_KEY", ""),
        help="OpenFEC API key (default: $FEC_API_KEY)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    from candtrack.pipeline import run_pipeline

    sys.exit(
        run_pipeline(
            cycle=args.cycle,
            source=args.source,
            stage=args.stage,
            db_path=args.db,
            fec_api_key=args.fec_api_key,
        )
    )


if __name__ == "__main__":
    main()
