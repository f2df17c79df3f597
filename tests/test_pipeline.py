"""Tests for the pipeline orchestrator and CLI."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from candtrack.__main__ import main
from candtrack.collectors import (
    COLLECTOR_REGISTRY,
    get_collector,
    register_collector,
    registered_sources,
)
from candtrack.collectors.ballotpedia import BallotpediaCollector
from candtrack.collectors.fec import FecCollector
from candtrack.db import open_db
from candtrack.errors import ConfigError
from candtrack.ledger import RunLedger
from candtrack.models import RunStatus
from candtrack.pipeline import run_pipeline


class TestRunPipeline:
    """Tests for run_pipeline stages."""

    def test_collectors_registered(self) -> None:
        assert {"fec", "ballotpedia"} <= set(COLLECTOR_REGISTRY)

    def test_seed_stage(self, tmp_path: Path) -> None:
        db_path = str(tmp_path / "t.db")
        assert run_pipeline(cycle=2026, stage="seed", db_path=db_path) == 0

        conn = open_db(db_path)
        try:
            assert conn.execute("SELECT COUNT(*) FROM elections").fetchone()[0] == 470
        finally:
            conn.close()

    def test_collect_without_key_fails(self, tmp_path: Path) -> None:
        db_path = str(tmp_path / "t.db")
        run_pipeline(cycle=2026, stage="seed", db_path=db_path)

        code = run_pipeline(
            cycle=2026, source="fec", stage="collect", db_path=db_path, fec_api_key=""
        )

        assert code == 1
        conn = open_db(db_path)
        try:
            latest = RunLedger(conn).latest("fec")
        finally:
            conn.close()
        assert latest is not None
        assert latest.status is RunStatus.FAILED

    def test_unknown_source_fails_collect(self, tmp_path: Path) -> None:
        db_path = str(tmp_path / "t.db")
        assert run_pipeline(cycle=2026, source="xyz", stage="collect", db_path=db_path) == 1

    def test_verify_stage_reports_failure(self, tmp_path: Path) -> None:
        db_path = str(tmp_path / "t.db")
        assert run_pipeline(cycle=2026, stage="verify", db_path=db_path) == 1


class TestRegistry:
    """Tests for collector lookup and registration."""

    def test_unknown_source_names_registered(self) -> None:
        with pytest.raises(ConfigError) as excinfo:
            get_collector("xyz")
        message = str(excinfo.value)
        assert "xyz" in message
        assert "fec" in message
        assert "ballotpedia" in message

    def test_registered_sources_sorted(self) -> None:
        names = registered_sources()
        assert names == sorted(names)
        assert {"fec", "ballotpedia"} <= set(names)

    def test_same_class_may_register_again(self) -> None:
        register_collector("fec", FecCollector)
        assert get_collector("fec") is FecCollector

    def test_name_clash_rejected(self) -> None:
        with pytest.raises(ValueError):
            register_collector("fec", BallotpediaCollector)
        assert get_collector("fec") is FecCollector


class TestCli:
    """Tests for the argparse entry point."""

    @patch("candtrack.pipeline.run_pipeline")
    def test_arguments_forwarded(self, mock_run: MagicMock) -> None:
        mock_run.return_value = 0
        argv = ["candtrack", "--cycle", "2026", "--source", "fec", "--stage", "collect",
                "--db", "x.db", "--fec-api-key", "k"]
        with patch.object(sys, "argv", argv), pytest.raises(SystemExit) as excinfo:
            main()

        assert excinfo.value.code == 0
        mock_run.assert_called_once_with(
            cycle=2026, source="fec", stage="collect", db_path="x.db", fec_api_key="k"
        )

    @patch("candtrack.pipeline.run_pipeline")
    def test_failure_exit_code(self, mock_run: MagicMock) -> None:
        mock_run.return_value = 1
        with patch.object(sys, "argv", ["candtrack"]), pytest.raises(SystemExit) as excinfo:
            main()
        assert excinfo.value.code == 1

    def test_unknown_source_rejected(self) -> None:
        with patch.object(sys, "argv", ["candtrack", "--source", "nope"]), pytest.raises(
            SystemExit
        ) as excinfo:
            main()
        assert excinfo.value.code == 2
