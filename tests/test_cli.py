"""
Tests for the command line entry point.

Runs status and reopen against a JSON store in a temporary directory.
"""

import json
from pathlib import Path

import pytest
from loguru import logger

from judge_portal.__main__ import build_settings, main, parse_args, wire_components
from judge_portal.models import PointSplit
from judge_portal.reporters.challonge_reporter import ChallongeReporter
from judge_portal.reporters.recording_reporter import RecordingReporter
from judge_portal.storage.json_storage import JSONFileScorecardStore
from judge_portal.storage.memory_storage import InMemoryScorecardStore

ENV_VARS = [
    "CHALLONGE_API_KEY",
    "CHALLONGE_BASE_URL",
    "JUDGE_PORTAL_DATA_DIR",
    "JUDGE_PORTAL_CRITERIA",
    "JUDGE_PORTAL_KO_LOSER_SCORE",
    "PORT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path: Path):
    """Keep the host environment and log files out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    # main() installs file sinks in the temporary directory
    logger.remove()


def seed_finalized_match(data_dir: Path) -> None:
    settings = build_settings(parse_args(["--data-dir", str(data_dir), "status"]))
    controller, _ = wire_components(settings)
    for judge_id in ("judge_1", "judge_2", "judge_3"):
        controller.submit_scorecard(
            "55", judge_id, "777", "1001", "1002",
            PointSplit(shares_a={"aggression": 2, "damage": 3, "control": 2}),
        )


class TestWiring:
    def test_in_memory_without_data_dir(self) -> None:
        settings = build_settings(parse_args(["serve"]))

        controller, host_client = wire_components(settings)

        assert isinstance(controller.store, InMemoryScorecardStore)
        assert isinstance(controller.reporter, RecordingReporter)
        assert host_client is None

    def test_challonge_when_key_configured(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv("CHALLONGE_API_KEY", "abc")

        settings = build_settings(parse_args(["--data-dir", str(tmp_path), "serve", "--port", "8080"]))
        controller, host_client = wire_components(settings)

        assert settings.port == 8080
        assert isinstance(controller.store, JSONFileScorecardStore)
        assert isinstance(host_client, ChallongeReporter)
        assert controller.reporter is host_client

    def test_command_line_scoring_overrides(self) -> None:
        settings = build_settings(parse_args(["--criteria", "damage:6,control:4", "--ko-loser-score", "2", "serve"]))

        assert settings.scoring.point_budget == 10
        assert settings.scoring.ko_loser_score == 2


class TestCommands:
    def test_status_lists_matches(self, tmp_path: Path, capsys) -> None:
        # Arrange
        data_dir = tmp_path / "data"
        seed_finalized_match(data_dir)

        # Act
        main(["--data-dir", str(data_dir), "status"])

        # Assert
        out = capsys.readouterr().out
        assert "55" in out
        assert "finalized" in out
        assert "21-12" in out

    def test_status_of_one_match(self, tmp_path: Path, capsys) -> None:
        data_dir = tmp_path / "data"
        seed_finalized_match(data_dir)

        main(["--data-dir", str(data_dir), "status", "55"])

        out = capsys.readouterr().out
        assert "1001 vs 1002" in out
        assert "judge_3" in out
        assert "2-1" in out

    def test_reopen_keeps_cards_locally(self, tmp_path: Path, capsys) -> None:
        data_dir = tmp_path / "data"
        seed_finalized_match(data_dir)

        main(["--data-dir", str(data_dir), "reopen", "55", "--no-notify-host", "--keep-scorecards"])

        assert "3 scorecard(s) kept" in capsys.readouterr().out
        record = JSONFileScorecardStore(data_dir / "records.json").get("55")
        assert record is not None
        assert record.finalized is False
        assert record.judge_count == 3

    def test_reopen_unknown_match_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["--data-dir", str(tmp_path / "data"), "reopen", "99"])

        assert excinfo.value.code == 1

    def test_status_needs_data_dir(self) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["status"])

        assert excinfo.value.code == 1


class TestLogging:
    def test_log_file_holds_one_json_record_per_line(self, tmp_path: Path, capsys) -> None:
        """Each record carries the component that logged it."""
        # Arrange
        data_dir = tmp_path / "data"

        # Act
        main(["--data-dir", str(data_dir), "status"])
        logger.complete()

        # Assert
        lines = (tmp_path / "judge_portal.log").read_text().splitlines()
        records = [json.loads(line)["record"] for line in lines]
        assert records
        assert "wire_components" in {r["extra"]["component"] for r in records}
        assert all(r["level"]["no"] >= 20 for r in records)
