"""
Tests for scoring configuration, settings and record validation.
"""

from pathlib import Path

import pytest

from judge_portal.config import Settings
from judge_portal.exceptions import ConfigurationError, ValidationError
from judge_portal.models import Criterion, MatchResult, MatchScoringRecord, MatchState, PointSplit, ScoringConfig
from judge_portal.reporters.challonge_reporter import CHALLONGE_BASE_URL


class TestScoringConfig:
    def test_defaults(self) -> None:
        config = ScoringConfig()

        assert config.criterion_ids == ["aggression", "damage", "control"]
        assert config.point_budget == 11
        assert config.ko_loser_score == 0
        assert config.get_criterion("damage").name == "Damage"

    def test_from_string(self) -> None:
        config = ScoringConfig.from_string(" Aggression:4, damage:4 ,control:2,", ko_loser_score=3)

        assert config.criterion_ids == ["aggression", "damage", "control"]
        assert config.point_budget == 10
        assert config.ko_loser_score == 3

    @pytest.mark.parametrize(
        "text",
        ["damage", "damage:x", "damage:0", "damage:11", "a:1,a:2", "a:1,b:1,c:1,d:1,e:1,f:1,g:1", ""],
    )
    def test_from_string_rejects_bad_input(self, text: str) -> None:
        with pytest.raises(ConfigurationError):
            ScoringConfig.from_string(text)

    def test_judge_roles_must_be_three_distinct(self) -> None:
        with pytest.raises(ConfigurationError):
            ScoringConfig(judge_roles=("judge_1", "judge_1", "judge_2"))
        with pytest.raises(ConfigurationError):
            ScoringConfig(judge_roles=("judge_1", "judge_2"))

    @pytest.mark.parametrize("ko_loser_score", [-1, 33])
    def test_ko_loser_score_below_winner(self, ko_loser_score: int) -> None:
        with pytest.raises(ConfigurationError):
            ScoringConfig(ko_loser_score=ko_loser_score)

    def test_unknown_criterion(self) -> None:
        with pytest.raises(ValidationError):
            ScoringConfig().get_criterion("style")

    def test_criterion_points_range(self) -> None:
        with pytest.raises(ConfigurationError):
            Criterion("damage", "Damage", 0)


class TestRecords:
    def test_state_follows_scorecards(self) -> None:
        record = MatchScoringRecord("m-1", "t", "1001", "1002")
        assert record.state == MatchState.OPEN

        record.scorecards["judge_1"] = PointSplit(shares_a={"damage": 1})
        assert record.state == MatchState.COLLECTING

    def test_same_competitor_twice_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MatchScoringRecord("m-1", "t", "1001", "1001")

    def test_finalized_needs_result(self) -> None:
        with pytest.raises(ValidationError):
            MatchScoringRecord("m-1", "t", "1001", "1002", finalized=True)

        record = MatchScoringRecord("m-1", "t", "1001", "1002", finalized=True, result=MatchResult("1001", "points", 19, 14))
        assert record.state == MatchState.FINALIZED

    def test_ko_result_needs_votes(self) -> None:
        with pytest.raises(ValidationError):
            MatchResult("1001", "ko", 33, 0)

    def test_point_split_shares_are_integers(self) -> None:
        with pytest.raises(ValidationError):
            PointSplit(shares_a={"damage": 2.5})
        with pytest.raises(ValidationError):
            PointSplit(shares_a={})


class TestSettings:
    def test_from_empty_env(self) -> None:
        settings = Settings.from_env({})

        assert settings.challonge_api_key is None
        assert settings.challonge_base_url == CHALLONGE_BASE_URL
        assert settings.data_dir is None
        assert settings.port == 3001
        assert settings.scoring == ScoringConfig()

    def test_from_env(self) -> None:
        settings = Settings.from_env(
            {
                "CHALLONGE_API_KEY": "abc",
                "CHALLONGE_BASE_URL": "http://localhost:9000/v1",
                "JUDGE_PORTAL_DATA_DIR": "/var/lib/judge-portal",
                "JUDGE_PORTAL_CRITERIA": "damage:6,control:4",
                "JUDGE_PORTAL_KO_LOSER_SCORE": "2",
                "PORT": "8080",
            }
        )

        assert settings.challonge_api_key == "abc"
        assert settings.challonge_base_url == "http://localhost:9000/v1"
        assert settings.data_dir == Path("/var/lib/judge-portal")
        assert settings.scoring.point_budget == 10
        assert settings.scoring.ko_loser_score == 2
        assert settings.port == 8080

    def test_empty_api_key_is_unset(self) -> None:
        assert Settings.from_env({"CHALLONGE_API_KEY": ""}).challonge_api_key is None

    @pytest.mark.parametrize("env", [{"PORT": "http"}, {"PORT": "0"}, {"JUDGE_PORTAL_KO_LOSER_SCORE": "x"}])
    def test_invalid_env_rejected(self, env: dict[str, str]) -> None:
        with pytest.raises(ConfigurationError):
            Settings.from_env(env)
