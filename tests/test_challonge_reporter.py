"""
Tests for ChallongeReporter.

Requests go through httpx.MockTransport; nothing leaves the process.
"""

import json

import httpx
import pytest

from judge_portal.exceptions import ConfigurationError, UpstreamReportError
from judge_portal.reporters.challonge_reporter import ChallongeReporter

BASE_URL = "https://challonge.test/v1"


class RecordingHandler:
    """MockTransport handler that keeps every request and answers with a canned response."""

    def __init__(self, status_code: int = 200, body: object = None, text: str | None = None):
        self.status_code = status_code
        self.body = body
        self.text = text
        self.requests = list[httpx.Request]()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.body)


def make_reporter(handler) -> ChallongeReporter:
    return ChallongeReporter("secret-key", base_url=BASE_URL, transport=httpx.MockTransport(handler))


class TestChallongeReporter:
    def test_requires_api_key(self) -> None:
        with pytest.raises(ConfigurationError):
            ChallongeReporter("")

    def test_report_result_puts_winner_and_scores(self) -> None:
        """The winner and scores_csv go in the body, the key in the query."""
        # Arrange
        handler = RecordingHandler(body={"match": {"id": 55, "state": "complete", "winner_id": 1001, "scores_csv": "19-14"}})
        reporter = make_reporter(handler)

        # Act
        receipt = reporter.report_result("scar-2024", "55", "1001", 19, 14)

        # Assert
        assert len(handler.requests) == 1
        request = handler.requests[0]
        assert request.method == "PUT"
        assert request.url.path == "/v1/tournaments/scar-2024/matches/55.json"
        assert request.url.params["api_key"] == "secret-key"
        assert json.loads(request.content) == {"match": {"winner_id": "1001", "scores_csv": "19-14"}}
        assert receipt["id"] == 55
        assert receipt["state"] == "complete"

    def test_ko_scores_sent_a_first(self) -> None:
        handler = RecordingHandler(body={"match": {"id": 56}})
        reporter = make_reporter(handler)

        _ = reporter.report_result("scar-2024", "56", "1002", 0, 33)

        assert json.loads(handler.requests[0].content)["match"]["scores_csv"] == "0-33"

    def test_reopen_posts_to_reopen_endpoint(self) -> None:
        handler = RecordingHandler(body={"match": {"id": 55, "state": "open"}})
        reporter = make_reporter(handler)

        receipt = reporter.reopen_match("scar-2024", "55")

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/tournaments/scar-2024/matches/55/reopen.json"
        assert request.url.params["api_key"] == "secret-key"
        assert receipt["state"] == "open"

    def test_get_tournament_includes_participants_and_matches(self) -> None:
        handler = RecordingHandler(body={"tournament": {"id": 9, "name": "SCAR", "participants": [], "matches": []}})
        reporter = make_reporter(handler)

        tournament = reporter.get_tournament("scar-2024")

        params = handler.requests[0].url.params
        assert params["include_participants"] == "1"
        assert params["include_matches"] == "1"
        assert params["api_key"] == "secret-key"
        assert tournament["tournament"]["name"] == "SCAR"

    @pytest.mark.parametrize("status_code", [401, 404, 422, 500])
    def test_error_status_raises_upstream_error(self, status_code: int) -> None:
        handler = RecordingHandler(status_code=status_code, body={"errors": ["nope"]})
        reporter = make_reporter(handler)

        with pytest.raises(UpstreamReportError) as excinfo:
            reporter.report_result("scar-2024", "55", "1001", 19, 14)

        assert excinfo.value.status_code == status_code

    def test_transport_failure_raises_upstream_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        reporter = make_reporter(handler)

        with pytest.raises(UpstreamReportError, match="connection refused"):
            reporter.report_result("scar-2024", "55", "1001", 19, 14)

    def test_non_json_body_raises_upstream_error(self) -> None:
        reporter = make_reporter(RecordingHandler(text="<html>maintenance</html>"))

        with pytest.raises(UpstreamReportError, match="non-JSON"):
            reporter.report_result("scar-2024", "55", "1001", 19, 14)

    def test_unexpected_shape_raises_upstream_error(self) -> None:
        reporter = make_reporter(RecordingHandler(body={"result": "ok"}))

        with pytest.raises(UpstreamReportError, match="Unexpected"):
            reporter.report_result("scar-2024", "55", "1001", 19, 14)


class TestChallongeReads:
    """Read passthroughs used by the judge client to pick a match."""

    def test_list_tournaments(self) -> None:
        handler = RecordingHandler(body=[{"tournament": {"id": 1, "name": "SCAR Spring"}}, {"tournament": {"id": 2}}])
        reporter = make_reporter(handler)

        tournaments = reporter.list_tournaments()

        assert handler.requests[0].url.path == "/v1/tournaments.json"
        assert [t["tournament"]["id"] for t in tournaments] == [1, 2]

    def test_get_participants(self) -> None:
        handler = RecordingHandler(body=[{"participant": {"id": 1001, "name": "Sawblaze"}}])
        reporter = make_reporter(handler)

        participants = reporter.get_participants("scar-2024")

        assert handler.requests[0].url.path == "/v1/tournaments/scar-2024/participants.json"
        assert participants == [{"participant": {"id": 1001, "name": "Sawblaze"}}]

    def test_get_matches_keeps_every_field(self) -> None:
        """Fields beyond the ones we validate still reach the client."""
        # Arrange
        handler = RecordingHandler(
            body=[{"match": {"id": 55, "state": "open", "player1_id": 1001, "player2_id": 1002, "round": 1}}]
        )
        reporter = make_reporter(handler)

        # Act
        matches = reporter.get_matches("scar-2024")

        # Assert
        assert handler.requests[0].url.path == "/v1/tournaments/scar-2024/matches.json"
        assert matches[0]["match"]["player1_id"] == 1001
        assert matches[0]["match"]["round"] == 1

    def test_get_match(self) -> None:
        handler = RecordingHandler(body={"match": {"id": 55, "player1_id": 1001}})
        reporter = make_reporter(handler)

        match = reporter.get_match("scar-2024", "55")

        assert handler.requests[0].method == "GET"
        assert handler.requests[0].url.path == "/v1/tournaments/scar-2024/matches/55.json"
        assert match == {"match": {"id": 55, "player1_id": 1001}}

    def test_update_match_defaults_score(self) -> None:
        handler = RecordingHandler(body={"match": {"id": 55, "state": "complete"}})
        reporter = make_reporter(handler)

        _ = reporter.update_match("scar-2024", "55", 1001)

        assert handler.requests[0].method == "PUT"
        assert json.loads(handler.requests[0].content) == {"match": {"winner_id": 1001, "scores_csv": "1-0"}}

    def test_list_with_wrong_shape_raises(self) -> None:
        reporter = make_reporter(RecordingHandler(body={"tournament": {"id": 1}}))

        with pytest.raises(UpstreamReportError, match="tournament list"):
            reporter.list_tournaments()
