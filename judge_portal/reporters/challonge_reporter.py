"""
Challonge reporter implementation.

Pushes final results and reopens to the Challonge v1 REST API so the bracket
advances, and reads tournaments, participants and matches for the judge
client.
"""

from typing import Any

import httpx
from pydantic import ConfigDict, TypeAdapter, ValidationError as PydanticValidationError
from typing_extensions import NotRequired, TypedDict, override

from ..exceptions import ConfigurationError, UpstreamReportError
from ..interfaces import BracketReporter
from ..logging_config import get_logger
from ..models import ExternalReceipt

# Module-level logger
logger = get_logger("challonge_reporter")

CHALLONGE_BASE_URL = "https://api.challonge.com/v1"

# Score Challonge gets when a result is set by hand without one
DEFAULT_SCORES_CSV = "1-0"


class ChallongeMatch(TypedDict):
    """Fields of a Challonge match we rely on; the rest are passed through."""

    __pydantic_config__ = ConfigDict(extra="allow")  # type: ignore[misc]

    id: int
    state: NotRequired[str]
    winner_id: NotRequired[int | None]
    loser_id: NotRequired[int | None]
    scores_csv: NotRequired[str | None]
    updated_at: NotRequired[str | None]


class ChallongeMatchEnvelope(TypedDict):
    match: ChallongeMatch


class ChallongeTournamentEnvelope(TypedDict):
    tournament: dict[str, Any]


class ChallongeParticipantEnvelope(TypedDict):
    participant: dict[str, Any]


_match_adapter = TypeAdapter(ChallongeMatchEnvelope)
_match_list_adapter = TypeAdapter(list[ChallongeMatchEnvelope])
_tournament_adapter = TypeAdapter(ChallongeTournamentEnvelope)
_tournament_list_adapter = TypeAdapter(list[ChallongeTournamentEnvelope])
_participant_list_adapter = TypeAdapter(list[ChallongeParticipantEnvelope])


class ChallongeReporter(BracketReporter):
    """
    Challonge bracket reporter.

    The API key travels as a query parameter, as Challonge v1 expects.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = CHALLONGE_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize Challonge reporter.

        Args:
            api_key: Challonge API key
            base_url: API root (overridable for tests and proxies)
            timeout: Timeout in seconds for each request
            transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        if not api_key:
            raise ConfigurationError("Challonge API key is required")
        self.base_url: str = base_url.rstrip("/")
        self._client: httpx.Client = httpx.Client(
            base_url=self.base_url,
            params={"api_key": api_key},
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Challonge {method} {path} failed: {e}")
            raise UpstreamReportError(f"Challonge request failed: {e}") from e

        if response.is_error:
            logger.error(f"Challonge {method} {path} returned {response.status_code}: {response.text}")
            raise UpstreamReportError(
                f"Challonge API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamReportError(f"Challonge returned non-JSON body for {method} {path}") from e

    def _validate(self, adapter: TypeAdapter[Any], body: Any, what: str) -> Any:
        try:
            return adapter.validate_python(body)
        except PydanticValidationError as e:
            raise UpstreamReportError(f"Unexpected Challonge {what} response: {e}") from e

    def _match_receipt(self, body: Any) -> ExternalReceipt:
        envelope = self._validate(_match_adapter, body, "match")
        return dict(envelope["match"])

    @override
    def report_result(
        self,
        tournament_id: str,
        match_id: str,
        winner_id: str,
        score_a: int,
        score_b: int,
    ) -> ExternalReceipt:
        """Set the match winner and ``scores_csv`` on Challonge."""
        logger.info(f"Reporting match {match_id} to Challonge: winner={winner_id}, scores={score_a}-{score_b}")
        return self.update_match(tournament_id, match_id, winner_id, f"{score_a}-{score_b}")

    def update_match(
        self,
        tournament_id: str,
        match_id: str,
        winner_id: int | str,
        scores_csv: str | None = None,
    ) -> ExternalReceipt:
        """Set a match winner directly; the score defaults to ``1-0``."""
        payload = {"match": {"winner_id": winner_id, "scores_csv": scores_csv or DEFAULT_SCORES_CSV}}
        body = self._request("PUT", f"/tournaments/{tournament_id}/matches/{match_id}.json", json=payload)
        return self._match_receipt(body)

    @override
    def reopen_match(self, tournament_id: str, match_id: str) -> ExternalReceipt:
        logger.info(f"Reopening match {match_id} on Challonge")
        body = self._request("POST", f"/tournaments/{tournament_id}/matches/{match_id}/reopen.json")
        return self._match_receipt(body)

    def list_tournaments(self) -> list[dict[str, Any]]:
        body = self._request("GET", "/tournaments.json")
        return [dict(t) for t in self._validate(_tournament_list_adapter, body, "tournament list")]

    def get_tournament(self, tournament_id: str) -> dict[str, Any]:
        """Fetch a tournament with its participants and matches."""
        body = self._request(
            "GET",
            f"/tournaments/{tournament_id}.json",
            params={"include_participants": 1, "include_matches": 1},
        )
        return dict(self._validate(_tournament_adapter, body, "tournament"))

    def get_participants(self, tournament_id: str) -> list[dict[str, Any]]:
        body = self._request("GET", f"/tournaments/{tournament_id}/participants.json")
        return [dict(p) for p in self._validate(_participant_list_adapter, body, "participant list")]

    def get_matches(self, tournament_id: str) -> list[dict[str, Any]]:
        body = self._request("GET", f"/tournaments/{tournament_id}/matches.json")
        return [{"match": dict(m["match"])} for m in self._validate(_match_list_adapter, body, "match list")]

    def get_match(self, tournament_id: str, match_id: str) -> dict[str, Any]:
        body = self._request("GET", f"/tournaments/{tournament_id}/matches/{match_id}.json")
        return {"match": self._match_receipt(body)}

    def close(self) -> None:
        self._client.close()
