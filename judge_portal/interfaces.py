"""
Abstract base classes defining the interfaces for the judge portal.

All interfaces are synchronous; the controller serializes work per match and
the HTTP layer runs each request in a worker thread.
"""

from abc import ABC, abstractmethod
from typing import Any

from typing_extensions import TypedDict

from .models import ExternalReceipt, MatchScoringRecord


class StoredScorecard(TypedDict):
    """Persisted shape of one judge's scorecard."""
    scores: dict[str, int] | None  # competitor A's share per criterion
    is_ko: bool
    ko_winner_id: str | None
    submitted_at: str


class StoredResult(TypedDict):
    """Persisted shape of a computed match result."""
    winner_id: str
    win_method: str
    score_a: int
    score_b: int
    ko_votes: int | None
    judges_counted: int


class StoredRecord(TypedDict):
    """Persisted shape of a match scoring record, whatever the backing store."""
    match_id: str
    tournament_id: str
    competitor_a_id: str
    competitor_b_id: str
    judges: dict[str, StoredScorecard]
    finalized: bool
    result: StoredResult | None
    report_receipt: dict[str, Any] | None


class ScorecardStore(ABC):
    """Interface for persisting match scoring records, one per match id."""

    @abstractmethod
    def get(self, match_id: str) -> MatchScoringRecord | None:
        """Return the record for a match, or None when nobody has scored it yet."""
        pass

    @abstractmethod
    def put(self, record: MatchScoringRecord) -> None:
        """
        Upsert a full record, replacing whatever was stored for its match id.

        Must be safe to call concurrently for different match ids. Callers
        serialize read-modify-write cycles on the same match id.
        """
        pass

    @abstractmethod
    def delete_judge_scorecard(self, match_id: str, judge_id: str) -> MatchScoringRecord:
        """
        Remove one judge's scorecard from an unfinalized record.

        Raises:
            AlreadyFinalizedError: the record is finalized
            ScorecardNotFoundError: no such record or judge entry

        Returns:
            The updated record
        """
        pass

    @abstractmethod
    def list_match_ids(self) -> list[str]:
        """Return the ids of every stored match."""
        pass


class BracketReporter(ABC):
    """Interface for pushing results to the external bracket host."""

    @abstractmethod
    def report_result(
        self,
        tournament_id: str,
        match_id: str,
        winner_id: str,
        score_a: int,
        score_b: int,
    ) -> ExternalReceipt:
        """
        Report a final result so the bracket advances.

        May block on network I/O. Raises UpstreamReportError on any failure.
        """
        pass

    @abstractmethod
    def reopen_match(self, tournament_id: str, match_id: str) -> ExternalReceipt:
        """Reopen a completed match on the host so it can be re-scored."""
        pass
