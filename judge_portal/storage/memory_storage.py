"""
In-memory storage implementation.

Keeps every record in its persisted layout so readers never share mutable
state with the store.
"""

import threading

from typing_extensions import override

from ..exceptions import AlreadyFinalizedError, ScorecardNotFoundError
from ..interfaces import ScorecardStore, StoredRecord
from ..logging_config import get_logger
from ..models import MatchScoringRecord
from ..serialization import record_from_dict, record_to_dict

logger = get_logger("memory_storage")


class InMemoryScorecardStore(ScorecardStore):
    """Process-local store, used for tests and single-instance deployments."""

    def __init__(self) -> None:
        self._records = dict[str, StoredRecord]()
        self._lock: threading.Lock = threading.Lock()

    @override
    def get(self, match_id: str) -> MatchScoringRecord | None:
        with self._lock:
            data = self._records.get(match_id)
        if data is None:
            return None
        return record_from_dict(data)

    @override
    def put(self, record: MatchScoringRecord) -> None:
        data = record_to_dict(record)
        with self._lock:
            self._records[record.match_id] = data
        logger.debug(f"Stored match {record.match_id}: {record.judge_count} scorecard(s), finalized={record.finalized}")

    @override
    def delete_judge_scorecard(self, match_id: str, judge_id: str) -> MatchScoringRecord:
        with self._lock:
            data = self._records.get(match_id)
            if data is None:
                raise ScorecardNotFoundError(f"No scorecards for match {match_id}")
            record = record_from_dict(data)
            if record.finalized:
                raise AlreadyFinalizedError(match_id)
            if judge_id not in record.scorecards:
                raise ScorecardNotFoundError(f"No scorecard from {judge_id} for match {match_id}")
            del record.scorecards[judge_id]
            self._records[match_id] = record_to_dict(record)

        logger.debug(f"Deleted {judge_id} scorecard for match {match_id}")
        return record

    @override
    def list_match_ids(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        """Drop all records (for testing)."""
        with self._lock:
            self._records.clear()
