"""
JSON file storage implementation.

Persists the latest record of every match to one JSON file and appends every
change to a JSONL audit trail, so scorecards can be read back after a match
is finalized or reopened.
"""

import json
import os
import threading
import time
import typing
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from typing_extensions import override

from ..exceptions import AlreadyFinalizedError, ScorecardNotFoundError, StoreError, ValidationError
from ..interfaces import ScorecardStore, StoredRecord
from ..logging_config import get_logger
from ..models import MatchScoringRecord
from ..serialization import record_from_dict, record_to_dict

# Module-level logger
logger = get_logger("json_storage")


class JSONFileScorecardStore(ScorecardStore):
    """
    JSON-file-based storage implementation.

    Uses a JSON file keyed by match id for the current records (rewritten
    atomically on every change) and a JSONL file for the append-only audit
    trail.
    """

    records_path: Path
    audit_path: Path

    def __init__(self, records_path: Path, audit_path: Path | None = None):
        """
        Initialize JSON file storage.

        Args:
            records_path: Path to JSON file holding the current records
            audit_path: Path to JSONL audit trail (default: audit.jsonl next to records_path)
        """
        self.records_path = Path(records_path)

        if audit_path is None:
            self.audit_path = self.records_path.parent / "audit.jsonl"
        else:
            self.audit_path = Path(audit_path)

        # Ensure parent directories exist
        self.records_path.parent.mkdir(parents=True, exist_ok=True)
        self.audit_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock: threading.Lock = threading.Lock()
        self._records: dict[str, StoredRecord] = self._load_records()

        logger.info(
            f"JSON storage initialized: records={self.records_path} ({len(self._records)} matches), audit={self.audit_path}"
        )

    def _load_records(self) -> dict[str, StoredRecord]:
        """Load and validate the records file, empty if it does not exist yet."""
        if not self.records_path.exists():
            logger.debug("No records file exists")
            return {}

        try:
            with open(self.records_path, "r", encoding="utf-8") as f:
                data = typing.cast(dict[str, Any], json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Failed to load records from {self.records_path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreError(f"Records file {self.records_path} must hold a JSON object")

        records = dict[str, StoredRecord]()
        for match_id, raw in data.items():
            try:
                records[match_id] = record_to_dict(record_from_dict(raw))
            except ValidationError as e:
                raise StoreError(f"Corrupt record for match {match_id} in {self.records_path}: {e}") from e
        return records

    def _write_records(self, records: dict[str, StoredRecord]) -> None:
        """Atomically replace the records file."""
        tmp_path = self.records_path.with_suffix(self.records_path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.records_path)
        except OSError as e:
            raise StoreError(f"Failed to write records to {self.records_path}: {e}") from e

    def _append_audit(self, event: str, record: StoredRecord) -> None:
        entry = {"event": event, "timestamp": time.time(), "record": record}
        try:
            with open(self.audit_path, "a", encoding="utf-8") as f:
                json.dump(entry, f, ensure_ascii=False)
                f.write("\n")
        except OSError as e:
            # Records file is already authoritative; the trail is best effort
            logger.warning(f"Failed to append audit entry to {self.audit_path}: {e}")

    def _commit(self, event: str, data: StoredRecord) -> None:
        """Write a record through to disk, then update the cache (lock held)."""
        updated = dict(self._records)
        updated[data["match_id"]] = data
        self._write_records(updated)
        self._records = updated
        self._append_audit(event, data)

    @override
    def get(self, match_id: str) -> MatchScoringRecord | None:
        with self._lock:
            data = self._records.get(match_id)
        if data is None:
            return None
        return record_from_dict(data)

    @override
    def put(self, record: MatchScoringRecord) -> None:
        """Persist a full record to the JSON file."""
        logger.debug(f"Persisting match {record.match_id}: {record.judge_count} scorecard(s)")
        data = record_to_dict(record)
        with self._lock:
            self._commit("put", data)
        logger.debug(f"Successfully persisted match {record.match_id} to {self.records_path}")

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
            self._commit(f"delete:{judge_id}", record_to_dict(record))

        logger.info(f"Deleted {judge_id} scorecard for match {match_id}")
        return record

    @override
    def list_match_ids(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def load_audit_trail(self, match_id: str | None = None) -> Iterable[dict[str, Any]]:
        """Yield audit entries, oldest first, optionally for one match."""
        if not self.audit_path.exists():
            return

        with open(self.audit_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue

                try:
                    entry = typing.cast(dict[str, Any], json.loads(line))
                    assert isinstance(entry, dict), "audit entry must be an object"
                    assert "event" in entry, "Missing required field: event"
                    assert isinstance(entry.get("record"), dict), "record must be a dictionary"
                except (json.JSONDecodeError, AssertionError) as e:
                    # Skip corrupted or invalid lines
                    logger.warning(f"Skipping invalid JSON line in {self.audit_path}: {e}")
                    continue

                if match_id is None or entry["record"].get("match_id") == match_id:
                    yield entry

    def get_audit_count(self) -> int:
        """Get number of audit entries."""
        if not self.audit_path.exists():
            return 0

        count = 0
        with open(self.audit_path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    count += 1
        return count
