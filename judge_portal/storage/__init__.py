"""
Storage implementations.

Provides implementations of the ScorecardStore interface for persisting match
scoring records.

Available implementations:
- InMemoryScorecardStore: Keeps records in a process-local map
- JSONFileScorecardStore: Persists records to a JSON file with a JSONL audit trail
"""

from .json_storage import JSONFileScorecardStore
from .memory_storage import InMemoryScorecardStore

__all__ = ["InMemoryScorecardStore", "JSONFileScorecardStore"]
