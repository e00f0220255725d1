"""
Recording reporter implementation for offline use and testing.

Keeps every call it receives instead of contacting a bracket host.
"""

import threading
import time
from dataclasses import dataclass

from typing_extensions import override

from ..exceptions import UpstreamReportError
from ..interfaces import BracketReporter
from ..logging_config import get_logger
from ..models import ExternalReceipt

logger = get_logger("recording_reporter")


@dataclass
class ReportedCall:
    """One call made to the reporter."""

    action: str  # "report" or "reopen"
    tournament_id: str
    match_id: str
    winner_id: str | None = None
    scores_csv: str | None = None


class RecordingReporter(BracketReporter):
    """
    Reporter that records calls locally.

    Used when no bracket host is configured and to observe the controller in
    tests (``fail`` simulates a rejected report, ``delay`` a slow host).
    """

    def __init__(self, fail: bool = False, delay: float = 0.0):
        """
        Initialize recording reporter.

        Args:
            fail: If True, every call raises UpstreamReportError
            delay: Seconds to block before answering
        """
        self.fail: bool = fail
        self.delay: float = delay
        self.calls = list[ReportedCall]()
        self._lock: threading.Lock = threading.Lock()

    def _record(self, call: ReportedCall) -> ExternalReceipt:
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            logger.warning(f"Simulated upstream failure for {call.action} on match {call.match_id}")
            raise UpstreamReportError(f"Simulated failure reporting match {call.match_id}", status_code=503)
        with self._lock:
            self.calls.append(call)
        return {
            "id": call.match_id,
            "state": "complete" if call.action == "report" else "open",
            "winner_id": call.winner_id,
            "scores_csv": call.scores_csv,
        }

    @override
    def report_result(
        self,
        tournament_id: str,
        match_id: str,
        winner_id: str,
        score_a: int,
        score_b: int,
    ) -> ExternalReceipt:
        logger.info(f"Recorded result for match {match_id}: winner={winner_id}, scores={score_a}-{score_b}")
        return self._record(
            ReportedCall("report", tournament_id, match_id, winner_id, f"{score_a}-{score_b}")
        )

    @override
    def reopen_match(self, tournament_id: str, match_id: str) -> ExternalReceipt:
        logger.info(f"Recorded reopen for match {match_id}")
        return self._record(ReportedCall("reopen", tournament_id, match_id))

    @property
    def report_calls(self) -> list[ReportedCall]:
        with self._lock:
            return [c for c in self.calls if c.action == "report"]
