"""
Match lifecycle controller.

Coordinates store, resolver and bracket reporter. Every read-modify-write on a
match runs under that match's lock, so exactly one submission sees the third
scorecard and reports the result upstream.
"""

import threading
import weakref
from dataclasses import replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from .exceptions import (
    AlreadyFinalizedError,
    ScorecardNotFoundError,
    UpstreamReportError,
    StoreError,
    ValidationError,
)
from .interfaces import BracketReporter, ScorecardStore
from .logging_config import get_logger
from .models import (
    JUDGES_PER_MATCH,
    JudgeBreakdown,
    KnockoutDeclaration,
    MatchScoringRecord,
    MatchState,
    MatchStatus,
    MatchStatusDetail,
    Scorecard,
    ScoringConfig,
    SubmissionOutcome,
)
from .resolver import judge_totals, resolve_match, split_shares, validate_scorecard


class MatchController:
    """Owns the scoring lifecycle of every match: open, collecting, finalized."""

    def __init__(
        self,
        store: ScorecardStore,
        reporter: BracketReporter,
        config: ScoringConfig | None = None,
    ):
        """Initialize controller with its collaborators."""
        self.store: ScorecardStore = store
        self.reporter: BracketReporter = reporter
        self.config: ScoringConfig = config or ScoringConfig()

        # Per-match locks, dropped once no caller holds one; the registry lock
        # only guards the mapping itself
        self._match_locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._registry_lock: threading.Lock = threading.Lock()

        self.logger: Logger = get_logger("controller")

    def _lock_for(self, match_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._match_locks.get(match_id)
            if lock is None:
                lock = threading.Lock()
                self._match_locks[match_id] = lock
            return lock

    def _check_judge(self, judge_id: str) -> None:
        if not judge_id:
            raise ValidationError("judgeId is required")
        if judge_id not in self.config.judge_roles:
            raise ValidationError(
                f"Unknown judge {judge_id!r}, expected one of {list(self.config.judge_roles)}"
            )

    def submit_scorecard(
        self,
        match_id: str,
        judge_id: str,
        tournament_id: str,
        competitor_a_id: str,
        competitor_b_id: str,
        scorecard: Scorecard,
    ) -> SubmissionOutcome:
        """
        Record one judge's scorecard and finalize the match if it was the third.

        A judge resubmitting before finalization replaces their earlier card.

        Raises:
            ValidationError: bad judge, competitors or scorecard (nothing stored)
            AlreadyFinalizedError: the match already has a final result
            TiedMatchError: three cards are in but the points are level
            UpstreamReportError: the bracket host refused the result; the three
                cards stay stored and the match stays unfinalized
            StoreError: persistence failed
        """
        if not match_id:
            raise ValidationError("matchId is required")
        if not tournament_id:
            raise ValidationError("tournamentId is required")
        self._check_judge(judge_id)
        if not competitor_a_id or not competitor_b_id or competitor_a_id == competitor_b_id:
            raise ValidationError("two different competitor ids are required")
        validate_scorecard(scorecard, self.config, competitor_a_id, competitor_b_id)

        with self._lock_for(match_id):
            record = self.store.get(match_id)
            if record is None:
                record = MatchScoringRecord(
                    match_id=match_id,
                    tournament_id=tournament_id,
                    competitor_a_id=competitor_a_id,
                    competitor_b_id=competitor_b_id,
                )
                self.logger.info(f"Opened scoring for match {match_id} ({competitor_a_id} vs {competitor_b_id})")
            elif record.finalized:
                self.logger.warning(f"Rejected {judge_id} scorecard: match {match_id} already finalized")
                raise AlreadyFinalizedError(match_id)
            elif record.competitor_ids != (competitor_a_id, competitor_b_id) or record.tournament_id != tournament_id:
                raise ValidationError(
                    f"Match {match_id} is {record.competitor_a_id} vs {record.competitor_b_id} "
                    f"in tournament {record.tournament_id}"
                )

            replaced = judge_id in record.scorecards
            record.scorecards[judge_id] = scorecard
            self.store.put(record)
            self.logger.info(
                f"{'Replaced' if replaced else 'Recorded'} {judge_id} scorecard for match {match_id} "
                f"({record.judge_count}/{JUDGES_PER_MATCH})"
            )

            return self._resolve_and_finalize(record)

    def _resolve_and_finalize(self, record: MatchScoringRecord) -> SubmissionOutcome:
        """Resolve a record and, if decided, report and persist it (match lock held)."""
        result = resolve_match(
            record.scorecards,
            self.config,
            record.competitor_a_id,
            record.competitor_b_id,
            match_id=record.match_id,
        )
        if result is None:
            return SubmissionOutcome(finalized=False, judge_count=record.judge_count)

        try:
            receipt = self.reporter.report_result(
                record.tournament_id,
                record.match_id,
                result.winner_id,
                result.score_a,
                result.score_b,
            )
        except UpstreamReportError as e:
            self.logger.error(f"Match {record.match_id} decided but not reported, left unfinalized: {e}")
            raise

        finalized = replace(record, finalized=True, result=result, report_receipt=receipt)
        try:
            self.store.put(finalized)
        except StoreError:
            self.logger.error(
                f"Match {record.match_id} reported upstream but not persisted as finalized; retry_report will resend"
            )
            raise

        self.logger.info(
            f"Finalized match {record.match_id}: winner={result.winner_id} by {result.win_method} ({result.score_string})"
        )
        return SubmissionOutcome(finalized=True, judge_count=finalized.judge_count, result=result)

    def delete_scorecard(self, match_id: str, judge_id: str) -> MatchStatus:
        """
        Remove a judge's scorecard so they can resubmit.

        Raises:
            AlreadyFinalizedError: the match already has a final result
            ScorecardNotFoundError: the judge has no scorecard on this match
        """
        self._check_judge(judge_id)
        with self._lock_for(match_id):
            record = self.store.delete_judge_scorecard(match_id, judge_id)
        self.logger.info(f"Deleted {judge_id} scorecard for match {match_id} ({record.judge_count} left)")
        return self._status_of(match_id, record)

    def get_status(self, match_id: str) -> MatchStatus:
        """Current judge count, finalized flag and result. Never resolves."""
        return self._status_of(match_id, self.store.get(match_id))

    def _status_of(self, match_id: str, record: MatchScoringRecord | None) -> MatchStatus:
        if record is None:
            return MatchStatus(match_id=match_id, judge_count=0, finalized=False, state=MatchState.OPEN)
        return MatchStatus(
            match_id=match_id,
            judge_count=record.judge_count,
            finalized=record.finalized,
            state=record.state,
            result=record.result,
        )

    def get_status_detail(self, match_id: str) -> MatchStatusDetail:
        """Status plus every judge's card for audit and display."""
        record = self.store.get(match_id)
        status = self._status_of(match_id, record)
        if record is None:
            return MatchStatusDetail(status=status)

        judges = list[JudgeBreakdown]()
        for judge_id in sorted(record.scorecards):
            card = record.scorecards[judge_id]
            if isinstance(card, KnockoutDeclaration):
                judges.append(
                    JudgeBreakdown(
                        judge_id=judge_id,
                        method="ko",
                        submitted_at=card.submitted_at,
                        ko_winner_id=card.winner_id,
                    )
                )
                continue
            shares_a, shares_b = split_shares(card, self.config)
            total_a, total_b = judge_totals(card, self.config)
            judges.append(
                JudgeBreakdown(
                    judge_id=judge_id,
                    method="points",
                    submitted_at=card.submitted_at,
                    shares_a=shares_a,
                    shares_b=shares_b,
                    total_a=total_a,
                    total_b=total_b,
                )
            )

        return MatchStatusDetail(
            status=status,
            tournament_id=record.tournament_id,
            competitor_a_id=record.competitor_a_id,
            competitor_b_id=record.competitor_b_id,
            judges=judges,
        )

    def retry_report(self, match_id: str) -> SubmissionOutcome:
        """
        Finalize a match whose three scorecards are in but whose report failed.

        Raises:
            ScorecardNotFoundError: nobody has scored this match
            AlreadyFinalizedError: the match already has a final result
            ValidationError: fewer than three scorecards are in
        """
        with self._lock_for(match_id):
            record = self.store.get(match_id)
            if record is None:
                raise ScorecardNotFoundError(f"No scorecards for match {match_id}")
            if record.finalized:
                raise AlreadyFinalizedError(match_id)
            if record.judge_count < JUDGES_PER_MATCH:
                raise ValidationError(
                    f"Match {match_id} is waiting for {JUDGES_PER_MATCH - record.judge_count} more judge(s)"
                )
            self.logger.info(f"Retrying report for match {match_id}")
            return self._resolve_and_finalize(record)

    def reopen_match(
        self,
        match_id: str,
        *,
        tournament_id: str | None = None,
        notify_host: bool = True,
        keep_scorecards: bool = False,
    ) -> MatchStatus:
        """
        Reopen a match for re-scoring after a correction on the host side.

        Args:
            match_id: match to reopen
            tournament_id: the match's tournament; lets a match nobody scored
                here (a result set by hand) be reopened on the host
            notify_host: reopen on the bracket host first; pass False when the
                host already reopened it
            keep_scorecards: keep the judges' cards so they can edit instead of
                starting over

        Raises:
            ScorecardNotFoundError: no record and no tournament to reopen it in
            ValidationError: tournament_id differs from the stored record's
            UpstreamReportError: the host refused the reopen (record untouched)
        """
        with self._lock_for(match_id):
            record = self.store.get(match_id)
            if record is None:
                if tournament_id is None or not notify_host:
                    raise ScorecardNotFoundError(f"No scorecards for match {match_id}")
                _ = self.reporter.reopen_match(tournament_id, match_id)
                self.logger.info(f"Reopened unscored match {match_id} on the bracket host")
                return self._status_of(match_id, None)

            if tournament_id is not None and tournament_id != record.tournament_id:
                raise ValidationError(f"Match {match_id} belongs to tournament {record.tournament_id}")

            if notify_host:
                _ = self.reporter.reopen_match(record.tournament_id, match_id)

            reopened = replace(
                record,
                scorecards=dict(record.scorecards) if keep_scorecards else {},
                finalized=False,
                result=None,
                report_receipt=None,
            )
            self.store.put(reopened)

        self.logger.info(
            f"Reopened match {match_id} (was finalized={record.finalized}, kept {reopened.judge_count} scorecard(s))"
        )
        return self._status_of(match_id, reopened)
