"""
Conversion between match records and their persisted layout.

Every store keeps the same shape (see ``interfaces.StoredRecord``) whatever
the engine; loading validates it with pydantic before building dataclasses.
"""

from typing import Any

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from .exceptions import ValidationError
from .interfaces import StoredRecord, StoredResult, StoredScorecard
from .models import (
    KnockoutDeclaration,
    MatchResult,
    MatchScoringRecord,
    PointSplit,
    Scorecard,
)

_record_adapter = TypeAdapter(StoredRecord)


def scorecard_to_dict(scorecard: Scorecard) -> StoredScorecard:
    if isinstance(scorecard, KnockoutDeclaration):
        return StoredScorecard(
            scores=None,
            is_ko=True,
            ko_winner_id=scorecard.winner_id,
            submitted_at=scorecard.submitted_at,
        )
    return StoredScorecard(
        scores=dict(scorecard.shares_a),
        is_ko=False,
        ko_winner_id=None,
        submitted_at=scorecard.submitted_at,
    )


def scorecard_from_dict(data: StoredScorecard) -> Scorecard:
    if data["is_ko"]:
        if not data["ko_winner_id"]:
            raise ValidationError("stored knockout scorecard has no winner")
        return KnockoutDeclaration(winner_id=data["ko_winner_id"], submitted_at=data["submitted_at"])
    if data["scores"] is None:
        raise ValidationError("stored point scorecard has no scores")
    return PointSplit(shares_a=dict(data["scores"]), submitted_at=data["submitted_at"])


def result_to_dict(result: MatchResult) -> StoredResult:
    return StoredResult(
        winner_id=result.winner_id,
        win_method=result.win_method,
        score_a=result.score_a,
        score_b=result.score_b,
        ko_votes=result.ko_votes,
        judges_counted=result.judges_counted,
    )


def result_from_dict(data: StoredResult) -> MatchResult:
    win_method = data["win_method"]
    if win_method not in ("ko", "points"):
        raise ValidationError(f"stored result has unknown win method: {win_method}")
    return MatchResult(
        winner_id=data["winner_id"],
        win_method=win_method,
        score_a=data["score_a"],
        score_b=data["score_b"],
        ko_votes=data["ko_votes"],
        judges_counted=data["judges_counted"],
    )


def record_to_dict(record: MatchScoringRecord) -> StoredRecord:
    return StoredRecord(
        match_id=record.match_id,
        tournament_id=record.tournament_id,
        competitor_a_id=record.competitor_a_id,
        competitor_b_id=record.competitor_b_id,
        judges={judge_id: scorecard_to_dict(card) for judge_id, card in record.scorecards.items()},
        finalized=record.finalized,
        result=result_to_dict(record.result) if record.result is not None else None,
        report_receipt=dict(record.report_receipt) if record.report_receipt is not None else None,
    )


def record_from_dict(raw: Any) -> MatchScoringRecord:
    """
    Build a record from its persisted layout.

    Raises:
        ValidationError: the data does not have the persisted shape
    """
    try:
        data = _record_adapter.validate_python(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid stored record: {e}") from e

    return MatchScoringRecord(
        match_id=data["match_id"],
        tournament_id=data["tournament_id"],
        competitor_a_id=data["competitor_a_id"],
        competitor_b_id=data["competitor_b_id"],
        scorecards={judge_id: scorecard_from_dict(card) for judge_id, card in data["judges"].items()},
        finalized=data["finalized"],
        result=result_from_dict(data["result"]) if data["result"] is not None else None,
        report_receipt=data["report_receipt"],
    )
