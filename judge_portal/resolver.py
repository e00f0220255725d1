"""
Match resolution: KO majority first, then split points.

Pure functions with no I/O. ``resolve_match`` returns None while the match is
still waiting on judges.
"""

from collections import Counter
from collections.abc import Iterable, Mapping

from .exceptions import TiedMatchError, ValidationError
from .models import (
    JUDGES_PER_MATCH,
    KO_MAJORITY,
    KnockoutDeclaration,
    MatchResult,
    PointSplit,
    Scorecard,
    ScoringConfig,
)


def validate_scorecard(
    scorecard: Scorecard,
    config: ScoringConfig,
    competitor_a_id: str,
    competitor_b_id: str,
) -> None:
    """
    Check a scorecard against the event's criteria and the match's competitors.

    Raises:
        ValidationError: missing or unknown criterion, share out of range, or a
            knockout naming someone not in the match
    """
    if isinstance(scorecard, KnockoutDeclaration):
        if scorecard.winner_id not in (competitor_a_id, competitor_b_id):
            raise ValidationError(
                f"KO winner {scorecard.winner_id} is not a competitor in this match"
            )
        return

    expected = set(config.criterion_ids)
    given = set(scorecard.shares_a)
    if missing := expected - given:
        raise ValidationError(f"Scorecard is missing criteria: {sorted(missing)}")
    if unknown := given - expected:
        raise ValidationError(f"Scorecard has unknown criteria: {sorted(unknown)}")

    for criterion in config.criteria:
        share = scorecard.shares_a[criterion.criterion_id]
        if not (0 <= share <= criterion.points):
            raise ValidationError(
                f"{criterion.name} share must be between 0 and {criterion.points}, got {share}"
            )


def split_shares(scorecard: PointSplit, config: ScoringConfig) -> tuple[dict[str, int], dict[str, int]]:
    """Per-criterion shares for A and B; B's side is derived from the criterion budget."""
    shares_a = {c.criterion_id: scorecard.shares_a[c.criterion_id] for c in config.criteria}
    shares_b = {c.criterion_id: c.points - shares_a[c.criterion_id] for c in config.criteria}
    return shares_a, shares_b


def judge_totals(scorecard: PointSplit, config: ScoringConfig) -> tuple[int, int]:
    """A's and B's totals on one scorecard; they always add up to the point budget."""
    total_a = sum(scorecard.shares_a[c] for c in config.criterion_ids)
    return total_a, config.point_budget - total_a


def tally_ko_votes(scorecards: Iterable[Scorecard]) -> Counter[str]:
    """Count knockout declarations per named winner."""
    return Counter(card.winner_id for card in scorecards if isinstance(card, KnockoutDeclaration))


def ko_scores(winner_id: str, competitor_a_id: str, config: ScoringConfig) -> tuple[int, int]:
    """Winner takes the full three-judge budget, loser gets ``ko_loser_score``."""
    full = config.point_budget * JUDGES_PER_MATCH
    if winner_id == competitor_a_id:
        return full, config.ko_loser_score
    return config.ko_loser_score, full


def resolve_match(
    scorecards: Mapping[str, Scorecard],
    config: ScoringConfig,
    competitor_a_id: str,
    competitor_b_id: str,
    match_id: str = "",
) -> MatchResult | None:
    """
    Decide a match from its judges' scorecards.

    Args:
        scorecards: judge id -> scorecard, 0 to 3 entries
        config: scoring rules for the event
        competitor_a_id: competitor A's host reference
        competitor_b_id: competitor B's host reference
        match_id: only used in error messages

    Returns:
        None while fewer than three judges have scored, else the result

    Raises:
        TiedMatchError: no KO majority and the point totals are level
    """
    if len(scorecards) < JUDGES_PER_MATCH:
        return None

    cards = list(scorecards.values())

    # KO majority overrides the points regardless of the remaining card
    for winner_id, votes in tally_ko_votes(cards).most_common():
        if votes >= KO_MAJORITY:
            score_a, score_b = ko_scores(winner_id, competitor_a_id, config)
            return MatchResult(
                winner_id=winner_id,
                win_method="ko",
                score_a=score_a,
                score_b=score_b,
                ko_votes=votes,
                judges_counted=len(cards),
            )

    # Knockout cards without a majority carry no points
    point_cards = [card for card in cards if isinstance(card, PointSplit)]
    judges_counted = len(point_cards)
    total_a = sum(judge_totals(card, config)[0] for card in point_cards)
    total_b = config.point_budget * judges_counted - total_a

    if total_a == total_b:
        raise TiedMatchError(match_id, total_a)

    return MatchResult(
        winner_id=competitor_a_id if total_a > total_b else competitor_b_id,
        win_method="points",
        score_a=total_a,
        score_b=total_b,
        judges_counted=judges_counted,
    )
