"""
Judge Portal - Three-Judge Match Scoring

Collects three independent judge scorecards per match, resolves the winner by
KO majority or split points, and reports the result to the bracket host.
"""

from .models import (
    Criterion,
    KnockoutDeclaration,
    MatchResult,
    MatchScoringRecord,
    PointSplit,
    ScoringConfig,
)
from .interfaces import BracketReporter, ScorecardStore
from .controller import MatchController
from .resolver import resolve_match

__version__ = "0.1.0"
__all__ = [
    "Criterion",
    "KnockoutDeclaration",
    "MatchResult",
    "MatchScoringRecord",
    "PointSplit",
    "ScoringConfig",
    "BracketReporter",
    "ScorecardStore",
    "MatchController",
    "resolve_match",
]
