"""
Core dataclasses for the judge portal.

Defines scoring criteria, judge scorecards, match records and results with
validation.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from .exceptions import ConfigurationError, ValidationError

JUDGES_PER_MATCH = 3
KO_MAJORITY = 2

WinMethod = Literal["ko", "points"]

# Whatever the bracket host answered when a result or reopen was pushed
ExternalReceipt = dict[str, Any]


def utc_now() -> str:
    """ISO-8601 timestamp used for submissions."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Criterion:
    """A named category whose points a judge splits between A and B."""

    criterion_id: str
    name: str
    points: int

    def __post_init__(self) -> None:
        """Validate criterion data."""
        if not self.criterion_id:
            raise ConfigurationError("criterion_id cannot be empty")
        if isinstance(self.points, bool) or not isinstance(self.points, int):
            raise ConfigurationError(f"points for {self.criterion_id} must be an integer")
        if not (1 <= self.points <= 10):
            raise ConfigurationError(
                f"points for {self.criterion_id} must be between 1 and 10, got {self.points}"
            )


DEFAULT_CRITERIA: tuple[Criterion, ...] = (
    Criterion("aggression", "Aggression", 3),
    Criterion("damage", "Damage", 5),
    Criterion("control", "Control", 3),
)

DEFAULT_JUDGE_ROLES: tuple[str, ...] = ("judge_1", "judge_2", "judge_3")


@dataclass(frozen=True)
class ScoringConfig:
    """Per-event scoring rules."""

    criteria: tuple[Criterion, ...] = DEFAULT_CRITERIA
    judge_roles: tuple[str, ...] = DEFAULT_JUDGE_ROLES
    ko_loser_score: int = 0  # loser's score on a KO; winner always gets point_budget * 3

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not (1 <= len(self.criteria) <= 6):
            raise ConfigurationError(f"between 1 and 6 criteria required, got {len(self.criteria)}")
        ids = [c.criterion_id for c in self.criteria]
        if len(set(ids)) != len(ids):
            raise ConfigurationError(f"duplicate criterion ids: {ids}")
        if len(self.judge_roles) != JUDGES_PER_MATCH or len(set(self.judge_roles)) != JUDGES_PER_MATCH:
            raise ConfigurationError(
                f"exactly {JUDGES_PER_MATCH} distinct judge roles required, got {list(self.judge_roles)}"
            )
        if not (0 <= self.ko_loser_score < self.point_budget * JUDGES_PER_MATCH):
            raise ConfigurationError(f"ko_loser_score out of range: {self.ko_loser_score}")

    @property
    def point_budget(self) -> int:
        """Points a single judge distributes across both competitors."""
        return sum(c.points for c in self.criteria)

    @property
    def criterion_ids(self) -> list[str]:
        return [c.criterion_id for c in self.criteria]

    def get_criterion(self, criterion_id: str) -> Criterion:
        for criterion in self.criteria:
            if criterion.criterion_id == criterion_id:
                return criterion
        raise ValidationError(f"Unknown criterion: {criterion_id}")

    @classmethod
    def from_string(cls, text: str, ko_loser_score: int = 0) -> "ScoringConfig":
        """
        Build a config from ``"aggression:3,damage:5,control:3"``.

        Criterion names are the ids with their first letter capitalized.
        """
        criteria: list[Criterion] = []
        for part in text.split(","):
            part = part.strip()
            if not part:
                continue
            criterion_id, sep, points = part.partition(":")
            if not sep:
                raise ConfigurationError(f"criterion must look like name:points, got {part!r}")
            try:
                value = int(points)
            except ValueError as e:
                raise ConfigurationError(f"points for {criterion_id} must be an integer, got {points!r}") from e
            criterion_id = criterion_id.strip().lower()
            criteria.append(Criterion(criterion_id, criterion_id.capitalize(), value))
        return cls(criteria=tuple(criteria), ko_loser_score=ko_loser_score)


@dataclass
class PointSplit:
    """
    A judge's split of every criterion between the two competitors.

    Only competitor A's share is stored; B's share is the criterion's points
    minus A's share.
    """

    shares_a: dict[str, int]
    submitted_at: str = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.shares_a:
            raise ValidationError("point split cannot be empty")
        for criterion_id, share in self.shares_a.items():
            if isinstance(share, bool) or not isinstance(share, int):
                raise ValidationError(f"share for {criterion_id} must be an integer, got {share!r}")

    def total_a(self) -> int:
        return sum(self.shares_a.values())


@dataclass
class KnockoutDeclaration:
    """A judge declaring one competitor the knockout winner."""

    winner_id: str
    submitted_at: str = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.winner_id:
            raise ValidationError("knockout declaration must name a winner")


Scorecard = PointSplit | KnockoutDeclaration


@dataclass
class MatchResult:
    """Computed outcome of a match."""

    winner_id: str
    win_method: WinMethod
    score_a: int
    score_b: int
    ko_votes: int | None = None
    judges_counted: int = JUDGES_PER_MATCH

    def __post_init__(self) -> None:
        if self.win_method not in ("ko", "points"):
            raise ValidationError(f"Unknown win method: {self.win_method}")
        if self.win_method == "ko" and not self.ko_votes:
            raise ValidationError("ko result must carry its vote count")

    @property
    def score_string(self) -> str:
        """Score as the bracket host expects it, A first."""
        return f"{self.score_a}-{self.score_b}"


class MatchState(str, Enum):
    """Lifecycle of a match's scoring."""

    OPEN = "open"
    COLLECTING = "collecting"
    FINALIZED = "finalized"


@dataclass
class MatchScoringRecord:
    """Everything stored about one match."""

    match_id: str
    tournament_id: str
    competitor_a_id: str
    competitor_b_id: str
    scorecards: dict[str, Scorecard] = field(default_factory=dict)
    finalized: bool = False
    result: MatchResult | None = None
    report_receipt: ExternalReceipt | None = None

    def __post_init__(self) -> None:
        """Validate record data."""
        if not self.match_id:
            raise ValidationError("match_id cannot be empty")
        if not self.competitor_a_id or not self.competitor_b_id:
            raise ValidationError("both competitor ids are required")
        if self.competitor_a_id == self.competitor_b_id:
            raise ValidationError("a match needs two different competitors")
        if self.finalized and self.result is None:
            raise ValidationError("finalized record must carry a result")

    @property
    def judge_count(self) -> int:
        return len(self.scorecards)

    @property
    def competitor_ids(self) -> tuple[str, str]:
        return (self.competitor_a_id, self.competitor_b_id)

    @property
    def state(self) -> MatchState:
        if self.finalized:
            return MatchState.FINALIZED
        if self.scorecards:
            return MatchState.COLLECTING
        return MatchState.OPEN


@dataclass
class SubmissionOutcome:
    """What a judge gets back after submitting."""

    finalized: bool
    judge_count: int
    result: MatchResult | None = None

    @property
    def waiting_for(self) -> int:
        return max(0, JUDGES_PER_MATCH - self.judge_count)


@dataclass
class MatchStatus:
    """Read-only projection of a match record."""

    match_id: str
    judge_count: int
    finalized: bool
    state: MatchState
    result: MatchResult | None = None


@dataclass
class JudgeBreakdown:
    """One judge's scorecard as shown for audit."""

    judge_id: str
    method: WinMethod
    submitted_at: str
    shares_a: dict[str, int] = field(default_factory=dict)
    shares_b: dict[str, int] = field(default_factory=dict)
    total_a: int | None = None
    total_b: int | None = None
    ko_winner_id: str | None = None


@dataclass
class MatchStatusDetail:
    """Status plus the raw per-judge breakdown."""

    status: MatchStatus
    tournament_id: str | None = None
    competitor_a_id: str | None = None
    competitor_b_id: str | None = None
    judges: list[JudgeBreakdown] = field(default_factory=list)
