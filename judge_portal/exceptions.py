"""
Exception classes for the judge portal.

Centralized location for all custom exceptions to avoid circular imports.
Each exception carries an ``error_code`` so outer surfaces can tell a judge
why a call was refused.
"""


class JudgePortalError(Exception):
    """Base exception for all judge portal errors."""

    error_code: str = "judge_portal_error"


class ValidationError(JudgePortalError):
    """Malformed input, rejected before the store is touched."""

    error_code = "validation_error"


class ConfigurationError(JudgePortalError):
    """Invalid scoring configuration or settings."""

    error_code = "configuration_error"


class AlreadyFinalizedError(JudgePortalError):
    """Mutation attempted on a match whose result is final."""

    error_code = "already_finalized"

    def __init__(self, match_id: str):
        super().__init__(f"Match {match_id} is already finalized")
        self.match_id: str = match_id


class ScorecardNotFoundError(JudgePortalError):
    """No scorecard (or no record) exists for the requested key."""

    error_code = "not_found"


class UpstreamReportError(JudgePortalError):
    """The bracket host rejected or never received a report."""

    error_code = "upstream_report_failure"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code: int | None = status_code


class StoreError(JudgePortalError):
    """Persistence I/O failed; the operation was not applied."""

    error_code = "store_failure"


class TiedMatchError(JudgePortalError):
    """Point totals are level and no winner can be declared."""

    error_code = "tied_match"

    def __init__(self, match_id: str, score: int):
        super().__init__(
            f"Match {match_id} is tied {score}-{score} on points; a judge must revise their scorecard"
        )
        self.match_id: str = match_id
        self.score: int = score
