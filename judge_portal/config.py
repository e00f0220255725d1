"""
Runtime settings for the judge portal.

Read from the environment, overridable from the command line.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ConfigurationError
from .models import ScoringConfig
from .reporters.challonge_reporter import CHALLONGE_BASE_URL


@dataclass
class Settings:
    """Configuration for a judge portal deployment."""

    challonge_api_key: str | None = None
    challonge_base_url: str = CHALLONGE_BASE_URL
    data_dir: Path | None = None  # None keeps records in memory only
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    host: str = "0.0.0.0"
    port: int = 3001
    request_timeout: float = 10.0

    def __post_init__(self):
        """Validate configuration."""
        if not (0 < self.port < 65536):
            raise ConfigurationError(f"port must be between 1 and 65535, got {self.port}")
        if self.request_timeout <= 0:
            raise ConfigurationError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.data_dir is not None:
            self.data_dir = Path(self.data_dir)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """
        Build settings from environment variables.

        CHALLONGE_API_KEY, CHALLONGE_BASE_URL, JUDGE_PORTAL_DATA_DIR,
        JUDGE_PORTAL_CRITERIA (``aggression:3,damage:5,control:3``),
        JUDGE_PORTAL_KO_LOSER_SCORE and PORT are recognized.
        """
        env = os.environ if environ is None else environ

        try:
            ko_loser_score = int(env.get("JUDGE_PORTAL_KO_LOSER_SCORE", "0"))
            port = int(env.get("PORT", "3001"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid integer setting: {e}") from e

        criteria = env.get("JUDGE_PORTAL_CRITERIA")
        if criteria:
            scoring = ScoringConfig.from_string(criteria, ko_loser_score=ko_loser_score)
        else:
            scoring = ScoringConfig(ko_loser_score=ko_loser_score)

        data_dir = env.get("JUDGE_PORTAL_DATA_DIR")
        return cls(
            challonge_api_key=env.get("CHALLONGE_API_KEY") or None,
            challonge_base_url=env.get("CHALLONGE_BASE_URL", CHALLONGE_BASE_URL),
            data_dir=Path(data_dir) if data_dir else None,
            scoring=scoring,
            port=port,
        )
