"""
Bracket reporter implementations.
"""

from .challonge_reporter import ChallongeReporter
from .recording_reporter import RecordingReporter

__all__ = [
    "ChallongeReporter",
    "RecordingReporter",
]
