"""
Name-string heuristics for model tiers.

Catalogs rarely publish speed or quality tiers, so these helpers infer
them from model ids and display names. They are brittle to new naming
conventions by nature, which is why they live here, apart from the
scoring contract, and are tested on their own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .types import CandidateModel

_FAST_PATTERN = re.compile(r"nano|flash|mini|lite|haiku|fast")
_MEDIUM_PATTERN = re.compile(r"turbo|small")
_SLOW_PATTERN = re.compile(r"opus|pro|thinking")

_PREMIUM_PATTERN = re.compile(r"gpt-5|opus|pro|thinking|reasoning|large")
_ECONOMY_PATTERN = re.compile(r"mini|nano|flash|lite|small")


@dataclass(frozen=True)
class VersionAffinity:
    """A labelled nudge toward (or away from) one model generation."""

    label: str
    pattern: re.Pattern[str]
    points: float


# Newer generations of the same family get a small push; superseded
# point releases get a small pull.
VERSION_AFFINITIES: tuple[VersionAffinity, ...] = (
    VersionAffinity("gemini-3 generation", re.compile(r"gemini[-_ ]?3"), 14),
    VersionAffinity("gemini-2.5-flash superseded", re.compile(r"gemini-2\.5-flash"), -6),
    VersionAffinity("glm-5 generation", re.compile(r"glm[-_ ]?5"), 10),
    VersionAffinity("glm-4.7-flash superseded", re.compile(r"glm-4\.7-flash"), -4),
    VersionAffinity("minimax-m2.5 generation", re.compile(r"minimax[-_ ]?m2\.5"), 8),
    VersionAffinity("minimax-m2.1 superseded", re.compile(r"minimax[-_ ]?m2\.1"), -6),
)


def _model_text(candidate: CandidateModel) -> str:
    # Provider prefixes like "nanogpt/" would otherwise match "nano"
    _, _, bare = candidate.model_id.rpartition("/")
    return f"{bare} {candidate.name}".lower()


def speed_score(candidate: CandidateModel) -> float:
    """Heuristic speed score in [0, 100]; faster-sounding names score higher."""
    text = _model_text(candidate)
    if _FAST_PATTERN.search(text):
        return 85.0
    if _MEDIUM_PATTERN.search(text):
        return 70.0
    if _SLOW_PATTERN.search(text):
        return 35.0
    return 55.0


def is_premium(candidate: CandidateModel) -> bool:
    """Name suggests a flagship, high-cost tier."""
    return bool(_PREMIUM_PATTERN.search(_model_text(candidate)))


def is_economy(candidate: CandidateModel) -> bool:
    """Name suggests a small, cheap tier."""
    return bool(_ECONOMY_PATTERN.search(_model_text(candidate)))


def matched_affinities(candidate: CandidateModel) -> list[VersionAffinity]:
    """Version affinities whose pattern matches the candidate."""
    text = _model_text(candidate)
    return [a for a in VERSION_AFFINITIES if a.pattern.search(text)]


def version_affinity_score(candidate: CandidateModel) -> float:
    """Sum of all matching version-affinity nudges."""
    return sum(a.points for a in matched_affinities(candidate))


def is_deprecated_by_name(candidate: CandidateModel) -> bool:
    """Some catalogs only flag deprecation in the model id."""
    return "deprecated" in candidate.model_id.lower()
