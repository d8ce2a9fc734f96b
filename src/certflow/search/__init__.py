"""Fuzzy matching and smart search over the credential catalog."""

from certflow.search.engine import SmartSearchEngine
from certflow.search.fuzzy import auto_correct, edit_distance, normalize, rank, similarity
from certflow.search.types import (
    CandidateSource,
    Correction,
    MatchType,
    RankedMatch,
    SearchCandidate,
    SearchResponse,
)

__all__ = [
    "CandidateSource",
    "Correction",
    "MatchType",
    "RankedMatch",
    "SearchCandidate",
    "SearchResponse",
    "SmartSearchEngine",
    "auto_correct",
    "edit_distance",
    "normalize",
    "rank",
    "similarity",
]
