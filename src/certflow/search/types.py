"""Smart search type definitions.

This module defines the searchable projection of a credential, ranked
match results, auto-correction suggestions and the response returned to
administrators.
"""

from collections.abc import Sequence
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


class MatchType(str, Enum):
    """How a candidate matched a query."""

    EXACT = "exact"  # Field equals the query
    PREFIX = "prefix"  # Field starts with the query
    CONTAINS = "contains"  # Field contains the query
    FUZZY = "fuzzy"  # Edit-distance similarity on the whole field
    PARTIAL = "partial"  # Edit-distance similarity on one identifier segment


class SearchCandidate(BaseModel):
    """Searchable projection of a credential."""

    model_config = ConfigDict(from_attributes=True)

    credential_id: str
    holder_name: str
    holder_email: str
    category: str
    status: str


class RankedMatch(BaseModel):
    """A candidate that cleared the similarity threshold."""

    candidate: SearchCandidate
    match_field: str | None = None
    similarity: float = Field(ge=0.0, le=100.0)
    match_type: MatchType = MatchType.FUZZY


class Correction(BaseModel):
    """Closest known identifier to a possibly mistyped query."""

    original: str
    suggestion: str
    similarity: float = Field(ge=0.0, le=100.0)


class SearchResponse(BaseModel):
    """Result of a smart search keystroke."""

    query: str
    normalized_query: str | None = None  # Only set when it differs from query
    suggestions: list[RankedMatch] = Field(default_factory=list)
    correction: Correction | None = None

    @property
    def total_found(self) -> int:
        """Number of suggestions returned."""
        return len(self.suggestions)


class CandidateSource(Protocol):
    """Read access to the credential catalog for search."""

    async def list_candidates_matching(
        self, prefix: str, text: str, *, limit: int
    ) -> Sequence[SearchCandidate]:
        """Candidates whose id starts with ``prefix`` or whose fields contain ``text``."""
        ...

    async def list_candidates(self, *, limit: int) -> Sequence[SearchCandidate]:
        """Most recent candidates for a broad scan."""
        ...

    async def list_credential_ids(self, *, limit: int) -> Sequence[str]:
        """Known credential identifiers."""
        ...
