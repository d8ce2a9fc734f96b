"""Unit tests for the smart search engine."""

from collections.abc import Sequence

import pytest

from certflow.config.settings import SmartSearchConfig
from certflow.search import MatchType, SearchCandidate, SmartSearchEngine


class FakeCandidateSource:
    """In-memory candidate source recording the calls made to it."""

    def __init__(self, candidates: Sequence[SearchCandidate]):
        self.candidates = list(candidates)
        self.calls: list[tuple] = []

    async def list_candidates_matching(
        self, prefix: str, text: str, *, limit: int
    ) -> list[SearchCandidate]:
        self.calls.append(("matching", prefix, text, limit))
        p, t = prefix.lower(), text.lower()
        matched = [
            c
            for c in self.candidates
            if c.credential_id.lower().startswith(p)
            or t in c.credential_id.lower()
            or t in c.holder_name.lower()
            or t in c.holder_email.lower()
        ]
        return matched[:limit]

    async def list_candidates(self, *, limit: int) -> list[SearchCandidate]:
        self.calls.append(("broad", limit))
        return self.candidates[:limit]

    async def list_credential_ids(self, *, limit: int) -> list[str]:
        self.calls.append(("ids", limit))
        return [c.credential_id for c in self.candidates][:limit]


def make_candidate(credential_id: str, holder_name: str, holder_email: str) -> SearchCandidate:
    return SearchCandidate(
        credential_id=credential_id,
        holder_name=holder_name,
        holder_email=holder_email,
        category="Data Science",
        status="active",
    )


@pytest.fixture
def source() -> FakeCandidateSource:
    return FakeCandidateSource(
        [
            make_candidate("CF-2024-001", "Jane Doe", "jane.doe@example.com"),
            make_candidate("CF-2019-777", "Omar Haddad", "omar@example.net"),
        ]
    )


@pytest.fixture
def engine(source: FakeCandidateSource) -> SmartSearchEngine:
    return SmartSearchEngine(source)


class TestSearchSuggestions:
    """Tests for SmartSearchEngine.search_suggestions."""

    async def test_short_query_returns_empty(
        self, engine: SmartSearchEngine, source: FakeCandidateSource
    ):
        response = await engine.search_suggestions(" C ")

        assert response.query == "C"
        assert response.suggestions == []
        assert response.correction is None
        assert response.total_found == 0
        assert source.calls == []

    async def test_exact_identifier(self, engine: SmartSearchEngine, source: FakeCandidateSource):
        response = await engine.search_suggestions("CF-2024-001")

        assert response.suggestions[0].candidate.credential_id == "CF-2024-001"
        assert response.suggestions[0].match_type == MatchType.EXACT
        assert response.normalized_query is None
        assert response.correction is None
        # A strong narrow match needs neither the broad scan nor a correction
        assert [call[0] for call in source.calls] == ["matching"]

    async def test_lookalike_query_uses_normalized_prefix(
        self, engine: SmartSearchEngine, source: FakeCandidateSource
    ):
        response = await engine.search_suggestions("CF-2O24-0O1")

        assert response.normalized_query == "CF-2024-001"
        assert source.calls[0] == ("matching", "CF-2024-001", "CF-2O24-0O1", 50)
        assert response.suggestions[0].candidate.credential_id == "CF-2024-001"
        assert response.suggestions[0].similarity == 81.8

    async def test_name_search(self, engine: SmartSearchEngine):
        response = await engine.search_suggestions("omar")

        assert response.total_found == 1
        assert response.suggestions[0].candidate.credential_id == "CF-2019-777"
        assert response.suggestions[0].match_field == "holder_name"

    async def test_broad_scan_and_correction(
        self, engine: SmartSearchEngine, source: FakeCandidateSource
    ):
        response = await engine.search_suggestions("CF-2042-010")

        assert [call[0] for call in source.calls] == ["matching", "broad", "ids"]
        assert ("broad", 500) in source.calls
        assert ("ids", 1000) in source.calls
        assert response.suggestions[0].candidate.credential_id == "CF-2024-001"
        assert response.suggestions[0].similarity < 80
        assert response.correction is not None
        assert response.correction.suggestion == "CF-2024-001"

    async def test_nothing_found(self, engine: SmartSearchEngine):
        response = await engine.search_suggestions("zzzzzz")

        assert response.suggestions == []
        assert response.correction is None

    async def test_limit_applied(self):
        source = FakeCandidateSource(
            [make_candidate(f"CF-2024-{i:03d}", "Jane Doe", "j@example.com") for i in range(30)]
        )
        engine = SmartSearchEngine(source)

        response = await engine.search_suggestions("CF-2024", limit=3)

        assert response.total_found == 3


class TestEffectiveLimit:
    """Tests for result limit clamping."""

    def test_default(self, engine: SmartSearchEngine):
        assert engine.effective_limit(None) == 10

    def test_clamped(self, engine: SmartSearchEngine):
        assert engine.effective_limit(0) == 1
        assert engine.effective_limit(1000) == 50
        assert engine.effective_limit(7) == 7

    def test_configured_bounds(self, source: FakeCandidateSource):
        engine = SmartSearchEngine(source, SmartSearchConfig(default_limit=5, max_limit=20))

        assert engine.effective_limit(None) == 5
        assert engine.effective_limit(100) == 20
