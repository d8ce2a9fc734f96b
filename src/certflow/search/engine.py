"""Smart search engine resolving administrator queries to credentials."""

from certflow.config.settings import SmartSearchConfig
from certflow.core.logging import get_logger

from .fuzzy import auto_correct, normalize, rank
from .types import CandidateSource, SearchResponse

logger = get_logger(__name__)


class SmartSearchEngine:
    """Two-stage fuzzy search over the credential catalog.

    The narrow stage pulls a small candidate set with a loose database
    filter (identifier prefix or substring on id, name and email) and ranks
    it leniently. When that yields nothing, the broad stage ranks the most
    recent credentials with a stricter threshold. An auto-correction is
    offered when there is no suggestion or the best one is weak.

    Example:
        engine = SmartSearchEngine(store, settings.smart_search)
        response = await engine.search_suggestions("CF-2O24-0O1")
        if response.correction:
            print(f"Did you mean {response.correction.suggestion}?")
    """

    def __init__(self, source: CandidateSource, config: SmartSearchConfig | None = None):
        """Initialize the engine.

        Args:
            source: Credential catalog to search
            config: Search limits and thresholds
        """
        self._source = source
        self._config = config or SmartSearchConfig()

    def effective_limit(self, limit: int | None) -> int:
        """Clamp a requested result limit to the configured bounds."""
        if limit is None:
            return self._config.default_limit
        return max(1, min(limit, self._config.max_limit))

    async def search_suggestions(self, query: str, limit: int | None = None) -> SearchResponse:
        """Search credentials for a possibly mistyped query.

        Queries shorter than the configured minimum return an empty
        response rather than an error.
        """
        text = (query or "").strip()
        if len(text) < self._config.min_query_length:
            return SearchResponse(query=text)

        max_results = self.effective_limit(limit)
        normalized = normalize(text)

        narrow = await self._source.list_candidates_matching(
            normalized, text, limit=self._config.narrow_candidate_limit
        )
        suggestions = rank(
            text,
            narrow,
            limit=max_results,
            min_similarity=self._config.narrow_min_similarity,
        )

        if not suggestions:
            broad = await self._source.list_candidates(limit=self._config.broad_candidate_limit)
            suggestions = rank(
                text,
                broad,
                limit=max_results,
                min_similarity=self._config.broad_min_similarity,
            )

        correction = None
        best = suggestions[0].similarity if suggestions else 0.0
        if best < self._config.correction_trigger_similarity:
            known_ids = await self._source.list_credential_ids(
                limit=self._config.correction_id_limit
            )
            correction = auto_correct(text, known_ids, self._config.correction_threshold)

        logger.debug(
            "smart_search_completed",
            query_length=len(text),
            suggestions=len(suggestions),
            corrected=correction is not None,
        )

        return SearchResponse(
            query=text,
            normalized_query=normalized if normalized != text else None,
            suggestions=suggestions,
            correction=correction,
        )
