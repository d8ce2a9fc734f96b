"""Fuzzy string matching for credential search.

Pure functions with no I/O: Levenshtein edit distance, a similarity
percentage derived from it, multi-field ranking of search candidates,
look-alike character normalization and identifier auto-correction.

All comparisons are case-insensitive and ignore surrounding whitespace.
"""

import re
from collections.abc import Iterable, Sequence

from .types import Correction, MatchType, RankedMatch, SearchCandidate

DEFAULT_FIELDS: tuple[str, ...] = ("credential_id", "holder_name", "holder_email")
IDENTIFIER_FIELDS: tuple[str, ...] = ("credential_id",)

MIN_RANK_QUERY_LENGTH = 2
MIN_CORRECTION_QUERY_LENGTH = 3
DEFAULT_CORRECTION_THRESHOLD = 70.0

_SEGMENT_SEPARATORS = re.compile(r"[-_]")
_WHITESPACE = re.compile(r"\s+")
_ZERO_LOOKALIKE = re.compile(r"[oO](?=\d)")
_ONE_LOOKALIKE = re.compile(r"[lI](?=\d)")


def _prepare(value: str | None) -> str:
    return (value or "").lower().strip()


def edit_distance(a: str | None, b: str | None) -> int:
    """Levenshtein distance with unit costs for insert, delete and substitute.

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of single-character edits turning ``a`` into ``b``
    """
    s1, s2 = _prepare(a), _prepare(b)
    if s1 == s2:
        return 0
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            cost = 0 if c1 == c2 else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str | None, b: str | None) -> float:
    """Similarity percentage between two strings, rounded to one decimal.

    Returns 100 when the strings are equal after normalization (two empty
    strings included) and 0 when exactly one of them is empty.
    """
    s1, s2 = _prepare(a), _prepare(b)
    if s1 == s2:
        return 100.0
    if not s1 or not s2:
        return 0.0

    max_len = max(len(s1), len(s2))
    return round((max_len - edit_distance(s1, s2)) / max_len * 100, 1)


def rank(
    query: str,
    candidates: Iterable[SearchCandidate],
    *,
    limit: int = 10,
    min_similarity: float = 50.0,
    fields: Sequence[str] = DEFAULT_FIELDS,
    identifier_fields: Sequence[str] = IDENTIFIER_FIELDS,
) -> list[RankedMatch]:
    """Rank candidates by their best-matching field.

    Each field is scored in priority order: an exact match scores 100 and
    ends the candidate, a prefix match scores 90 plus up to 10 for coverage,
    a substring match scores 70 plus up to 20 for coverage, and anything
    else falls back to edit-distance similarity. Identifier fields are also
    scored segment by segment (split on ``-`` and ``_``) so a query for
    "2024001" finds "CF-2024001".

    Args:
        query: Search text (at least two characters)
        candidates: Candidates to score
        limit: Maximum results to return
        min_similarity: Minimum best score a candidate needs to be kept
        fields: Candidate attributes to score, in priority order
        identifier_fields: Fields that also get per-segment scoring

    Returns:
        Matches sorted by similarity, highest first. Ties keep input order.
    """
    q = _prepare(query)
    if len(q) < MIN_RANK_QUERY_LENGTH:
        return []

    results: list[RankedMatch] = []
    seen: set[str] = set()

    for candidate in candidates:
        if candidate.credential_id in seen:
            continue

        best_score = 0.0
        best_field: str | None = None
        best_type = MatchType.FUZZY

        for field in fields:
            value = getattr(candidate, field, None)
            if not value:
                continue
            field_value = _prepare(str(value))

            if field_value == q:
                best_score, best_field, best_type = 100.0, field, MatchType.EXACT
                break

            if field_value.startswith(q):
                score = round(90 + len(q) / len(field_value) * 10, 1)
                if score > best_score:
                    best_score, best_field, best_type = score, field, MatchType.PREFIX
                continue

            if q in field_value:
                score = round(70 + len(q) / len(field_value) * 20, 1)
                if score > best_score:
                    best_score, best_field, best_type = score, field, MatchType.CONTAINS
                continue

            score = similarity(q, field_value)
            if score > best_score:
                best_score, best_field, best_type = score, field, MatchType.FUZZY

            if field in identifier_fields:
                for segment in _SEGMENT_SEPARATORS.split(field_value):
                    segment_score = similarity(q, segment)
                    if segment_score > best_score:
                        best_score, best_field, best_type = (
                            segment_score,
                            field,
                            MatchType.PARTIAL,
                        )

        if best_score >= min_similarity:
            seen.add(candidate.credential_id)
            results.append(
                RankedMatch(
                    candidate=candidate,
                    match_field=best_field,
                    similarity=best_score,
                    match_type=best_type,
                )
            )

    # list.sort is stable, so equal scores keep candidate order
    results.sort(key=lambda match: match.similarity, reverse=True)
    return results[:limit]


def normalize(query: str | None) -> str:
    """Normalize a typed credential identifier.

    Removes all whitespace, replaces look-alike letters that sit directly
    before a digit (``O``/``o`` with ``0``, ``I``/``l`` with ``1``) and
    uppercases the result.
    """
    if not query:
        return ""
    normalized = _WHITESPACE.sub("", query)
    normalized = _ZERO_LOOKALIKE.sub("0", normalized)
    normalized = _ONE_LOOKALIKE.sub("1", normalized)
    return normalized.upper()


def auto_correct(
    query: str,
    known_ids: Iterable[str],
    threshold: float = DEFAULT_CORRECTION_THRESHOLD,
) -> Correction | None:
    """Suggest the known identifier closest to a possibly mistyped query.

    The query is normalized before scoring. The best identifier scoring at
    least ``threshold`` is suggested unless it is what the user already
    typed (ignoring case and surrounding whitespace).

    Args:
        query: Query as typed (at least three characters)
        known_ids: Identifiers to choose from
        threshold: Minimum similarity for a suggestion

    Returns:
        Correction, or None when nothing qualifies
    """
    if not query or len(query.strip()) < MIN_CORRECTION_QUERY_LENGTH:
        return None

    normalized = normalize(query)
    best: Correction | None = None
    for known_id in known_ids:
        score = similarity(normalized, known_id)
        if score >= threshold and (best is None or score > best.similarity):
            best = Correction(original=query, suggestion=known_id, similarity=score)

    if best is not None and _prepare(best.suggestion) != _prepare(query):
        return best
    return None
