"""Fuzzy name matching used to score provider candidates."""

import re

_LOCATION_SUFFIX_RE = re.compile(r"(特别行政区|自治区|自治州|地区|盟|市|省|县|区)$")
_NON_HAN_RE = re.compile(r"[^一-鿿]")
_MATCH_STRIP_RE = re.compile(r"[^一-鿿0-9a-z]")
_PUNCT_RE = re.compile(r"[^\w\s]+")
_SPACE_RE = re.compile(r"\s+")


def normalize_location_text(value: str | None) -> str | None:
    """Han-only text with administrative suffixes (市, 区, ...) removed."""
    if not value:
        return None
    normalized = _NON_HAN_RE.sub("", value)
    if not normalized:
        return None
    while _LOCATION_SUFFIX_RE.search(normalized):
        normalized = _LOCATION_SUFFIX_RE.sub("", normalized)
    return normalized or None


def _normalize_match_text(value: str) -> str:
    return _MATCH_STRIP_RE.sub("", value.lower())


def compute_match_confidence(reference: str, candidate: str | None) -> float:
    """Score 0-1: 1 on containment, else character overlap over the smaller set."""
    if not candidate:
        return 0.0

    normalized_query = _normalize_match_text(reference)
    normalized_candidate = _normalize_match_text(candidate)
    if not normalized_query or not normalized_candidate:
        return 0.0

    if normalized_query in normalized_candidate or normalized_candidate in normalized_query:
        return 1.0

    query_chars = set(normalized_query)
    candidate_chars = set(normalized_candidate)
    smallest = min(len(query_chars), len(candidate_chars))
    if smallest == 0:
        return 0.0
    return len(query_chars & candidate_chars) / smallest


def normalize_text(value: str) -> str:
    """Lower-case, punctuation-free, single-spaced text."""
    return _SPACE_RE.sub(" ", _PUNCT_RE.sub(" ", value.lower())).strip()


def token_overlap_score(query: str, candidate: str) -> float:
    """Share of query tokens present in the candidate."""
    base_tokens = normalize_text(query).split()
    candidate_tokens = normalize_text(candidate).split()
    if not base_tokens or not candidate_tokens:
        return 0.0
    base_set = set(base_tokens)
    overlap = sum(1 for token in candidate_tokens if token in base_set)
    return overlap / len(base_tokens)
