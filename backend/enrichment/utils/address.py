"""Address candidate generation for retrying lookups with looser queries."""

import re

MIN_PREFIX_LENGTH = 6

_WHITESPACE_RE = re.compile(r"[\s　]+")
_PUNCTUATION_RE = re.compile(r"[，、。；;|｜]")
_TOKEN_SPLIT_RE = re.compile(r"[\s,，、。；;|｜]+")

# Loose address shapes: Chinese road/number markers or English street suffixes.
_CN_ADDRESS_RE = re.compile(
    r"(?:地址[:：]\s*)?"
    r"([一-鿿0-9A-Za-z]{2,}(?:路|街|大道|巷|胡同|弄)[一-鿿0-9A-Za-z\-]*?(?:\d+号|号)?)"
)
_EN_ADDRESS_RE = re.compile(
    r"\b(\d+[A-Za-z]?\s+(?:[A-Z][\w'.-]*\s+){0,4}"
    r"(?:Street|St|Road|Rd|Avenue|Ave|Boulevard|Blvd|Lane|Ln|Drive|Dr|Way|Place|Pl|Square|Sq)\b\.?"
    r"(?:,\s*[A-Z][\w'.-]*(?:\s+[A-Z][\w'.-]*)*)?)"
)


def _normalize_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()


def _normalize_punctuation(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", _PUNCTUATION_RE.sub(" ", value)).strip()


def _collect_prefixes(source: str) -> list[str]:
    prefixes: list[str] = []
    if not source or len(source) < MIN_PREFIX_LENGTH:
        return prefixes

    tokens = [token for token in _TOKEN_SPLIT_RE.split(source) if token]
    if len(tokens) > 1:
        for length in range(len(tokens), 1, -1):
            candidate = " ".join(tokens[:length]).strip()
            if len(candidate) >= MIN_PREFIX_LENGTH:
                prefixes.append(candidate)
        return prefixes

    # Unsegmented text (typical for Chinese): trim two characters at a time
    for cut in range(len(source) - 1, MIN_PREFIX_LENGTH - 1, -2):
        candidate = source[:cut].strip()
        if len(candidate) < MIN_PREFIX_LENGTH:
            break
        prefixes.append(candidate)
    return prefixes


def generate_address_candidates(raw_address: str | None) -> list[str]:
    """Build progressively looser query variants for an address.

    Order: raw, whitespace-normalized, punctuation-normalized, then shorter
    prefixes of the normalized form. Duplicates and blanks are dropped.
    """
    if not raw_address:
        return []

    candidates: list[str] = []
    seen: set[str] = set()

    def add(value: str | None) -> None:
        trimmed = value.strip() if value else ""
        if trimmed and trimmed not in seen:
            seen.add(trimmed)
            candidates.append(trimmed)

    add(raw_address)
    whitespace_normalized = _normalize_whitespace(raw_address)
    add(whitespace_normalized)
    punctuation_normalized = _normalize_punctuation(whitespace_normalized)
    add(punctuation_normalized)
    for prefix in _collect_prefixes(punctuation_normalized):
        add(prefix)

    return candidates


def extract_address_from_note(note: str | None) -> str | None:
    """Pull the first address-shaped fragment out of free text."""
    if not note:
        return None
    for pattern in (_CN_ADDRESS_RE, _EN_ADDRESS_RE):
        match = pattern.search(note)
        if match:
            return match.group(1).strip()
    return None


def derive_address_candidates(address: str | None, note: str | None) -> list[str]:
    """Address candidates from the address field, else from the note."""
    candidates = generate_address_candidates(address)
    if candidates:
        return candidates
    return generate_address_candidates(extract_address_from_note(note))
