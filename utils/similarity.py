"""Normalized edit-distance similarity between two texts."""
import re

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Case-fold, collapse whitespace runs to a single space and trim."""
    return _WHITESPACE.sub(" ", text.casefold()).strip()


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance with unit-cost insert, delete and substitute."""
    if len(a) < len(b):
        a, b = b, a

    # Two-row DP over the shorter string
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            )
        previous = current

    return previous[len(b)]


def calculate_similarity(a: str, b: str) -> float:
    """
    Similarity in [0, 1] between two texts.

    Both texts are normalized first; two empty texts are identical (1.0).
    Otherwise returns ``1 - distance / max(len(a), len(b))``.
    """
    a, b = normalize_text(a), normalize_text(b)
    max_length = max(len(a), len(b))
    if max_length == 0:
        return 1.0

    return 1.0 - levenshtein_distance(a, b) / max_length
