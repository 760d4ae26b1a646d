# reorder_forecast/core/similarity.py
from rapidfuzz.distance import Levenshtein


def levenshtein_distance(first: str, second: str) -> int:
    """Number of single-character edits turning one string into the other."""
    return Levenshtein.distance(first, second)


def similarity(first: str, second: str) -> float:
    """Case-insensitive normalized edit-distance similarity.

    Computes ``1 - distance / max(len(first), len(second))`` on the lower-cased
    strings.

    Args:
        first: First string
        second: Second string

    Returns:
        Similarity in [0, 1]; 0 when either string is empty
    """
    if not first or not second:
        return 0.0

    first = first.lower()
    second = second.lower()

    distance = levenshtein_distance(first, second)
    max_length = max(len(first), len(second))

    return 1.0 - distance / max_length


def is_similar(first: str, second: str, threshold: float = 0.8) -> bool:
    """Whether two names are similar enough to describe the same product."""
    return similarity(first, second) > threshold
