"""
String similarity used to match free-form input against taxonomy values.
"""

from rapidfuzz.distance import Levenshtein

EXACT_SCORE = 100.0
INPUT_IN_TARGET_SCORE = 85.0
TARGET_IN_INPUT_SCORE = 80.0
SUBSTRING_CEILING = 75.0
EDIT_BASE = 70.0
EDIT_PENALTY = 10.0


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    return Levenshtein.distance(a, b)


def longest_common_substring(a: str, b: str) -> int:
    """Length of the longest contiguous run shared by ``a`` and ``b``."""
    best = 0
    previous = [0] * (len(b) + 1)
    for ca in a:
        current = [0] * (len(b) + 1)
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current[j] = previous[j - 1] + 1
                best = max(best, current[j])
        previous = current
    return best


def similarity(input: str, target: str) -> float:
    """
    Score how well ``input`` matches ``target`` on a 0-100 scale.

    Tiers are checked in order and the first that applies wins:
    exact match (100), input inside target (85), target inside input (80).
    Otherwise the larger of a longest-common-substring signal (up to 75)
    and an edit distance signal (70 minus 10 per edit) is returned.
    Comparison is case-insensitive; nothing else is normalized.
    """
    if not input or not target:
        return 0.0

    a = input.lower()
    b = target.lower()

    if a == b:
        return EXACT_SCORE
    if a in b:
        return INPUT_IN_TARGET_SCORE
    if b in a:
        return TARGET_IN_INPUT_SCORE

    substring_score = longest_common_substring(a, b) / max(len(a), len(b)) * SUBSTRING_CEILING
    edit_score = max(0.0, EDIT_BASE - EDIT_PENALTY * levenshtein(a, b))
    return max(substring_score, edit_score)
