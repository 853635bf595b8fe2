"""
Name Matcher Utilities

String similarity used by the fuzzy tier.
"""


def osa_distance(a: str, b: str) -> int:
    """
    Optimal string alignment distance.

    Counts insertions, deletions, substitutions and transpositions of
    adjacent characters ("jnoh" -> "john" is 1).

    Example:
        >>> osa_distance("sara", "sarah")
        1
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous_previous = None
    previous = list(range(len(b) + 1))
    for i in range(1, len(a) + 1):
        current = [i] + [0] * len(b)
        for j in range(1, len(b) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            current[j] = min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            )
            if (
                previous_previous is not None
                and i > 1 and j > 1
                and a[i - 1] == b[j - 2]
                and a[i - 2] == b[j - 1]
            ):
                current[j] = min(current[j], previous_previous[j - 2] + 1)
        previous_previous, previous = previous, current
    return previous[len(b)]


def similarity(a: str, b: str) -> float:
    """1 - distance / longer length, in [0, 1]."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - osa_distance(a, b) / longest
