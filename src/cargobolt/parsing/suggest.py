"""Edit-distance suggestions for a function path that was not found."""
from typing import List

from rapidfuzz.distance import Levenshtein

# Names further than this from the requested last path segment are not shown
MAX_SUGGESTION_DISTANCE = 4


def last_segment(path: str) -> str:
    return path.split(":")[-1]


def rank_suggestions(
    names: List[str],
    path: str,
    max_distance: int = MAX_SUGGESTION_DISTANCE,
) -> List[str]:
    """
    Order `names` by the edit distance of their last path segment to the last
    segment of `path` and keep those within `max_distance`.

    Ties keep the order of `names` (the sort is stable).
    """
    wanted = last_segment(path)
    scored = [(Levenshtein.distance(last_segment(n), wanted), n) for n in names]
    scored.sort(key=lambda pair: pair[0])
    return [name for distance, name in scored if distance <= max_distance]


def not_found_message(path: str, names: List[str], kind: str = "assembly") -> str:
    """The user-facing report for a missing function."""
    msg = f'could not find function at path "{path}" in the generated {kind}.\n'
    suggestions = rank_suggestions(names, path)
    if suggestions:
        msg += "Is it one of the following functions?\n\n"
        for name in suggestions:
            msg += f"  {name}\n"
    msg += (
        "\nTips:\n"
        "  * make sure that the function is present in the final binary "
        "(e.g. if it's a generic function, make sure that it is actually monomorphized)\n"
    )
    return msg
