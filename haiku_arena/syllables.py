"""Heuristic syllable counting for real-time 5-7-5 feedback. Not a linguistic scorer."""

import re

HAIKU_PATTERN: tuple[int, int, int] = (5, 7, 5)

_NON_LETTERS = re.compile(r"[^a-z\s]")
_VOWEL_RUNS = re.compile(r"[aeiouy]+")


def estimate(line: str) -> int:
    """Estimate the syllables in a single line of text.

    Each word counts its vowel runs, drops one for a trailing silent 'e'
    (not 'le', and only when more than one run was found) and counts at
    least one. Blank input returns 0.
    """
    words = _NON_LETTERS.sub("", line.lower()).split()
    total = 0
    for word in words:
        count = len(_VOWEL_RUNS.findall(word))
        if word.endswith("e") and not word.endswith("le") and count > 1:
            count -= 1
        if count == 0:
            count = 1
        total += count
    return total


def draft_counts(draft: str) -> tuple[int, int, int]:
    """Per-line counts for the first three lines of a draft; missing lines count 0."""
    counts = [estimate(line) for line in draft.split("\n")[:3]]
    counts += [0] * (3 - len(counts))
    return counts[0], counts[1], counts[2]


def line_status(count: int, target: int) -> str:
    """Classify a line count against its target: 'over', 'correct' or 'under'."""
    if count > target:
        return "over"
    if count == target:
        return "correct"
    return "under"
