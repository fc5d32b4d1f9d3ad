"""
Candidate filters for catalog matching.

Cheap word-level heuristics, applied in the catalog's relevance order.
Common surnames can pass the author check for unrelated people.
"""

import math
import re

from shelfscan.models import UNKNOWN_AUTHOR


_NON_ALPHA = re.compile(r"[^a-z\s]")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_SUBTITLE_SEPARATORS = re.compile(r"[:—–\-]")

KNOCKOFF_PREFIXES = (
    # (result prefix, query prefix that exempts it)
    ("summary", "summary"),
    ("review", "review"),
    ("analysis of", "analysis"),
)


def _author_words(name: str) -> list[str]:
    return [w for w in _NON_ALPHA.sub("", name.lower()).split() if len(w) > 2]


def _title_words(title: str) -> list[str]:
    return [w for w in _NON_ALNUM.sub("", title.lower()).split() if len(w) > 2]


def _substring_either_way(a: str, b: str) -> bool:
    return a in b or b in a


def authors_match(expected: str, candidate: str) -> bool:
    """
    Check if two author strings are a plausible match.

    Passes when the expected author is unknown (nothing to verify), when
    the last significant words agree, or when at least half of the expected
    words appear as substrings of candidate words (either direction).
    """
    if not expected or expected == UNKNOWN_AUTHOR or not candidate:
        return True

    expected_words = _author_words(expected)
    candidate_words = _author_words(candidate)

    if not expected_words:
        return True

    if candidate_words and expected_words[-1] == candidate_words[-1]:
        return True

    matches = sum(
        1 for ew in expected_words
        if any(_substring_either_way(ew, cw) for cw in candidate_words)
    )
    return matches >= math.ceil(len(expected_words) / 2)


def is_knockoff(result_title: str, query_title: str) -> bool:
    """True for summaries/reviews/analyses of a work, unless that is what was asked for."""
    result = (result_title or "").lower()
    query = (query_title or "").lower()
    return any(
        result.startswith(prefix) and not query.startswith(exempt)
        for prefix, exempt in KNOCKOFF_PREFIXES
    )


def titles_overlap(query: str, candidate_title: str) -> bool:
    """At least one significant query word must overlap a candidate title word."""
    query_words = _title_words(query or "")
    if not query_words:
        return True
    title_words = _title_words(candidate_title or "")
    return any(
        _substring_either_way(qw, tw)
        for qw in query_words
        for tw in title_words
    )


def strip_subtitle(title: str) -> str:
    """Keep the part of a title before the first ':', dash or hyphen."""
    return _SUBTITLE_SEPARATORS.split(title or "", maxsplit=1)[0].strip()
