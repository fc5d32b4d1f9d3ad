"""
Cross-region deduplication.

Overlapping Regions report the same spine more than once; entries are merged
on a normalized title, keeping the most confident copy.
"""

import re
from typing import Iterable, Union

from shelfscan.models import IdentifiedBook, RawDetection, confidence_rank


_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_title(title: str) -> str:
    """Lowercase and drop every non-alphanumeric character."""
    return _NON_ALNUM.sub("", (title or "").lower())


def deduplicate(
    detections: Iterable[Union[RawDetection, IdentifiedBook]],
) -> list[IdentifiedBook]:
    """
    Merge detections into one IdentifiedBook per normalized title.

    Single forward pass: a later entry replaces the kept one only when its
    confidence rank is strictly higher, so ties keep the first seen.
    Entries whose title normalizes to "" are dropped.
    """
    best: dict[str, Union[RawDetection, IdentifiedBook]] = {}

    for detection in detections:
        key = normalize_title(detection.title)
        if not key:
            continue

        existing = best.get(key)
        if existing is None or (
            confidence_rank(detection.confidence) > confidence_rank(existing.confidence)
        ):
            best[key] = detection

    return [
        entry.to_book() if isinstance(entry, RawDetection) else entry
        for entry in best.values()
    ]
