"""
Response parsing for the vision service.

The service is asked for bare JSON but frequently wraps it in a markdown
code fence; the fence is stripped before decoding.
"""

import json
import re
from typing import Any

from shelfscan.exceptions import MalformedResponseError
from shelfscan.models import UNKNOWN_AUTHOR, IdentifiedBook, Overview, RawDetection


_OPENING_FENCE = re.compile(r"^```[a-zA-Z]*[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?```\s*$")


def strip_code_fence(text: str) -> str:
    """Remove a leading ```/```json fence and a trailing ``` fence."""
    text = (text or "").strip()
    if text.startswith("```"):
        text = _OPENING_FENCE.sub("", text, count=1)
        text = _CLOSING_FENCE.sub("", text, count=1)
    return text.strip()


def parse_json_payload(raw: str) -> Any:
    """Decode a service response, raising MalformedResponseError if it is not JSON."""
    text = strip_code_fence(raw)
    if not text:
        raise MalformedResponseError("Empty response from vision service", raw=raw)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Response is not valid JSON: {e}", raw=raw) from e


def _expect_book_list(payload: Any, raw: str) -> list[dict]:
    if not isinstance(payload, list):
        raise MalformedResponseError(
            f"Expected a JSON array, got {type(payload).__name__}", raw=raw
        )
    for entry in payload:
        if not isinstance(entry, dict):
            raise MalformedResponseError(
                f"Expected an array of objects, found {type(entry).__name__}", raw=raw
            )
        title = entry.get("title")
        if title is not None and not isinstance(title, str):
            raise MalformedResponseError("Book title must be a string", raw=raw)
    return payload


def parse_overview(raw: str) -> Overview:
    """Parse the overview pass: {"count", "shelves", "notes"}."""
    payload = parse_json_payload(raw)
    if not isinstance(payload, dict):
        raise MalformedResponseError("Expected a JSON object for the overview", raw=raw)
    try:
        return Overview.from_dict(payload)
    except (TypeError, ValueError) as e:
        raise MalformedResponseError(f"Overview fields are not numeric: {e}", raw=raw) from e


def parse_detections(raw: str, region_label: str = "") -> list[RawDetection]:
    """Parse one region's identification array."""
    entries = _expect_book_list(parse_json_payload(raw), raw)
    detections = []
    for entry in entries:
        author = entry.get("author")
        detections.append(RawDetection(
            title=entry.get("title") or "",
            author=author if isinstance(author, str) else UNKNOWN_AUTHOR,
            confidence=str(entry.get("confidence") or ""),
            region_label=region_label,
        ))
    return detections


def parse_books(raw: str) -> list[IdentifiedBook]:
    """Parse the correction pass, dropping entries left without a title."""
    entries = _expect_book_list(parse_json_payload(raw), raw)
    books = [IdentifiedBook.from_dict(entry) for entry in entries]
    return [book for book in books if book.title]
