"""
Core data types shared by the identification pipeline and the resolver.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


UNKNOWN_AUTHOR = "Unknown"


class Confidence(str, Enum):
    """How readable a book was in the photo."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self.value]

    @classmethod
    def parse(cls, value) -> "Confidence":
        """Coerce free-form service output, unknown values become LOW."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.LOW


_CONFIDENCE_RANK = {"high": 3, "medium": 2, "low": 1}


def confidence_rank(value) -> int:
    """Rank a raw confidence value; anything unrecognized ranks below low."""
    if isinstance(value, Confidence):
        return value.rank
    return _CONFIDENCE_RANK.get(str(value).strip().lower(), 0) if value is not None else 0


def _clean_author(author) -> str:
    if not isinstance(author, str) or not author.strip():
        return UNKNOWN_AUTHOR
    return author.strip()


@dataclass
class IdentifiedBook:
    """A book read off the shelf photo."""

    title: str
    author: str = UNKNOWN_AUTHOR
    confidence: Confidence = Confidence.LOW
    corrected: bool = False

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "author": self.author,
            "confidence": self.confidence.value,
            "corrected": self.corrected,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IdentifiedBook":
        title = data.get("title")
        return cls(
            title=title.strip() if isinstance(title, str) else "",
            author=_clean_author(data.get("author")),
            confidence=Confidence.parse(data.get("confidence")),
            corrected=bool(data.get("corrected", False)),
        )


@dataclass
class RawDetection:
    """
    One book as reported for a single Region.

    The raw confidence string is kept so that unrecognized values rank
    below "low" when duplicates are merged.
    """

    title: str
    author: str = UNKNOWN_AUTHOR
    confidence: str = "low"
    region_label: str = ""

    @property
    def rank(self) -> int:
        return confidence_rank(self.confidence)

    def to_book(self) -> IdentifiedBook:
        return IdentifiedBook(
            title=self.title.strip(),
            author=_clean_author(self.author),
            confidence=Confidence.parse(self.confidence),
        )


@dataclass
class Overview:
    """Coarse count of the whole photo, used to size the grid and as a hint."""

    estimated_count: int = 0
    estimated_shelves: int = 1
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "count": self.estimated_count,
            "shelves": self.estimated_shelves,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Overview":
        return cls(
            estimated_count=int(data.get("count") or 0),
            estimated_shelves=int(data.get("shelves") or 1),
            notes=str(data.get("notes") or ""),
        )


@dataclass(frozen=True)
class Region:
    """Rectangular sub-area of the source image with a positional label."""

    left: int
    top: int
    width: int
    height: int
    label: str

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    def contains(self, x: int, y: int) -> bool:
        return self.left <= x < self.right and self.top <= y < self.bottom


@dataclass
class EnrichedBook:
    """An IdentifiedBook after catalog resolution."""

    title: str
    author: str
    confidence: Confidence = Confidence.LOW
    corrected: bool = False

    isbn_13: str = ""
    isbn_10: str = ""
    cover_url: Optional[str] = None
    publish_year: Optional[int] = None
    publisher: str = ""
    page_count: Optional[int] = None
    subjects: str = ""

    matched: bool = False

    @classmethod
    def unmatched(cls, book: IdentifiedBook) -> "EnrichedBook":
        """Carry the original record through untouched."""
        return cls(
            title=book.title,
            author=book.author,
            confidence=book.confidence,
            corrected=book.corrected,
            matched=False,
        )

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "author": self.author,
            "confidence": self.confidence.value,
            "corrected": self.corrected,
            "isbn_13": self.isbn_13,
            "isbn_10": self.isbn_10,
            "cover_url": self.cover_url,
            "publish_year": self.publish_year,
            "publisher": self.publisher,
            "page_count": self.page_count,
            "subjects": self.subjects,
            "matched": self.matched,
        }


@dataclass
class IdentificationResult:
    """Final output of one pipeline run."""

    books: list[IdentifiedBook] = field(default_factory=list)
    overview: Optional[Overview] = None

    # Diagnostics
    region_count: int = 0
    raw_detection_count: int = 0
    corrections: int = 0
    processing_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "books": [book.to_dict() for book in self.books],
            "overview": self.overview.to_dict() if self.overview else None,
        }
