"""
API Schemas for ShelfScan

Pydantic models for request validation and response serialization.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shelfscan.models import (
    UNKNOWN_AUTHOR,
    Confidence,
    EnrichedBook,
    IdentificationResult,
    IdentifiedBook,
    Overview,
)


# =============================================================================
# Book Schemas
# =============================================================================

class BookSchema(BaseModel):
    """An identified book as returned by /scan and accepted by /lookup."""

    title: str = Field(..., max_length=500)
    author: str = Field(UNKNOWN_AUTHOR, max_length=300)
    confidence: Confidence = Confidence.LOW
    corrected: bool = False

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Dune",
                "author": "Frank Herbert",
                "confidence": "high",
                "corrected": False,
            }
        }
    )

    @field_validator("title", mode="before")
    @classmethod
    def handle_null_title(cls, v):
        """Manually added books may arrive without a title; they resolve as unmatched."""
        return "" if v is None else v

    @field_validator("author", mode="before")
    @classmethod
    def handle_blank_author(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return UNKNOWN_AUTHOR
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def handle_free_form_confidence(cls, v):
        return Confidence.parse(v)

    @classmethod
    def from_book(cls, book: IdentifiedBook) -> "BookSchema":
        return cls(**book.to_dict())

    def to_book(self) -> IdentifiedBook:
        return IdentifiedBook.from_dict(self.model_dump(mode="json"))


class EnrichedBookSchema(BookSchema):
    """A book after catalog lookup."""

    isbn_13: str = ""
    isbn_10: str = ""
    cover_url: Optional[str] = None
    publish_year: Optional[int] = None
    publisher: str = ""
    page_count: Optional[int] = None
    subjects: str = ""
    matched: bool = False

    @classmethod
    def from_enriched(cls, book: EnrichedBook) -> "EnrichedBookSchema":
        return cls(**book.to_dict())


class OverviewSchema(BaseModel):
    """Coarse count of the photo."""

    count: int
    shelves: int
    notes: str = ""

    @classmethod
    def from_overview(cls, overview: Overview) -> "OverviewSchema":
        return cls(**overview.to_dict())


# =============================================================================
# Scan / Lookup
# =============================================================================

class ScanResponse(BaseModel):
    """Result of identifying books in one photo."""

    books: list[BookSchema] = Field(default_factory=list)
    overview: Optional[OverviewSchema] = None

    @classmethod
    def from_result(cls, result: IdentificationResult) -> "ScanResponse":
        return cls(
            books=[BookSchema.from_book(book) for book in result.books],
            overview=OverviewSchema.from_overview(result.overview) if result.overview else None,
        )


class LookupRequest(BaseModel):
    """Books to resolve against the catalog."""

    books: list[BookSchema]


class LookupResponse(BaseModel):
    """Resolved books, same length and order as the request."""

    books: list[EnrichedBookSchema]


# =============================================================================
# System
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    components: dict[str, str] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error body."""

    error: str
    code: str
    detail: Optional[str] = None
    timestamp: str
