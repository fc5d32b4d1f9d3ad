"""
Lookup API Routes

Resolves identified books against Open Library.
"""

from fastapi import APIRouter, Depends

from shelfscan.api.dependencies import get_resolver
from shelfscan.api.schemas import (
    EnrichedBookSchema,
    ErrorResponse,
    LookupRequest,
    LookupResponse,
)
from shelfscan.identification.resolver import BibliographicResolver


router = APIRouter(prefix="/lookup", tags=["lookup"])


@router.post(
    "",
    response_model=LookupResponse,
    responses={400: {"model": ErrorResponse, "description": "books must be an array"}},
)
async def lookup_books(
    request: LookupRequest,
    resolver: BibliographicResolver = Depends(get_resolver),
) -> LookupResponse:
    """
    Attach ISBNs and metadata to each book.

    Always returns one entry per input book, in order; unresolved books
    come back with matched=false.
    """
    books = [book.to_book() for book in request.books]
    enriched = await resolver.resolve(books)
    return LookupResponse(
        books=[EnrichedBookSchema.from_enriched(book) for book in enriched],
    )
