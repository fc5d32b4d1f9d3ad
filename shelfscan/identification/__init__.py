"""
Book Identification Module

Resolves identified books against Open Library and enriches metadata.
"""

from shelfscan.identification.matching import (
    authors_match,
    is_knockoff,
    titles_overlap,
    strip_subtitle,
)
from shelfscan.identification.openlibrary import (
    OpenLibraryClient,
    SearchDocument,
)
from shelfscan.identification.resolver import (
    BibliographicResolver,
    SearchStrategy,
    DEFAULT_STRATEGIES,
    build_enriched_book,
)

__all__ = [
    # Matching
    "authors_match",
    "is_knockoff",
    "titles_overlap",
    "strip_subtitle",
    # Catalog
    "OpenLibraryClient",
    "SearchDocument",
    # Resolver
    "BibliographicResolver",
    "SearchStrategy",
    "DEFAULT_STRATEGIES",
    "build_enriched_book",
]
