"""
Bibliographic Resolver

Resolves identified books against the catalog with an ordered cascade of
search strategies. The first candidate that passes every active filter is
accepted; a book that exhausts the cascade comes back with matched=False.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from loguru import logger

from shelfscan.identification.matching import (
    authors_match,
    is_knockoff,
    strip_subtitle,
    titles_overlap,
)
from shelfscan.identification.openlibrary import OpenLibraryClient, SearchDocument
from shelfscan.models import UNKNOWN_AUTHOR, EnrichedBook, IdentifiedBook


@dataclass(frozen=True)
class SearchStrategy:
    """One step of the cascade: how to build the query and which filters apply."""

    name: str
    build_query: Callable[[IdentifiedBook], str]
    use_author_filter: bool = True
    title_field: bool = False


def _title_and_author(book: IdentifiedBook) -> str:
    author = book.author if book.author != UNKNOWN_AUTHOR else ""
    return f"{book.title} {author}".strip()


def _title(book: IdentifiedBook) -> str:
    return book.title


def _short_title(book: IdentifiedBook) -> str:
    return strip_subtitle(book.title)


DEFAULT_STRATEGIES: tuple[SearchStrategy, ...] = (
    SearchStrategy("title+author", _title_and_author),
    SearchStrategy("title", _title),
    SearchStrategy("title-field", _title, title_field=True),
    SearchStrategy("short-title", _short_title),
    SearchStrategy("title-field-any-author", _title, use_author_filter=False, title_field=True),
    SearchStrategy("short-title-any-author", _short_title, use_author_filter=False),
)


MIN_QUERY_LENGTH = 2
MAX_SUBJECTS = 3


def build_enriched_book(doc: SearchDocument, book: IdentifiedBook) -> EnrichedBook:
    """Build an enriched record from a catalog document, falling back to the original."""
    return EnrichedBook(
        title=doc.title or book.title,
        author=doc.authors or book.author,
        confidence=book.confidence,
        corrected=book.corrected,
        isbn_13=doc.isbn_13,
        isbn_10=doc.isbn_10,
        cover_url=doc.cover_url(),
        publish_year=doc.first_publish_year,
        publisher=doc.publishers[0] if doc.publishers else "",
        page_count=doc.median_page_count,
        subjects=", ".join(doc.subjects[:MAX_SUBJECTS]),
        matched=True,
    )


class BibliographicResolver:
    """
    Cascading catalog lookup.

    Usage:
        resolver = BibliographicResolver(OpenLibraryClient())
        enriched = await resolver.resolve(books)
        assert len(enriched) == len(books)
    """

    def __init__(
        self,
        client: OpenLibraryClient,
        strategies: Optional[Sequence[SearchStrategy]] = None,
        result_limit: int = 5,
        max_concurrency: Optional[int] = None,
    ):
        """
        Initialize the resolver.

        Args:
            client: Catalog search client
            strategies: Ordered cascade (defaults to DEFAULT_STRATEGIES)
            result_limit: Documents inspected per search
            max_concurrency: Bound on books resolved at once (None = unbounded)
        """
        self.client = client
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES
        self.result_limit = result_limit
        self.max_concurrency = max_concurrency

    def accept(
        self,
        doc: SearchDocument,
        book: IdentifiedBook,
        query: str,
        strategy: SearchStrategy,
    ) -> bool:
        """Apply the knockoff, author and title-overlap filters to one candidate."""
        if is_knockoff(doc.title, book.title):
            return False
        if strategy.use_author_filter and not authors_match(book.author, doc.authors):
            return False
        return titles_overlap(query, doc.title)

    async def _search(self, query: str, strategy: SearchStrategy) -> list[SearchDocument]:
        if strategy.title_field:
            return await self.client.search_by_title(query, self.result_limit)
        return await self.client.search(query, self.result_limit)

    async def resolve_one(self, book: IdentifiedBook) -> EnrichedBook:
        """Run the cascade for one book. Never raises for search failures."""
        for strategy in self.strategies:
            query = strategy.build_query(book)
            if not query or len(query) < MIN_QUERY_LENGTH:
                continue

            try:
                docs = await self._search(query, strategy)
            except Exception as e:
                logger.warning(f"Strategy '{strategy.name}' failed for '{book.title}': {e}")
                continue

            for doc in docs:
                if self.accept(doc, book, query, strategy):
                    logger.debug(f"Matched '{book.title}' via {strategy.name} -> '{doc.title}'")
                    return build_enriched_book(doc, book)

        logger.info(f"No catalog match for '{book.title}' by {book.author}")
        return EnrichedBook.unmatched(book)

    async def resolve(self, books: Sequence[IdentifiedBook]) -> list[EnrichedBook]:
        """
        Resolve every book concurrently.

        The result has the same length and order as the input.
        """
        if not books:
            return []

        if self.max_concurrency:
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def bounded(book: IdentifiedBook) -> EnrichedBook:
                async with semaphore:
                    return await self.resolve_one(book)

            results = await asyncio.gather(*(bounded(book) for book in books))
        else:
            results = await asyncio.gather(*(self.resolve_one(book) for book in books))

        matched = sum(1 for result in results if result.matched)
        logger.info(f"Lookup -> {matched}/{len(results)} matched")
        return list(results)
