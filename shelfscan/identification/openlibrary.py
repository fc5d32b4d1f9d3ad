"""
Open Library Search Client

Thin async client over the Open Library search API.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from loguru import logger

from shelfscan.exceptions import CatalogSearchError


SEARCH_FIELDS = (
    "title,author_name,isbn,cover_i,first_publish_year,"
    "publisher,number_of_pages_median,subject"
)


@dataclass
class SearchDocument:
    """One ranked document from a catalog search."""

    title: Optional[str] = None
    author_names: list[str] = field(default_factory=list)
    isbns: list[str] = field(default_factory=list)
    cover_id: Optional[int] = None
    first_publish_year: Optional[int] = None
    publishers: list[str] = field(default_factory=list)
    median_page_count: Optional[int] = None
    subjects: list[str] = field(default_factory=list)

    @property
    def authors(self) -> str:
        return ", ".join(self.author_names)

    @property
    def isbn_13(self) -> str:
        return next((isbn for isbn in self.isbns if len(isbn) == 13), "")

    @property
    def isbn_10(self) -> str:
        return next((isbn for isbn in self.isbns if len(isbn) == 10), "")

    def cover_url(self, size: str = "M") -> Optional[str]:
        if not self.cover_id:
            return None
        return f"{OpenLibraryClient.COVERS_URL}/b/id/{self.cover_id}-{size}.jpg"

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> "SearchDocument":
        """Parse a raw search.json document."""
        return cls(
            title=doc.get("title"),
            author_names=list(doc.get("author_name") or []),
            isbns=[str(isbn) for isbn in doc.get("isbn") or []],
            cover_id=doc.get("cover_i"),
            first_publish_year=doc.get("first_publish_year"),
            publishers=list(doc.get("publisher") or []),
            median_page_count=doc.get("number_of_pages_median"),
            subjects=list(doc.get("subject") or []),
        )


class OpenLibraryClient:
    """
    Client for the Open Library search API.

    Open Library is a free, open-source library catalog.
    Rate limits: Be respectful, no official limit but don't abuse.
    """

    BASE_URL = "https://openlibrary.org"
    COVERS_URL = "https://covers.openlibrary.org"

    def __init__(
        self,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def search(self, query: str, limit: int = 5) -> list[SearchDocument]:
        """
        General free-text search.

        Args:
            query: Search query string
            limit: Maximum number of results to return

        Returns:
            Documents in relevance order
        """
        return await self._search({"q": query}, limit)

    async def search_by_title(self, title: str, limit: int = 5) -> list[SearchDocument]:
        """Search scoped to the title field."""
        return await self._search({"title": title}, limit)

    async def _search(self, params: dict[str, Any], limit: int) -> list[SearchDocument]:
        client = await self._get_client()
        params = {**params, "limit": limit, "fields": SEARCH_FIELDS}

        try:
            response = await client.get("/search.json", params=params)
        except httpx.HTTPError as e:
            logger.warning(f"OpenLibrary search failed: {e}")
            raise CatalogSearchError(str(e)) from e

        if response.status_code != 200:
            logger.warning(f"OpenLibrary API error {response.status_code} for {params}")
            raise CatalogSearchError(f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise CatalogSearchError(f"Invalid JSON: {e}") from e

        docs = data.get("docs") or []
        return [SearchDocument.from_doc(doc) for doc in docs[:limit] if isinstance(doc, dict)]

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
