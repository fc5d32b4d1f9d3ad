"""
Test script for catalog lookup.

Verifies that the BibliographicResolver finds typical vision output
on the live Open Library API.
"""

import asyncio

from dotenv import load_dotenv

# Load env vars
load_dotenv()

from shelfscan.identification.openlibrary import OpenLibraryClient
from shelfscan.identification.resolver import BibliographicResolver
from shelfscan.models import Confidence, IdentifiedBook

async def main():
    print("Initializing resolver...")
    client = OpenLibraryClient()
    resolver = BibliographicResolver(client)

    test_cases = [
        IdentifiedBook("Dune", "Frank Herbert", Confidence.HIGH),
        IdentifiedBook("Moon Take a Hike Seattle: Hikes Within Two Hours", "Unknown", Confidence.MEDIUM),
        IdentifiedBook("Summary of Atomic Habits", "James Clear", Confidence.LOW),
        IdentifiedBook("Thinking, Fast and Slow", "D. Kahneman", Confidence.HIGH),
    ]

    print("\n--- Running Lookups ---\n")

    try:
        results = await resolver.resolve(test_cases)
    finally:
        await client.close()

    for book, result in zip(test_cases, results):
        print(f"Query: '{book.title}' by {book.author}")
        if result.matched:
            print(f"✅ Found: {result.title} by {result.author}")
            print(f"   ISBN-13: {result.isbn_13 or '-'}  Year: {result.publish_year or '-'}")
        else:
            print("❌ No match found")
        print("-" * 30)

if __name__ == "__main__":
    asyncio.run(main())
