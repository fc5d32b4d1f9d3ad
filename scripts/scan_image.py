"""
Run the full identification pipeline on a local photo.

Usage:
    python scripts/scan_image.py path/to/shelf.jpg [--lookup]
"""

import argparse
import asyncio
import json
import mimetypes
import os
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

from shelfscan.classification.client import VisionClassifier, create_vision_client
from shelfscan.identification.openlibrary import OpenLibraryClient
from shelfscan.identification.resolver import BibliographicResolver
from shelfscan.pipeline.orchestrator import IdentificationPipeline


async def run(image_path: Path, lookup: bool, timeout: float):
    vision_client = create_vision_client(
        os.getenv("OPENAI_API_KEY"),
        model=os.getenv("VISION_MODEL", "gpt-4o"),
    )
    pipeline = IdentificationPipeline(VisionClassifier(vision_client), timeout_seconds=timeout)

    mime_type = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"
    try:
        result = await pipeline.identify(image_path.read_bytes(), mime_type)
    finally:
        await vision_client.close()

    output = result.to_dict()
    logger.info(
        f"{len(result.books)} books, {result.region_count} region(s), "
        f"{result.raw_detection_count} raw detections, {result.corrections} corrections"
    )

    if lookup:
        catalog = OpenLibraryClient()
        try:
            enriched = await BibliographicResolver(catalog).resolve(result.books)
        finally:
            await catalog.close()
        output["books"] = [book.to_dict() for book in enriched]

    print(json.dumps(output, indent=2))


def main():
    parser = argparse.ArgumentParser(description="Identify books in a shelf photo")
    parser.add_argument("image", type=Path, help="Path to the photo")
    parser.add_argument("--lookup", action="store_true", help="Resolve books against Open Library")
    parser.add_argument("--timeout", type=float, default=120.0, help="Pipeline budget in seconds")
    args = parser.parse_args()

    asyncio.run(run(args.image, args.lookup, args.timeout))


if __name__ == "__main__":
    main()
