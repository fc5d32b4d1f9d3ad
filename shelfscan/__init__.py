"""
ShelfScan

Turns a bookshelf photo into a deduplicated, corrected list of books and
resolves each one against Open Library.
"""

__version__ = "1.0.0"
