"""
Jikan API package initialization.

This package contains:
- `client`: rate-limited, retrying API client with one method per catalog endpoint
- `library`: favorites/recents store over a pluggable key-value storage
- `collect_data`: data collection script
- `analyze_anime`: data analysis script
- `data`: bundled sample data
"""

from .client import JikanClient, JikanError, TopFilter, empty_listing, extract_item, extract_listing
from .library import AnimeLibrary, JsonFileStorage, LibraryError, MemoryStorage

__all__ = [
    "AnimeLibrary",
    "JikanClient",
    "JikanError",
    "JsonFileStorage",
    "LibraryError",
    "MemoryStorage",
    "TopFilter",
    "empty_listing",
    "extract_item",
    "extract_listing",
]
