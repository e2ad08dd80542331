"""SQLite-backed crawl queue, index and lens records, and search-box state for a personal search engine."""

__version__ = "0.1.0"