"""crawlview: query crawled media libraries with s-expression searches."""

__version__ = "0.1.0"
