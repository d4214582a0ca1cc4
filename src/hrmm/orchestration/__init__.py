"""Multi-endpoint collection."""

from .batch_fetcher import BatchFetcher, FetchResult

__all__ = ["BatchFetcher", "FetchResult"]
