"""Metric collection from HTTP endpoints."""

from .fetcher import DEFAULT_TIMEOUT, MAX_REDIRECTS, MetricsFetcher, fetch

__all__ = ["DEFAULT_TIMEOUT", "MAX_REDIRECTS", "MetricsFetcher", "fetch"]
