"""Concurrent collection from several endpoints."""

import concurrent.futures
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from ..collector import MetricsFetcher
from ..errors import FetchError
from ..model import SelectedSample
from ..utils.config_validator import HrmmConfig, load_config

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Outcome of collecting one URL: either samples or an error."""

    url: str
    samples: List[SelectedSample] = field(default_factory=list)
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchFetcher:
    """Fetches every configured URL in parallel with the configured filters.

    One URL failing never stops the others: its error is recorded in its
    FetchResult and the batch carries on. Results come back in the order
    the URLs were configured.
    """

    def __init__(self, config: HrmmConfig, transport: Optional[httpx.BaseTransport] = None):
        """Initialize the batch fetcher.

        Args:
            config: Validated configuration with URLs and filters
            transport: Optional httpx transport shared by all requests
        """
        self.config = config
        self.fetcher = MetricsFetcher(timeout=config.timeout_s, transport=transport)

    def fetch_one(self, url: str) -> FetchResult:
        try:
            samples = self.fetcher.fetch(url, self.config.metrics, self.config.labels)
        except FetchError as exc:
            logger.warning(f"Fetching {url} failed: {exc}")
            return FetchResult(url=url, error=exc)
        logger.debug(f"Fetched {len(samples)} samples from {url}")
        return FetchResult(url=url, samples=samples)

    def run(self) -> List[FetchResult]:
        """Fetch all URLs and return one result per URL, in configured order."""
        urls = self.config.urls
        workers = max(1, min(self.config.max_workers, len(urls)))

        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self.fetch_one, url) for url in urls]
            results = [future.result() for future in futures]

        failed = sum(1 for result in results if not result.ok)
        logger.info(f"Fetched {len(results)} URLs ({failed} failed)")
        return results

    @classmethod
    def from_config_file(cls, config_path: str) -> "BatchFetcher":
        """Create a batch fetcher from a YAML or JSON configuration file."""
        return cls(load_config(config_path))
