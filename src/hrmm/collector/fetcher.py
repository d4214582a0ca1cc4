"""HTTP collection of metrics from a Prometheus exposition endpoint."""

import logging
from typing import Iterable, List, Optional

import httpx

from ..errors import FetchParseError, HTTPStatusError, NetworkError, ParseError
from ..filtering import select
from ..model import SelectedSample
from ..parser import parse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds
MAX_REDIRECTS = 10

# Only the text format is parsed, so ask for it explicitly.
ACCEPT_HEADER = "text/plain;version=0.0.4;q=1.0,*/*;q=0.1"


class MetricsFetcher:
    """Fetches exposition text over HTTP and selects samples from it.

    A fetcher only carries transport settings. Filters are passed to every
    call, so one fetcher can serve concurrent calls with different filters.
    Nothing is cached between calls and no request is retried.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the fetcher.

        Args:
            timeout: Network timeout in seconds for connect, read and write
            transport: Optional httpx transport, e.g. a MockTransport in tests
        """
        self.timeout = timeout
        self.transport = transport

    def _client(self, redirects: List[httpx.Response]) -> httpx.Client:
        def record_redirect(response: httpx.Response) -> None:
            if response.is_redirect:
                redirects.append(response)
                logger.debug(
                    f"Following {response.status_code} redirect from {response.url} "
                    f"to {response.headers['location']}"
                )

        client_kwargs = {
            "timeout": self.timeout,
            "follow_redirects": True,
            "max_redirects": MAX_REDIRECTS,
            "event_hooks": {"response": [record_redirect]},
        }
        if self.transport is not None:
            client_kwargs["transport"] = self.transport
        return httpx.Client(**client_kwargs)

    def fetch_text(self, url: str) -> str:
        """Issue a GET, following redirects, and return the body of a 200 response.

        A redirect without a ``Location`` header ends the chain, so its 3xx
        status is reported like any other non-200 status.

        Raises:
            NetworkError: On connection, DNS, timeout or protocol failure
            HTTPStatusError: When the final status code is not 200, or when
                more than MAX_REDIRECTS redirects are chained
        """
        logger.debug(f"Fetching metrics from {url}")
        redirects: List[httpx.Response] = []
        try:
            with self._client(redirects) as client:
                response = client.get(url, headers={"Accept": ACCEPT_HEADER})
                body = response.text
        except httpx.TooManyRedirects as exc:
            logger.warning(f"Too many redirects fetching {url}")
            raise HTTPStatusError(
                url,
                redirects[-1].status_code,
                f"stopped after {MAX_REDIRECTS} redirects fetching metrics from {url}",
            ) from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            logger.warning(f"Network error fetching {url}: {exc}")
            raise NetworkError(url, f"failed to fetch metrics from {url}: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            logger.warning(f"Received status {response.status_code} from {url}")
            raise HTTPStatusError(url, response.status_code)

        content_type = response.headers.get("content-type", "")
        media_type = content_type.split(";", 1)[0].strip().lower()
        if media_type != "text/plain":
            logger.warning(
                f"Unexpected Content-Type {content_type!r} from {url}, parsing as text format"
            )

        logger.debug(f"Received {len(body)} characters from {url}")
        return body

    def fetch(
        self,
        url: str,
        name_filters: Iterable[str] = (),
        label_filters: Iterable[str] = (),
    ) -> List[SelectedSample]:
        """Fetch, parse and filter the metrics exposed at ``url``.

        Raises:
            NetworkError: On transport failure
            HTTPStatusError: When the status code is not 200
            FetchParseError: When the body is not valid exposition text; the
                parser's error is available as ``parse_error``
        """
        text = self.fetch_text(url)
        try:
            families = parse(text)
        except ParseError as exc:
            logger.warning(f"Failed to parse metrics from {url}: {exc}")
            raise FetchParseError(url, exc) from exc
        return select(families, name_filters, label_filters)


def fetch(
    url: str,
    name_filters: Iterable[str] = (),
    label_filters: Iterable[str] = (),
    timeout: float = DEFAULT_TIMEOUT,
) -> List[SelectedSample]:
    """Fetch and filter the metrics of one endpoint with a throwaway fetcher."""
    return MetricsFetcher(timeout=timeout).fetch(url, name_filters, label_filters)
