"""hrmm: ingest, filter and re-serialize Prometheus exposition metrics."""

__version__ = "0.1.0"

from .collector import MetricsFetcher, fetch
from .errors import (
    FetchError,
    FetchParseError,
    HrmmError,
    HTTPStatusError,
    InvariantViolation,
    NetworkError,
    ParseError,
)
from .filtering import select
from .model import MetricFamily, MetricSample, MetricType, SelectedSample
from .parser import parse
from .serialization import serialize, serialize_json, serialize_structured, serialize_text

__all__ = [
    "FetchError",
    "FetchParseError",
    "HTTPStatusError",
    "HrmmError",
    "InvariantViolation",
    "MetricFamily",
    "MetricSample",
    "MetricType",
    "MetricsFetcher",
    "NetworkError",
    "ParseError",
    "SelectedSample",
    "fetch",
    "parse",
    "select",
    "serialize",
    "serialize_json",
    "serialize_structured",
    "serialize_text",
]
