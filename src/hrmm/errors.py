"""Exception hierarchy shared by the hrmm pipeline."""

from typing import Optional


class HrmmError(Exception):
    """Base class for every error raised by hrmm."""
    pass


class InvariantViolation(HrmmError):
    """Raised when a model instance would break one of its invariants."""
    pass


class ParseError(HrmmError):
    """Raised when exposition text is malformed.

    Attributes:
        line: 1-based line number of the offending line
        reason: Human-readable description of the problem
    """

    def __init__(self, line: int, reason: str):
        super().__init__(f"line {line}: {reason}")
        self.line = line
        self.reason = reason


class FetchError(HrmmError):
    """Base class for failures while collecting metrics from one URL."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class NetworkError(FetchError):
    """Connection, DNS, timeout or other transport failure."""
    pass


class HTTPStatusError(FetchError):
    """The endpoint answered with a status other than 200."""

    def __init__(self, url: str, status_code: int, message: Optional[str] = None):
        super().__init__(
            url, message or f"received non-200 status code {status_code} from {url}"
        )
        self.status_code = status_code


class FetchParseError(FetchError):
    """The response body is not valid exposition text."""

    def __init__(self, url: str, parse_error: ParseError):
        super().__init__(url, f"failed to parse metrics from {url}: {parse_error}")
        self.parse_error = parse_error
