"""Parser for the Prometheus text exposition format."""

import logging
import math
import re
from typing import Dict, List, Optional, Tuple

from ..errors import InvariantViolation, ParseError
from ..model import (
    HistogramBucket,
    MetricFamily,
    MetricSample,
    MetricType,
    SummaryQuantile,
)

logger = logging.getLogger(__name__)

METRIC_NAME_RE = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
LABEL_NAME_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
FLOAT_RE = re.compile(
    r"[+-]?(?:inf(?:inity)?|nan|(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?)", re.IGNORECASE
)
TIMESTAMP_RE = re.compile(r"[+-]?\d+")
META_LINE_RE = re.compile(r"#[ \t]*(HELP|TYPE)[ \t]+(\S+)(?:[ \t]+(.*))?$")

LABEL_ESCAPES = {"\\": "\\", '"': '"', "n": "\n"}

BLANKS = " \t"

SeriesKey = Tuple[Tuple[str, str], ...]


def parse_float(token: str) -> Optional[float]:
    """Parse a sample value, accepting NaN, +Inf, -Inf and exponents."""
    if not FLOAT_RE.fullmatch(token):
        return None
    return float(token)


def _unescape_help(text: str) -> str:
    out = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\" and i + 1 < len(text) and text[i + 1] in ("\\", "n"):
            out.append("\n" if text[i + 1] == "n" else "\\")
            i += 2
            continue
        out.append(char)
        i += 1
    return "".join(out)


class _SeriesBuilder:
    """Accumulates the lines that make up one sample of a family."""

    def __init__(self, labels: Dict[str, str], first_line: int):
        self.labels = labels
        self.first_line = first_line
        self.value: Optional[float] = None
        self.sample_count: Optional[int] = None
        self.sample_sum: Optional[float] = None
        self.buckets: Dict[float, int] = {}
        self.quantiles: Dict[float, float] = {}
        self.timestamp_ms: Optional[int] = None

    def build(self, metric_type: MetricType) -> MetricSample:
        if metric_type is MetricType.HISTOGRAM:
            buckets = None
            if self.buckets:
                buckets = tuple(
                    HistogramBucket(upper_bound=bound, cumulative_count=self.buckets[bound])
                    for bound in sorted(self.buckets)
                )
            return MetricSample(
                labels=self.labels,
                sample_count=self.sample_count,
                sample_sum=self.sample_sum,
                buckets=buckets,
                timestamp_ms=self.timestamp_ms,
            )

        if metric_type is MetricType.SUMMARY:
            quantiles = None
            if self.quantiles:
                quantiles = tuple(
                    SummaryQuantile(quantile=q, value=self.quantiles[q])
                    for q in sorted(self.quantiles)
                )
            return MetricSample(
                labels=self.labels,
                sample_count=self.sample_count,
                sample_sum=self.sample_sum,
                quantiles=quantiles,
                timestamp_ms=self.timestamp_ms,
            )

        return MetricSample(
            labels=self.labels, value=self.value, timestamp_ms=self.timestamp_ms
        )


class _FamilyBuilder:
    """Accumulates HELP, TYPE and series of one family."""

    def __init__(self, name: str):
        self.name = name
        self.help: Optional[str] = None
        self.declared_type: Optional[MetricType] = None
        self.series: Dict[SeriesKey, _SeriesBuilder] = {}

    @property
    def type(self) -> MetricType:
        return self.declared_type or MetricType.UNTYPED

    def series_for(self, labels: Dict[str, str], line_no: int) -> _SeriesBuilder:
        key = tuple(sorted(labels.items()))
        series = self.series.get(key)
        if series is None:
            series = _SeriesBuilder(labels, line_no)
            self.series[key] = series
        return series

    def build(self) -> MetricFamily:
        samples = []
        for series in self.series.values():
            try:
                samples.append(series.build(self.type))
            except InvariantViolation as exc:
                raise ParseError(series.first_line, f"{self.name}: {exc}") from exc
        return MetricFamily(
            name=self.name, help=self.help or "", type=self.type, samples=samples
        )


class TextParser:
    """Converts exposition text into a mapping of family name to MetricFamily.

    The parser is all-or-nothing: the first malformed line raises ParseError
    and no partial result is returned. A parser instance holds state for one
    document only; ``parse`` resets it on every call.
    """

    def __init__(self):
        self._families: Dict[str, _FamilyBuilder] = {}

    def parse(self, text: str) -> Dict[str, MetricFamily]:
        self._families = {}
        line_count = 0
        for line_no, raw_line in enumerate(text.split("\n"), 1):
            line_count = line_no
            line = raw_line.rstrip("\r").lstrip(BLANKS)
            if not line.strip():
                continue
            if line.startswith("#"):
                self._parse_comment(line, line_no)
            else:
                self._parse_sample_line(line, line_no)

        families = {name: builder.build() for name, builder in self._families.items()}
        logger.debug(
            f"Parsed {len(families)} families "
            f"({sum(len(f.samples) for f in families.values())} samples) "
            f"from {line_count} lines"
        )
        return families

    # ------------------------------------------------------------------
    # Comment lines
    # ------------------------------------------------------------------

    def _family(self, name: str) -> _FamilyBuilder:
        family = self._families.get(name)
        if family is None:
            family = _FamilyBuilder(name)
            self._families[name] = family
        return family

    def _parse_comment(self, line: str, line_no: int) -> None:
        match = META_LINE_RE.match(line)
        if not match:
            return

        keyword, name, rest = match.group(1), match.group(2), match.group(3) or ""
        if not METRIC_NAME_RE.fullmatch(name):
            raise ParseError(line_no, f"invalid metric name {name!r} in {keyword} line")

        family = self._family(name)
        if keyword == "HELP":
            if family.help is not None:
                raise ParseError(line_no, f"second HELP line for metric name {name}")
            family.help = _unescape_help(rest)
            return

        if family.declared_type is not None:
            raise ParseError(line_no, f"second TYPE line for metric name {name}")
        if family.series:
            raise ParseError(line_no, f"TYPE line for {name} after its samples")
        type_words = rest.split()
        if len(type_words) > 1:
            raise ParseError(line_no, f"unexpected text after type in TYPE line for {name}")
        type_keyword = type_words[0] if type_words else None
        family.declared_type = MetricType.from_keyword(type_keyword)

    # ------------------------------------------------------------------
    # Sample lines
    # ------------------------------------------------------------------

    def _parse_sample_line(self, line: str, line_no: int) -> None:
        match = METRIC_NAME_RE.match(line)
        if not match:
            raise ParseError(line_no, "invalid metric name")
        name = match.group(0)
        pos = match.end()

        labels: Dict[str, str] = {}
        pos = self._skip_blanks(line, pos)
        if pos < len(line) and line[pos] == "{":
            labels, pos = self._parse_labels(line, pos + 1, line_no)

        tokens = line[pos:].split()
        if not tokens:
            raise ParseError(line_no, f"missing value for {name}")
        if pos < len(line) and line[pos] not in BLANKS and pos == match.end():
            raise ParseError(line_no, f"invalid character {line[pos]!r} after metric name")
        if len(tokens) > 2:
            raise ParseError(line_no, f"unexpected content after value: {' '.join(tokens[2:])!r}")

        value = parse_float(tokens[0])
        if value is None:
            raise ParseError(line_no, f"unparsable value {tokens[0]!r}")

        timestamp_ms = None
        if len(tokens) == 2:
            if not TIMESTAMP_RE.fullmatch(tokens[1]):
                raise ParseError(line_no, f"invalid timestamp {tokens[1]!r}")
            timestamp_ms = int(tokens[1])

        self._add_sample(name, labels, value, timestamp_ms, line_no)

    @staticmethod
    def _skip_blanks(line: str, pos: int) -> int:
        while pos < len(line) and line[pos] in BLANKS:
            pos += 1
        return pos

    def _parse_labels(self, line: str, pos: int, line_no: int) -> Tuple[Dict[str, str], int]:
        """Parse a label block starting just after ``{``; return labels and the
        position after the closing ``}``."""
        labels: Dict[str, str] = {}
        while True:
            pos = self._skip_blanks(line, pos)
            if pos >= len(line):
                raise ParseError(line_no, "unbalanced braces: label block is not closed")
            if line[pos] == "}":
                return labels, pos + 1

            match = LABEL_NAME_RE.match(line, pos)
            if not match:
                raise ParseError(line_no, f"invalid label name at column {pos + 1}")
            label_name = match.group(0)
            pos = self._skip_blanks(line, match.end())
            if pos >= len(line) or line[pos] != "=":
                raise ParseError(line_no, f"expected '=' after label name {label_name}")
            pos = self._skip_blanks(line, pos + 1)
            if pos >= len(line) or line[pos] != '"':
                raise ParseError(line_no, f"expected '\"' to open value of label {label_name}")

            label_value, pos = self._parse_label_value(line, pos + 1, line_no, label_name)
            if label_name in labels:
                raise ParseError(line_no, f"duplicate label name {label_name}")
            labels[label_name] = label_value

            pos = self._skip_blanks(line, pos)
            if pos >= len(line):
                raise ParseError(line_no, "unbalanced braces: label block is not closed")
            if line[pos] == ",":
                pos += 1
            elif line[pos] != "}":
                raise ParseError(
                    line_no, f"unexpected character {line[pos]!r} in label block"
                )

    @staticmethod
    def _parse_label_value(line: str, pos: int, line_no: int, label_name: str) -> Tuple[str, int]:
        out: List[str] = []
        while pos < len(line):
            char = line[pos]
            if char == '"':
                return "".join(out), pos + 1
            if char == "\\":
                if pos + 1 >= len(line) or line[pos + 1] not in LABEL_ESCAPES:
                    raise ParseError(
                        line_no, f"invalid escape sequence in value of label {label_name}"
                    )
                out.append(LABEL_ESCAPES[line[pos + 1]])
                pos += 2
                continue
            out.append(char)
            pos += 1
        raise ParseError(line_no, f"unterminated value for label {label_name}")

    def _add_sample(
        self,
        name: str,
        labels: Dict[str, str],
        value: float,
        timestamp_ms: Optional[int],
        line_no: int,
    ) -> None:
        for suffix in ("_bucket", "_sum", "_count"):
            if not name.endswith(suffix):
                continue
            base = self._families.get(name[: -len(suffix)])
            if base is None:
                continue
            if suffix == "_bucket" and base.type is MetricType.HISTOGRAM:
                self._add_bucket(base, labels, value, timestamp_ms, line_no)
                return
            if suffix != "_bucket" and base.type in (MetricType.HISTOGRAM, MetricType.SUMMARY):
                self._add_aggregate(base, suffix, labels, value, timestamp_ms, line_no)
                return

        family = self._family(name)
        if family.type is MetricType.HISTOGRAM:
            raise ParseError(
                line_no, f"histogram {name} sample without _bucket, _sum or _count suffix"
            )
        if family.type is MetricType.SUMMARY:
            self._add_quantile(family, labels, value, timestamp_ms, line_no)
            return

        series = family.series_for(labels, line_no)
        if series.first_line != line_no:
            raise ParseError(line_no, f"duplicate sample for {series_identifier(name, labels)}")
        series.value = value
        series.timestamp_ms = timestamp_ms

    def _add_bucket(self, family, labels, value, timestamp_ms, line_no) -> None:
        if "le" not in labels:
            raise ParseError(line_no, f"{family.name}_bucket sample without le label")
        base_labels = dict(labels)
        bound_text = base_labels.pop("le")
        bound = parse_float(bound_text)
        if bound is None or math.isnan(bound):
            raise ParseError(line_no, f"invalid le label value {bound_text!r}")

        series = family.series_for(base_labels, line_no)
        if bound in series.buckets:
            raise ParseError(line_no, f"duplicate bucket le={bound_text!r} for {family.name}")
        series.buckets[bound] = _to_count(value, line_no, f"{family.name}_bucket")
        _set_timestamp(series, timestamp_ms)

    def _add_aggregate(self, family, suffix, labels, value, timestamp_ms, line_no) -> None:
        series = family.series_for(dict(labels), line_no)
        if suffix == "_sum":
            if series.sample_sum is not None:
                raise ParseError(line_no, f"duplicate {family.name}_sum sample")
            series.sample_sum = value
        else:
            if series.sample_count is not None:
                raise ParseError(line_no, f"duplicate {family.name}_count sample")
            series.sample_count = _to_count(value, line_no, f"{family.name}_count")
        _set_timestamp(series, timestamp_ms)

    def _add_quantile(self, family, labels, value, timestamp_ms, line_no) -> None:
        if "quantile" not in labels:
            raise ParseError(line_no, f"summary {family.name} sample without quantile label")
        base_labels = dict(labels)
        quantile_text = base_labels.pop("quantile")
        quantile = parse_float(quantile_text)
        if quantile is None or not 0.0 <= quantile <= 1.0:
            raise ParseError(line_no, f"invalid quantile label value {quantile_text!r}")

        series = family.series_for(base_labels, line_no)
        if quantile in series.quantiles:
            raise ParseError(
                line_no, f"duplicate quantile={quantile_text!r} for {family.name}"
            )
        series.quantiles[quantile] = value
        _set_timestamp(series, timestamp_ms)


def series_identifier(name: str, labels: Dict[str, str]) -> str:
    return MetricSample(labels=labels).identifier(name)


def _to_count(value: float, line_no: int, series_name: str) -> int:
    if math.isnan(value) or math.isinf(value) or value < 0 or value != int(value):
        raise ParseError(
            line_no, f"{series_name} value {value!r} is not a non-negative integer"
        )
    return int(value)


def _set_timestamp(series: _SeriesBuilder, timestamp_ms: Optional[int]) -> None:
    if series.timestamp_ms is None:
        series.timestamp_ms = timestamp_ms


def parse(text: str) -> Dict[str, MetricFamily]:
    """Parse exposition text into families keyed by name.

    Raises:
        ParseError: If any line is malformed
    """
    return TextParser().parse(text)
