"""Data models for parsed Prometheus metrics."""

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from ..errors import InvariantViolation


class MetricType(Enum):
    """The metric shapes of the text exposition format."""

    COUNTER = "counter"
    GAUGE = "gauge"
    UNTYPED = "untyped"
    HISTOGRAM = "histogram"
    SUMMARY = "summary"

    @classmethod
    def from_keyword(cls, keyword: Optional[str]) -> "MetricType":
        """Map a ``# TYPE`` keyword to a type; unknown or missing keywords are untyped."""
        if not keyword:
            return cls.UNTYPED
        try:
            return cls(keyword.lower())
        except ValueError:
            return cls.UNTYPED

    @property
    def is_simple(self) -> bool:
        return self in (MetricType.COUNTER, MetricType.GAUGE, MetricType.UNTYPED)


def freeze_labels(labels: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    """Return a read-only copy of ``labels`` with keys in lexicographic order."""
    if not labels:
        return MappingProxyType({})
    return MappingProxyType({key: labels[key] for key in sorted(labels)})


def escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def format_label_pairs(labels: Mapping[str, str]) -> str:
    """Render ``k="v"`` pairs sorted by key and joined with commas."""
    return ",".join(
        f'{key}="{escape_label_value(labels[key])}"' for key in sorted(labels)
    )


@dataclass(frozen=True)
class HistogramBucket:
    """A histogram bucket with its upper bound and cumulative count."""

    upper_bound: float
    cumulative_count: int


@dataclass(frozen=True)
class SummaryQuantile:
    """A summary quantile and its observed value."""

    quantile: float
    value: float


@dataclass(frozen=True)
class MetricSample:
    """One labelled series of a family.

    Counter, gauge and untyped samples carry ``value``. Histogram and summary
    samples carry the optional ``sample_count``/``sample_sum`` plus buckets or
    quantiles. ``None`` always means the source did not provide the field.
    """

    labels: Mapping[str, str] = field(default_factory=dict)
    value: Optional[float] = None

    # Histogram and summary
    sample_count: Optional[int] = None
    sample_sum: Optional[float] = None
    buckets: Optional[Tuple[HistogramBucket, ...]] = None
    quantiles: Optional[Tuple[SummaryQuantile, ...]] = None

    timestamp_ms: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "labels", freeze_labels(self.labels))
        if self.buckets is not None:
            object.__setattr__(self, "buckets", tuple(self.buckets))
        if self.quantiles is not None:
            object.__setattr__(self, "quantiles", tuple(self.quantiles))
        self._check_invariants()

    def _check_invariants(self) -> None:
        if self.sample_count is not None and self.sample_count < 0:
            raise InvariantViolation(f"negative sample count {self.sample_count}")

        if self.buckets:
            previous = None
            for bucket in self.buckets:
                if math.isnan(bucket.upper_bound):
                    raise InvariantViolation("bucket upper bound is NaN")
                if previous is not None and bucket.upper_bound <= previous:
                    raise InvariantViolation(
                        f"bucket upper bounds not strictly increasing "
                        f"({previous} then {bucket.upper_bound})"
                    )
                if bucket.cumulative_count < 0:
                    raise InvariantViolation(
                        f"negative cumulative count in bucket le={bucket.upper_bound}"
                    )
                previous = bucket.upper_bound

            last = self.buckets[-1]
            if (
                math.isinf(last.upper_bound)
                and self.sample_count is not None
                and last.cumulative_count != self.sample_count
            ):
                raise InvariantViolation(
                    f"+Inf bucket count {last.cumulative_count} does not match "
                    f"sample count {self.sample_count}"
                )

        if self.quantiles:
            previous = None
            for quantile in self.quantiles:
                if not 0.0 <= quantile.quantile <= 1.0:
                    raise InvariantViolation(f"quantile {quantile.quantile} outside [0, 1]")
                if previous is not None and quantile.quantile <= previous:
                    raise InvariantViolation(
                        f"quantiles not strictly increasing "
                        f"({previous} then {quantile.quantile})"
                    )
                previous = quantile.quantile

    def identifier(self, name: str) -> str:
        """Return ``name{k="v",...}``, the display key of this series."""
        if not self.labels:
            return name
        return f"{name}{{{format_label_pairs(self.labels)}}}"


@dataclass(frozen=True)
class FamilyMeta:
    """Name, help text and type shared by every sample of a family."""

    name: str
    help: str = ""
    type: MetricType = MetricType.UNTYPED


@dataclass(frozen=True)
class MetricFamily:
    """All samples sharing one metric name."""

    name: str
    help: str = ""
    type: MetricType = MetricType.UNTYPED
    samples: Tuple[MetricSample, ...] = ()

    def __post_init__(self):
        if not self.name:
            raise InvariantViolation("metric family name must not be empty")
        object.__setattr__(self, "samples", tuple(self.samples))

    @property
    def meta(self) -> FamilyMeta:
        return FamilyMeta(name=self.name, help=self.help, type=self.type)


@dataclass(frozen=True)
class SelectedSample:
    """A sample that passed selection, together with its family metadata."""

    family: FamilyMeta
    sample: MetricSample

    @property
    def name(self) -> str:
        return self.family.name

    @property
    def identifier(self) -> str:
        return self.sample.identifier(self.family.name)
