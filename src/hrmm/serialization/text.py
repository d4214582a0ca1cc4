"""Rendering of selected samples back into exposition text."""

import math
from typing import Dict, Iterable, List, Mapping, Optional

from ..model import FamilyMeta, MetricSample, MetricType, SelectedSample, format_label_pairs
from .formatting import escape_help, format_value, group_by_family


def _series_line(
    name: str, labels: Mapping[str, str], value: str, timestamp_ms: Optional[int]
) -> str:
    line = name
    if labels:
        line += "{" + format_label_pairs(labels) + "}"
    line += " " + value
    if timestamp_ms is not None:
        line += f" {timestamp_ms}"
    return line


def _with_label(labels: Mapping[str, str], key: str, value: str) -> Dict[str, str]:
    """Return a new label set with ``key`` added; ``labels`` is left untouched."""
    extended = dict(labels)
    extended[key] = value
    return extended


def _aggregate_lines(name: str, sample: MetricSample) -> List[str]:
    lines = []
    if sample.sample_sum is not None:
        lines.append(
            _series_line(
                f"{name}_sum", sample.labels, format_value(sample.sample_sum), sample.timestamp_ms
            )
        )
    if sample.sample_count is not None:
        lines.append(
            _series_line(
                f"{name}_count", sample.labels, str(sample.sample_count), sample.timestamp_ms
            )
        )
    return lines


def histogram_lines(name: str, sample: MetricSample) -> List[str]:
    lines = []
    for bucket in sample.buckets or ():
        labels = _with_label(sample.labels, "le", format_value(bucket.upper_bound))
        lines.append(
            _series_line(
                f"{name}_bucket", labels, str(bucket.cumulative_count), sample.timestamp_ms
            )
        )
    return lines + _aggregate_lines(name, sample)


def summary_lines(name: str, sample: MetricSample) -> List[str]:
    lines = []
    for quantile in sample.quantiles or ():
        labels = _with_label(sample.labels, "quantile", format_value(quantile.quantile))
        lines.append(
            _series_line(name, labels, format_value(quantile.value), sample.timestamp_ms)
        )
    return lines + _aggregate_lines(name, sample)


def simple_lines(name: str, sample: MetricSample) -> List[str]:
    value = sample.value if sample.value is not None else math.nan
    return [_series_line(name, sample.labels, format_value(value), sample.timestamp_ms)]


def sample_lines(meta: FamilyMeta, sample: MetricSample) -> List[str]:
    """Render one sample as its exposition lines, without a trailing newline."""
    if meta.type is MetricType.HISTOGRAM:
        return histogram_lines(meta.name, sample)
    if meta.type is MetricType.SUMMARY:
        return summary_lines(meta.name, sample)
    return simple_lines(meta.name, sample)


def serialize_text(samples: Iterable[SelectedSample]) -> str:
    """Render samples as exposition text.

    Families are emitted in name order, each with its HELP (when non-empty)
    and TYPE lines once, separated from the next family by a blank line.
    """
    blocks = []
    for meta, family_samples in group_by_family(samples):
        lines = []
        if meta.help:
            lines.append(f"# HELP {meta.name} {escape_help(meta.help)}")
        lines.append(f"# TYPE {meta.name} {meta.type.value}")
        for sample in family_samples:
            lines.extend(sample_lines(meta, sample))
        blocks.append("\n".join(lines) + "\n")
    return "\n".join(blocks)
