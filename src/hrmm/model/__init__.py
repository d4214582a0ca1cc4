"""Canonical in-memory representation of metric families."""

from .models import (
    FamilyMeta,
    HistogramBucket,
    MetricFamily,
    MetricSample,
    MetricType,
    SelectedSample,
    SummaryQuantile,
    escape_label_value,
    format_label_pairs,
    freeze_labels,
)

__all__ = [
    "FamilyMeta",
    "HistogramBucket",
    "MetricFamily",
    "MetricSample",
    "MetricType",
    "SelectedSample",
    "SummaryQuantile",
    "escape_label_value",
    "format_label_pairs",
    "freeze_labels",
]
