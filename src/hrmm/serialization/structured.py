"""Rendering of selected samples as a JSON-compatible document."""

import json
import math
from typing import Any, Dict, Iterable, List, Optional

from ..model import FamilyMeta, MetricSample, SelectedSample
from .formatting import group_by_family
from .text import serialize_text


def json_number(value: Optional[float]) -> Optional[float]:
    """Map NaN and infinities to None so strict JSON consumers can read them."""
    if value is None or math.isnan(value) or math.isinf(value):
        return None
    return value


def sample_record(meta: FamilyMeta, sample: MetricSample) -> Dict[str, Any]:
    """Build the structured record of one sample.

    Optional fields the source did not provide are left out of the record;
    ``value`` is always present and is null for histograms and summaries.
    """
    record: Dict[str, Any] = {"name": meta.name}
    if meta.help:
        record["help"] = meta.help
    record["type"] = meta.type.value
    record["labels"] = dict(sample.labels)
    record["value"] = json_number(sample.value) if meta.type.is_simple else None

    if sample.sample_count is not None:
        record["sample_count"] = sample.sample_count
    if sample.sample_sum is not None:
        record["sample_sum"] = json_number(sample.sample_sum)
    if sample.buckets is not None:
        record["buckets"] = [
            {
                "upper_bound": json_number(bucket.upper_bound),
                "cumulative_count": bucket.cumulative_count,
            }
            for bucket in sample.buckets
        ]
    if sample.quantiles is not None:
        record["quantiles"] = [
            {"quantile": json_number(q.quantile), "value": json_number(q.value)}
            for q in sample.quantiles
        ]
    if sample.timestamp_ms is not None:
        record["timestamp_ms"] = sample.timestamp_ms
    return record


def serialize_structured(samples: Iterable[SelectedSample]) -> List[Dict[str, Any]]:
    """One record per sample, in the same order as the text output."""
    return [
        sample_record(meta, sample)
        for meta, family_samples in group_by_family(samples)
        for sample in family_samples
    ]


def serialize_json(samples: Iterable[SelectedSample], indent: Optional[int] = 2) -> str:
    return json.dumps(serialize_structured(samples), indent=indent, allow_nan=False)


def serialize(samples: Iterable[SelectedSample], structured: bool = False) -> str:
    """Render samples as JSON when ``structured`` is set, else as exposition text."""
    if structured:
        return serialize_json(samples)
    return serialize_text(samples)
