"""Selection of families and samples by metric name and label."""

import logging
from typing import Iterable, List, Mapping, Optional, Tuple

from ..model import MetricFamily, SelectedSample

logger = logging.getLogger(__name__)


def parse_label_filter(token: str) -> Tuple[str, Optional[str]]:
    """Split a label filter token into a label name and an optional value.

    ``"method"`` matches any sample carrying a ``method`` label, while
    ``"method=post"`` requires that exact value. Only the first ``=`` splits,
    so values may themselves contain ``=``.
    """
    if "=" in token:
        name, value = token.split("=", 1)
        return name, value
    return token, None


def label_filter_matches(labels: Mapping[str, str], token: str) -> bool:
    name, value = parse_label_filter(token)
    if name not in labels:
        return False
    return value is None or labels[name] == value


def passes_label_filter(labels: Mapping[str, str], label_filters: Iterable[str]) -> bool:
    """True when no label filters are given or at least one of them matches."""
    tokens = list(label_filters)
    if not tokens:
        return True
    return any(label_filter_matches(labels, token) for token in tokens)


def select(
    families: Mapping[str, MetricFamily],
    name_filters: Iterable[str] = (),
    label_filters: Iterable[str] = (),
) -> List[SelectedSample]:
    """Select samples whose family name and labels pass the filters.

    Name filters and label filters are AND-combined; label filter tokens are
    OR-combined among themselves. Families are visited in mapping order and
    samples in family order; callers needing a stable output order sort
    afterwards.
    """
    names = frozenset(name_filters)
    tokens = tuple(label_filters)

    selected: List[SelectedSample] = []
    for name, family in families.items():
        if names and name not in names:
            continue
        meta = family.meta
        for sample in family.samples:
            if passes_label_filter(sample.labels, tokens):
                selected.append(SelectedSample(family=meta, sample=sample))

    logger.debug(
        f"Selected {len(selected)} samples from {len(families)} families "
        f"(name filters: {sorted(names)}, label filters: {list(tokens)})"
    )
    return selected
