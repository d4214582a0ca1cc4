"""Name and label filtering of parsed metrics."""

from .selector import label_filter_matches, parse_label_filter, passes_label_filter, select

__all__ = ["label_filter_matches", "parse_label_filter", "passes_label_filter", "select"]
