"""Serializers for selected metric samples."""

from .formatting import format_value, group_by_family
from .structured import sample_record, serialize, serialize_json, serialize_structured
from .text import sample_lines, serialize_text

__all__ = [
    "format_value",
    "group_by_family",
    "sample_lines",
    "sample_record",
    "serialize",
    "serialize_json",
    "serialize_structured",
    "serialize_text",
]
