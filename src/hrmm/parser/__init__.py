"""Prometheus text exposition format parser."""

from .text_parser import TextParser, parse, parse_float

__all__ = ["TextParser", "parse", "parse_float"]
