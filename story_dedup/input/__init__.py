"""
Input parsing.

This package turns GDELT-shaped JSON payloads into enriched Records.
"""

from .json_parser import extract_items, parse_gdelt_json, parse_timestamp

__all__ = ["extract_items", "parse_gdelt_json", "parse_timestamp"]
