"""Shared utilities."""

from .cache import ResolutionCache
from .text import extract_json, normalize, parse_model_json, trigrams

__all__ = ["ResolutionCache", "extract_json", "normalize", "parse_model_json", "trigrams"]
