"""Utility modules."""

from blogforge.utils.llm_json import ParseResult, parse_llm_json, strip_code_fences
from blogforge.utils.slug import slugify

__all__ = ["ParseResult", "parse_llm_json", "slugify", "strip_code_fences"]
