"""
Shared utilities.
"""

from .normalize import collapse_whitespace, normalize_industry_name, unify_punctuation

__all__ = ["collapse_whitespace", "normalize_industry_name", "unify_punctuation"]
