"""
Name Matcher Step

Scores greeting names against recipient name tokens:
- exact, partial (prefix/containment) and fuzzy (edit distance) tiers
- best match across recipients, earliest recipient on ties
- validity against the minimum confidence threshold
"""

from .matcher import NameMatcher
from .main import NameMatchingStep

__all__ = ["NameMatcher", "NameMatchingStep"]
