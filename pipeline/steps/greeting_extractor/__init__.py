"""
Greeting Extractor Step

Finds greeting phrases in email bodies (plain text or HTML) and extracts:
- Normalized names addressed by each greeting
- Verbatim greeting phrase and its position
- Extraction confidence (formal openers and honorifics score higher)
"""

from .extractor import GreetingExtractor
from .main import GreetingExtractionStep

__all__ = ["GreetingExtractor", "GreetingExtractionStep"]
