"""
Recipient Parser Step

Turns recipient addresses and display names into:
- Lowercased address
- Candidate name tokens (local part and display name)
- Generic/role address flag
"""

from .parser import RecipientIdentityParser
from .main import RecipientParsingStep

__all__ = ["RecipientIdentityParser", "RecipientParsingStep"]
