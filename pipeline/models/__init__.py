"""
Models package for Pipeline models

NOTE: in-memory value types only, nothing here is persisted
"""

from .core import (
    # Enums
    MatchType,
    SupportedLanguage,

    # Extraction / matching results
    GreetingMatch,
    MatchResult,
    ParsedContent,
    ParsedRecipient,
    RecipientDetails,
    ValidationResult,

    # Pass and orchestrator state
    StepResult,
    ValidationPassData,
    ValidationState,
)

__all__ = [
    # Enums
    "MatchType",
    "SupportedLanguage",

    # Extraction / matching results
    "GreetingMatch",
    "MatchResult",
    "ParsedContent",
    "ParsedRecipient",
    "RecipientDetails",
    "ValidationResult",

    # Pass and orchestrator state
    "StepResult",
    "ValidationPassData",
    "ValidationState",
]
