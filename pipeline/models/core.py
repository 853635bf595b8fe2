"""Core data models for the name validation pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, List, Tuple
from datetime import datetime, timezone


class SupportedLanguage(str, Enum):
    """Greeting pattern sets. AUTO picks one from lexical cues in the text."""
    EN = "en"
    DE = "de"
    FR = "fr"
    AUTO = "auto"


class MatchType(str, Enum):
    """Match tiers in descending priority."""
    EXACT = "exact"
    PARTIAL = "partial"
    FUZZY = "fuzzy"
    NONE = "none"


# ===================================================================
# EXTRACTION / MATCHING RESULTS
# ===================================================================

@dataclass(frozen=True)
class GreetingMatch:
    """A single name extracted from a greeting phrase."""

    extracted_name: str
    """Normalized (lowercase, trimmed) name, e.g. 'john'"""

    full_match: str
    """Verbatim greeting phrase without terminal punctuation, e.g. 'Hi John'"""

    position: int
    """Offset of the greeting opener in the plain text"""

    confidence: float
    """Extraction confidence in [0, 1]"""


@dataclass(frozen=True)
class ParsedContent:
    """Result of parsing an email body."""

    greetings: Tuple[GreetingMatch, ...] = ()
    has_valid_content: bool = False


@dataclass(frozen=True)
class RecipientDetails:
    """Raw recipient as reported by the mail client (To, Cc, Bcc order)."""

    address: str
    display_name: Optional[str] = None


@dataclass(frozen=True)
class ParsedRecipient:
    """Recipient with candidate name tokens derived from address and display name."""

    email: str
    """Lowercased address"""

    extracted_names: Tuple[str, ...] = ()
    """Unique lowercase name tokens in first-seen order"""

    is_generic: bool = False
    """Role/team address (info@, support@, ...) excluded from matching"""

    display_name: Optional[str] = None


@dataclass(frozen=True)
class MatchResult:
    """Best match of one greeting name across recipients."""

    matched: bool
    confidence: float
    match_type: MatchType
    recipient: Optional[ParsedRecipient] = None
    """Recipient that produced the winning score, if any"""

    @classmethod
    def no_match(cls) -> "MatchResult":
        return cls(matched=False, confidence=0.0, match_type=MatchType.NONE)


@dataclass(frozen=True)
class ValidationResult:
    """Verdict for one greeting name. The externally visible output unit."""

    greeting_name: str
    is_valid: bool
    confidence: float
    suggested_recipient: Optional[ParsedRecipient] = None


# ===================================================================
# PASS DATA
# ===================================================================

@dataclass
class ValidationPassData:
    """
    In-memory state passed between pipeline steps during one validation pass.

    Never persisted. Created by the orchestrator for each pass.
    """

    # Input data (set by the orchestrator)
    pass_id: str
    """Correlation id for Logfire spans"""

    email_body: str
    """Body text or HTML as returned by the mail client"""

    recipients: List[RecipientDetails] = field(default_factory=list)
    """Raw recipients in To, Cc, Bcc order"""

    generation: int = 0
    """Orchestrator generation this pass was started under"""

    # Step 1 outputs (GreetingExtractor)
    parsed_content: Optional[ParsedContent] = None

    # Step 2 outputs (RecipientParser)
    parsed_recipients: List[ParsedRecipient] = field(default_factory=list)

    # Step 3 outputs (NameMatcher)
    results: List[ValidationResult] = field(default_factory=list)

    # Transient data (logged to Logfire, not persisted)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    step_timings: Dict[str, float] = field(default_factory=dict)
    """Duration of each step in seconds"""

    errors: List[str] = field(default_factory=list)
    """
    Non-fatal errors encountered during execution (skipped greetings or recipients).
    Fatal errors raise exceptions and terminate the pass.
    """

    @property
    def greetings(self) -> Tuple[GreetingMatch, ...]:
        if self.parsed_content is None:
            return ()
        return self.parsed_content.greetings

    def total_duration(self) -> float:
        """Calculate total pass execution time in seconds"""
        return (datetime.now(timezone.utc) - self.started_at).total_seconds()

    def add_timing(self, step_name: str, duration: float) -> None:
        """Record step timing"""
        self.step_timings[step_name] = duration

    def add_error(self, step_name: str, error_message: str) -> None:
        """Record non-fatal error"""
        self.errors.append(f"{step_name}: {error_message}")


# ===================================================================
# STEP RESULT
# ===================================================================

@dataclass
class StepResult:
    """
    Result of a pipeline step execution.

    Returned by BasePipelineStep.execute() to indicate success/failure.
    """

    success: bool
    """Whether the step completed successfully"""

    step_name: str
    """Name of the step that produced this result"""

    error: Optional[str] = None
    """Error message if success=False"""

    metadata: Optional[Dict[str, Any]] = None
    """
    Optional metadata about execution:
    - duration: float (seconds)
    - item counts (greetings, recipients, results)
    """

    warnings: List[str] = field(default_factory=list)
    """Non-fatal warnings (e.g., 'skipped 1 malformed recipient')"""

    def __post_init__(self):
        """Validation: if success=False, error must be set"""
        if not self.success and not self.error:
            raise ValueError("StepResult with success=False must have error message")


# ===================================================================
# ORCHESTRATOR STATE
# ===================================================================

@dataclass(frozen=True)
class ValidationState:
    """Snapshot of orchestrator state for one compose session."""

    cached_content: Optional[str]
    cached_recipients: Optional[Tuple[RecipientDetails, ...]]
    generation: int
    in_progress: bool
    last_validation_time: Optional[datetime]
    is_enabled: bool
    last_results: Tuple[ValidationResult, ...] = ()
