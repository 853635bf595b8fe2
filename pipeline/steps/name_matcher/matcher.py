"""
NameMatcher: scores greeting names against recipient name tokens.

Tiers, first applicable wins:
    exact   1.0                              equal after normalization
    partial 0.7 + 0.1 * ratio * weight       prefix (weight 1.0) or inner containment (0.5)
    fuzzy   0.95 * similarity                OSA similarity >= threshold
    none    0.0
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import logfire

from pipeline.core.text import normalize_name, strip_joiners
from pipeline.models.core import (
    GreetingMatch,
    MatchResult,
    MatchType,
    ParsedRecipient,
    ValidationResult,
)

from .utils import similarity

EXACT_CONFIDENCE = 1.0
PARTIAL_BASE = 0.7
PARTIAL_SPAN = 0.1
PREFIX_WEIGHT = 1.0
CONTAINMENT_WEIGHT = 0.5
MIN_PARTIAL_LENGTH = 3
FUZZY_SCALE = 0.95
_EPSILON = 1e-9


@dataclass(frozen=True)
class TokenScore:
    match_type: MatchType
    confidence: float


NO_SCORE = TokenScore(MatchType.NONE, 0.0)


class NameMatcher:
    """
    Exact/partial/fuzzy matching of greeting names to recipients.

    Args:
        enable_fuzzy_matching: Allow the fuzzy tier
        fuzzy_similarity_threshold: Minimum OSA similarity for a fuzzy match
        minimum_confidence_threshold: Confidence a match needs to be valid
    """

    def __init__(
        self,
        enable_fuzzy_matching: bool = True,
        fuzzy_similarity_threshold: float = 0.75,
        minimum_confidence_threshold: float = 0.7,
    ):
        self.enable_fuzzy_matching = enable_fuzzy_matching
        self.fuzzy_similarity_threshold = fuzzy_similarity_threshold
        self.minimum_confidence_threshold = minimum_confidence_threshold

    def score_token(self, greeting_name: str, token: str) -> TokenScore:
        """Score one normalized greeting name against one normalized token."""
        if not greeting_name or not token:
            return NO_SCORE

        if greeting_name == token or strip_joiners(greeting_name) == strip_joiners(token):
            return TokenScore(MatchType.EXACT, EXACT_CONFIDENCE)

        shorter, longer = sorted((greeting_name, token), key=len)
        if len(shorter) >= MIN_PARTIAL_LENGTH and len(shorter) < len(longer):
            if longer.startswith(shorter):
                weight = PREFIX_WEIGHT
            elif shorter in longer:
                weight = CONTAINMENT_WEIGHT
            else:
                weight = 0.0
            if weight:
                ratio = len(shorter) / len(longer)
                return TokenScore(MatchType.PARTIAL, round(PARTIAL_BASE + PARTIAL_SPAN * ratio * weight, 4))

        if self.enable_fuzzy_matching:
            sim = similarity(greeting_name, token)
            if sim + _EPSILON >= self.fuzzy_similarity_threshold:
                return TokenScore(MatchType.FUZZY, round(FUZZY_SCALE * sim, 4))

        return NO_SCORE

    def _score_recipient(self, name: str, recipient: ParsedRecipient) -> TokenScore:
        best = NO_SCORE
        for token in recipient.extracted_names:
            score = self.score_token(name, normalize_name(token))
            if score.confidence > best.confidence:
                best = score
                if best.match_type is MatchType.EXACT:
                    break
        return best

    def find_best_match(self, greeting_name: str, recipients: Sequence[ParsedRecipient]) -> MatchResult:
        """
        Best match across recipients. Earliest recipient wins ties.

        Generic recipients are never considered.
        """
        name = normalize_name(greeting_name)
        if not name:
            return MatchResult.no_match()

        best_score = NO_SCORE
        best_recipient: Optional[ParsedRecipient] = None
        for recipient in recipients:
            if recipient.is_generic:
                continue
            score = self._score_recipient(name, recipient)
            if score.confidence > best_score.confidence:
                best_score = score
                best_recipient = recipient

        if best_recipient is None:
            return MatchResult.no_match()

        return MatchResult(
            matched=True,
            confidence=best_score.confidence,
            match_type=best_score.match_type,
            recipient=best_recipient,
        )

    def validate_names(
        self,
        greetings: Sequence[GreetingMatch],
        recipients: Sequence[ParsedRecipient],
    ) -> List[ValidationResult]:
        """
        One ValidationResult per greeting.

        A greeting that fails to match is logged and skipped.
        """
        eligible = [r for r in recipients if not r.is_generic]
        results: List[ValidationResult] = []

        for greeting in greetings:
            try:
                match = self.find_best_match(greeting.extracted_name, eligible)
            except Exception as e:
                logfire.warning(
                    "Skipping greeting during matching",
                    greeting=greeting.extracted_name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            is_valid = match.matched and match.confidence + _EPSILON >= self.minimum_confidence_threshold
            suggestion = match.recipient if match.recipient is not None else (eligible[0] if eligible else None)
            results.append(ValidationResult(
                greeting_name=greeting.extracted_name,
                is_valid=is_valid,
                confidence=match.confidence,
                suggested_recipient=suggestion,
            ))

        return results

    def match_summary(self, results: Sequence[ValidationResult]) -> Tuple[int, int]:
        """(valid, invalid) counts for logging."""
        valid = sum(1 for r in results if r.is_valid)
        return valid, len(results) - valid
