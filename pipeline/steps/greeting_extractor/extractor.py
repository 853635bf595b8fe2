"""
GreetingExtractor: finds greeting phrases and the names they address.

A greeting is an opener ("Hi", "Dear", "Sehr geehrte", ...), an optional
honorific, one or more name phrases joined by commas or conjunctions, and a
terminal (punctuation, line break or end of text). Each token of each name
phrase yields one GreetingMatch.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

import logfire

from config.settings import settings
from pipeline.core.text import normalize_name
from pipeline.models.core import GreetingMatch, ParsedContent, SupportedLanguage

from .patterns import (
    HORIZONTAL_SPACE_RE,
    LANGUAGE_PATTERNS,
    NAME_TOKEN_RE,
    LanguagePatterns,
    detect_language,
)
from .utils import html_to_text

TERMINAL_CHARS = ",.!?;:"
MAX_TOKENS_PER_PHRASE = 4
MAX_PHRASES_PER_GREETING = 8

FORMAL_BONUS = 0.1
HONORIFIC_BONUS = 0.05
SHORT_NAME_LENGTH = 2
SHORT_NAME_PENALTY = 0.3
LONG_PHRASE_TOKENS = 2
LONG_PHRASE_PENALTY = 0.1


@dataclass(frozen=True)
class _NamePhrase:
    tokens: Tuple[str, ...]
    has_honorific: bool
    end: int


def _skip_horizontal_space(text: str, pos: int) -> int:
    match = HORIZONTAL_SPACE_RE.match(text, pos)
    return match.end() if match else pos


def _at_sentence_start(text: str, pos: int) -> bool:
    """True if only whitespace separates pos from a line start or sentence end."""
    i = pos - 1
    while i >= 0 and text[i] in " \t\xa0":
        i -= 1
    return i < 0 or text[i] in "\r\n.!?:;>"


def _score(base: float, formal: bool, has_honorific: bool, name: str, phrase_tokens: int) -> float:
    confidence = base
    if formal:
        confidence += FORMAL_BONUS
    if has_honorific:
        confidence += HONORIFIC_BONUS
    if len(name) <= SHORT_NAME_LENGTH:
        confidence -= SHORT_NAME_PENALTY
    if phrase_tokens > LONG_PHRASE_TOKENS:
        confidence -= LONG_PHRASE_PENALTY
    return round(min(1.0, max(0.0, confidence)), 4)


class GreetingExtractor:
    """
    Extracts greeting names from plain text or HTML email bodies.

    Stateless apart from its language setting; safe to share across passes.
    """

    def __init__(self, language: Union[SupportedLanguage, str] = SupportedLanguage.AUTO):
        self.language = SupportedLanguage(language)

    def resolve_language(self, text: str) -> LanguagePatterns:
        if self.language is not SupportedLanguage.AUTO:
            return LANGUAGE_PATTERNS[self.language]
        fallback = SupportedLanguage(settings.primary_language)
        return LANGUAGE_PATTERNS[detect_language(text, fallback)]

    def parse_email_content(self, content: Optional[str]) -> ParsedContent:
        """
        Parse an email body into greetings plus a content flag.

        Never raises for empty, whitespace-only or missing input.
        """
        text = html_to_text(content or "")
        if not text.strip():
            return ParsedContent(greetings=(), has_valid_content=False)
        return ParsedContent(
            greetings=tuple(self._extract_from_text(text)),
            has_valid_content=True,
        )

    def extract_greetings(self, content: Optional[str]) -> List[GreetingMatch]:
        """
        Extract greeting names in order of appearance.

        Duplicate names keep the highest-confidence occurrence (earliest on ties).

        Example:
            >>> GreetingExtractor().extract_greetings("Hi John and Sarah,")
            [GreetingMatch(extracted_name='john', ...), GreetingMatch(extracted_name='sarah', ...)]
        """
        text = html_to_text(content or "")
        if not text.strip():
            return []
        return self._extract_from_text(text)

    def candidate_patterns(self, text: str) -> List[LanguagePatterns]:
        """
        Pattern sets to try, in order.

        A fixed language yields only its own set. With auto detection the
        detected set comes first and the remaining sets follow. The first set
        with an opener in the text decides the result.
        """
        detected = self.resolve_language(text)
        if self.language is not SupportedLanguage.AUTO:
            return [detected]
        return [detected] + [p for p in LANGUAGE_PATTERNS.values() if p is not detected]

    def _extract_from_text(self, text: str) -> List[GreetingMatch]:
        for patterns in self.candidate_patterns(text):
            if patterns.opener_re.search(text):
                return self._extract_with(text, patterns)
        return []

    def _extract_with(self, text: str, patterns: LanguagePatterns) -> List[GreetingMatch]:
        best: Dict[str, GreetingMatch] = {}

        for opener_match in patterns.opener_re.finditer(text):
            try:
                matches = self._expand_occurrence(text, opener_match, patterns)
            except Exception as e:
                logfire.warning(
                    "Skipping greeting occurrence",
                    position=opener_match.start(),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            for match in matches:
                current = best.get(match.extracted_name)
                if current is None or match.confidence > current.confidence:
                    best[match.extracted_name] = match

        return sorted(best.values(), key=lambda m: m.position)

    def _expand_occurrence(self, text: str, opener_match, patterns: LanguagePatterns) -> List[GreetingMatch]:
        start = opener_match.start()
        pos = _skip_horizontal_space(text, opener_match.end())
        if pos == opener_match.end():
            return []

        # Mid-sentence openers ("say hi to Mark") need a capitalised name
        scanned = self._scan_names(
            text, pos, patterns,
            require_capital=not _at_sentence_start(text, start),
            depth=0,
        )
        if scanned is None:
            return []

        phrases = scanned
        opener = patterns.opener_for(opener_match.group())
        full_match = text[start:phrases[-1].end]

        matches: List[GreetingMatch] = []
        for phrase in phrases:
            for token in phrase.tokens:
                name = normalize_name(token)
                if not name or patterns.is_stop_word(name):
                    continue
                matches.append(GreetingMatch(
                    extracted_name=name,
                    full_match=full_match,
                    position=start,
                    confidence=_score(
                        opener.base_confidence,
                        opener.formal,
                        phrase.has_honorific,
                        name,
                        len(phrase.tokens),
                    ),
                ))
        return matches

    def _parse_phrase(
        self, text: str, pos: int, patterns: LanguagePatterns, require_capital: bool
    ) -> Optional[_NamePhrase]:
        has_honorific = False
        honorific = patterns.honorific_re.match(text, pos)
        if honorific and NAME_TOKEN_RE.match(text, honorific.end()):
            pos = honorific.end()
            has_honorific = True

        first = NAME_TOKEN_RE.match(text, pos)
        if not first or patterns.is_conjunction(first.group()):
            return None
        if require_capital and first.group()[0].islower():
            return None

        tokens = [first.group()]
        end = first.end()
        while len(tokens) < MAX_TOKENS_PER_PHRASE:
            next_pos = _skip_horizontal_space(text, end)
            if next_pos == end:
                break
            token = NAME_TOKEN_RE.match(text, next_pos)
            if not token or token.group()[0].islower() or patterns.is_conjunction(token.group()):
                break
            tokens.append(token.group())
            end = token.end()

        return _NamePhrase(tokens=tuple(tokens), has_honorific=has_honorific, end=end)

    def _scan_names(
        self, text: str, pos: int, patterns: LanguagePatterns, require_capital: bool, depth: int
    ) -> Optional[List[_NamePhrase]]:
        """
        Parse name phrases starting at pos up to a terminal.

        Returns None when the text after the opener is not a greeting.
        """
        if depth >= MAX_PHRASES_PER_GREETING:
            return None

        phrase = self._parse_phrase(text, pos, patterns, require_capital)
        if phrase is None:
            return None

        after = _skip_horizontal_space(text, phrase.end)

        conjunction = patterns.conjunction_re.match(text, after)
        if conjunction and conjunction.end() > after:
            rest = self._scan_names(text, conjunction.end(), patterns, False, depth + 1)
            # "Hi Mark and thank you": the conjunction ends the greeting
            return [phrase] if rest is None else [phrase] + rest

        if after < len(text) and text[after] == ",":
            next_pos = _skip_horizontal_space(text, after + 1)
            conjunction = patterns.conjunction_re.match(text, next_pos)
            if conjunction and conjunction.end() > next_pos:
                rest = self._scan_names(text, conjunction.end(), patterns, False, depth + 1)
            else:
                # A bare comma continues the list only with a capitalised name
                rest = self._scan_names(text, next_pos, patterns, True, depth + 1)
            if rest is not None:
                return [phrase] + rest
            return [phrase]

        if after >= len(text) or text[after] in TERMINAL_CHARS or text[after] in "\r\n":
            return [phrase]

        return None
