"""
Language pattern sets for greeting detection.

Each LanguagePatterns bundles the greeting openers (with base confidence and
a formal flag), honorifics, conjunctions that join name lists, the stop-list
of words that are never names, and lexical cues for language detection.
"""

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Pattern, Tuple

from pipeline.models.core import SupportedLanguage

# Combining marks that survive NFC (no precomposed form exists)
_MARK = r"[\u0300-\u036f\u1ab0-\u1aff\u1dc0-\u1dff\u20d0-\u20ff\ufe20-\ufe2f]"

# Letter run with internal hyphens/apostrophes ("O'Brien", "Jean-Luc")
NAME_TOKEN_RE = re.compile(
    rf"[^\W\d_]{_MARK}*(?:(?:[^\W\d_]|['’\-](?=[^\W\d_])){_MARK}*)*"
)
WORD_RE = re.compile(rf"[^\W\d_](?:[^\W\d_]|{_MARK})*")
HORIZONTAL_SPACE_RE = re.compile(r"[^\S\r\n]+")

_LETTER = r"[^\W\d_]"

BASE_CONFIDENCE = 0.8


@dataclass(frozen=True)
class GreetingOpener:
    phrase: str
    """Space-separated words, matched case-insensitively"""

    base_confidence: float = BASE_CONFIDENCE
    formal: bool = False


@dataclass(frozen=True)
class LanguagePatterns:
    language: SupportedLanguage
    openers: Tuple[GreetingOpener, ...]
    honorifics: Tuple[str, ...]
    """Regex fragments, e.g. r'mr\\.?'"""

    conjunctions: Tuple[str, ...]
    stop_words: FrozenSet[str]
    cues: Tuple[str, ...]
    """Regex fragments counted for language detection"""

    def __post_init__(self):
        phrases = sorted(self.openers, key=lambda o: len(o.phrase), reverse=True)
        opener_alternatives = "|".join(
            r"[^\S\r\n]+".join(re.escape(word) for word in opener.phrase.split())
            for opener in phrases
        )
        honorifics = sorted(self.honorifics, key=len, reverse=True)
        conjunction_words = [c for c in self.conjunctions if c.isalpha()]
        conjunction_symbols = [re.escape(c) for c in self.conjunctions if not c.isalpha()]
        conjunction_alternatives = "|".join(
            [rf"(?<!{_LETTER})(?:{'|'.join(conjunction_words)})(?!{_LETTER})"] + conjunction_symbols
        )

        # frozen dataclass: compiled patterns are attached via object.__setattr__
        object.__setattr__(self, "opener_re", re.compile(
            rf"(?<!{_LETTER})(?:{opener_alternatives})(?!{_LETTER})", re.IGNORECASE
        ))
        object.__setattr__(self, "honorific_re", re.compile(
            rf"(?:{'|'.join(honorifics)})(?!{_LETTER})\.?[^\S\r\n]+", re.IGNORECASE
        ))
        object.__setattr__(self, "conjunction_re", re.compile(
            rf"(?:{conjunction_alternatives})[^\S\r\n]*", re.IGNORECASE
        ))
        object.__setattr__(self, "cue_re", re.compile(
            rf"(?<!{_LETTER})(?:{'|'.join(self.cues)})(?!{_LETTER})", re.IGNORECASE
        ))
        object.__setattr__(self, "_opener_lookup", {
            " ".join(opener.phrase.lower().split()): opener for opener in self.openers
        })

    def opener_for(self, matched_text: str) -> GreetingOpener:
        return self._opener_lookup[" ".join(matched_text.lower().split())]

    def is_conjunction(self, token: str) -> bool:
        return token.lower() in self.conjunctions

    def is_stop_word(self, name: str) -> bool:
        return name in self.stop_words


ENGLISH = LanguagePatterns(
    language=SupportedLanguage.EN,
    openers=(
        GreetingOpener("hi"),
        GreetingOpener("hello"),
        GreetingOpener("hey"),
        GreetingOpener("dear", formal=True),
        GreetingOpener("good morning"),
        GreetingOpener("good afternoon"),
        GreetingOpener("good evening"),
        GreetingOpener("greetings"),
    ),
    honorifics=(r"mr", r"mrs", r"ms", r"miss", r"mx", r"dr", r"prof", r"professor"),
    conjunctions=("and", "&"),
    stop_words=frozenset({
        "and", "or", "the", "a", "an", "to", "from", "with", "by", "for",
        "all", "everyone", "everybody", "team", "folks", "guys", "there", "you",
        "sir", "madam", "friend", "friends", "colleagues", "world", "again",
        "mr", "mrs", "ms", "miss", "mx", "dr", "prof", "professor",
    }),
    cues=(
        r"hi", r"hello", r"dear", r"good[^\S\r\n]+(?:morning|afternoon|evening)", r"thanks?",
        r"please", r"best[^\S\r\n]+regards", r"the", r"and", r"with", r"you", r"is", r"are",
    ),
)

GERMAN = LanguagePatterns(
    language=SupportedLanguage.DE,
    openers=(
        GreetingOpener("hallo"),
        GreetingOpener("hi"),
        GreetingOpener("hey"),
        GreetingOpener("liebe"),
        GreetingOpener("lieber"),
        GreetingOpener("liebes"),
        GreetingOpener("sehr geehrte", formal=True),
        GreetingOpener("sehr geehrter", formal=True),
        GreetingOpener("guten morgen"),
        GreetingOpener("guten tag"),
        GreetingOpener("guten abend"),
        GreetingOpener("moin"),
    ),
    honorifics=(r"herr", r"frau", r"dr", r"prof", r"professor"),
    conjunctions=("und", "&"),
    stop_words=frozenset({
        "und", "oder", "der", "die", "das", "ein", "eine", "zu", "von", "mit", "durch", "für",
        "alle", "allerseits", "jeder", "team", "leute", "ihr", "sie", "du", "zusammen",
        "kollegen", "kolleginnen", "damen", "herren",
        "herr", "frau", "dr", "prof", "professor",
    }),
    cues=(
        r"hallo", r"liebe[rs]?", r"sehr[^\S\r\n]+geehrte[rs]?", r"guten[^\S\r\n]+(?:morgen|tag|abend)",
        r"moin", r"danke", r"bitte", r"grüße", r"und", r"oder", r"der", r"die", r"das",
        r"ich", r"ist", r"nicht", r"mit", r"für",
    ),
)

FRENCH = LanguagePatterns(
    language=SupportedLanguage.FR,
    openers=(
        GreetingOpener("bonjour"),
        GreetingOpener("bonsoir"),
        GreetingOpener("salut"),
        GreetingOpener("coucou"),
        GreetingOpener("cher", formal=True),
        GreetingOpener("chère", formal=True),
        GreetingOpener("chers", formal=True),
        GreetingOpener("chères", formal=True),
    ),
    honorifics=(r"madame", r"monsieur", r"mademoiselle", r"mme", r"mlle", r"m\.", r"dr", r"pr"),
    conjunctions=("et", "&"),
    stop_words=frozenset({
        "et", "ou", "le", "la", "les", "un", "une", "de", "du", "des", "à", "pour", "avec",
        "tous", "toutes", "tout", "équipe", "amis", "collègues", "vous", "toi",
        "madame", "monsieur", "mademoiselle", "mesdames", "messieurs", "mme", "mlle", "dr", "pr",
    }),
    cues=(
        r"bonjour", r"bonsoir", r"salut", r"cher", r"chère", r"merci", r"cordialement",
        r"le", r"la", r"les", r"et", r"je", r"vous", r"est", r"avec", r"pour",
    ),
)

LANGUAGE_PATTERNS: Dict[SupportedLanguage, LanguagePatterns] = {
    SupportedLanguage.EN: ENGLISH,
    SupportedLanguage.DE: GERMAN,
    SupportedLanguage.FR: FRENCH,
}

# Characteristic letters add to the detection score
DIACRITIC_CUES: Dict[SupportedLanguage, Pattern] = {
    SupportedLanguage.DE: re.compile(r"[äöüß]", re.IGNORECASE),
    SupportedLanguage.FR: re.compile(r"[éèêàçœù]", re.IGNORECASE),
}


def detect_language(text: str, fallback: SupportedLanguage = SupportedLanguage.EN) -> SupportedLanguage:
    """
    Pick the pattern set whose lexical cues occur most often in text.

    Diacritics only count in words that start lowercase, so an addressee's
    name ("Hello Jörg,") does not pull detection towards its language.
    Ties, including no evidence at all, resolve to `fallback`.
    """
    common_words = " ".join(word for word in WORD_RE.findall(text) if not word[0].isupper())

    scores: Dict[SupportedLanguage, int] = {}
    for language, patterns in LANGUAGE_PATTERNS.items():
        score = len(patterns.cue_re.findall(text))
        diacritics = DIACRITIC_CUES.get(language)
        if diacritics is not None:
            score += len(diacritics.findall(common_words))
        scores[language] = score

    best = max(scores.values())
    leaders = [language for language, score in scores.items() if score == best]
    if best == 0 or len(leaders) > 1:
        return fallback if fallback in LANGUAGE_PATTERNS else SupportedLanguage.EN
    return leaders[0]
