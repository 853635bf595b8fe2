"""
Recipient Parser Utilities

Local-part tokenization, display-name cleanup and generic address lists.
"""

import re
from typing import List

from pipeline.core.text import normalize_name

# Role/team local parts that never identify a person
DEFAULT_GENERIC_LOCAL_PARTS = frozenset({
    "info", "support", "help", "contact", "admin", "noreply", "no-reply", "donotreply",
    "sales", "marketing", "service", "team", "office", "hello", "hi", "mail",
    "webmaster", "postmaster", "hostmaster", "abuse", "security", "privacy", "legal",
    "billing", "accounts", "hr", "jobs", "careers", "press", "media", "news",
    "newsletter", "notifications", "alerts", "updates", "feedback", "suggestions",
    "complaints", "orders", "shipping", "returns", "invoices", "payments", "api",
    "dev", "developer", "tech", "technical", "it", "system", "root", "www", "ftp",
    "smtp", "pop", "imap",
})

# Variants of no-reply and bounce addresses
GENERIC_LOCAL_PART_RE = re.compile(
    r"^(?:no[-_.]?reply|do[-_.]?not[-_.]?reply|mailer[-_.]?daemon|bounces?)(?:[-_.+].*)?$"
)

LOCAL_PART_SEPARATORS_RE = re.compile(r"[._\-]+")
CAMEL_CASE_RE = re.compile(r"[A-Z]?[a-z]+\d*|[A-Z]+\d*(?![a-z])|\d+")

DISPLAY_NAME_TITLES_RE = re.compile(
    r"\b(?:mr|mrs|ms|miss|mx|dr|prof|professor|sir|madam|lord|lady|rev|father|sister|brother"
    r"|herr|frau|madame|monsieur|mme|mlle)\b\.?\s*",
    re.IGNORECASE,
)
DISPLAY_NAME_SPLIT_RE = re.compile(r"[\s,;/()\"]+")

# Characters kept inside display-name tokens
_DISPLAY_TOKEN_STRIP_RE = re.compile(r"[^\w'’\-]", re.UNICODE)


def strip_subaddress(local_part: str) -> str:
    """Remove a +tag: 'john.doe+news' -> 'john.doe'."""
    return local_part.split("+", 1)[0]


def split_local_part(local_part: str) -> List[str]:
    """
    Split an address local part into lowercase name tokens.

    Separators are '.', '_' and '-'. Without separators, camelCase boundaries
    split ('JohnDoe' -> ['john', 'doe']). Trailing digits stay attached
    ('doe2'). Single characters are dropped unless they are the only token.

    Example:
        >>> split_local_part("john.doe2")
        ['john', 'doe2']
    """
    if LOCAL_PART_SEPARATORS_RE.search(local_part):
        parts = [p for p in LOCAL_PART_SEPARATORS_RE.split(local_part) if p]
    else:
        camel = CAMEL_CASE_RE.findall(local_part)
        parts = camel if len(camel) > 1 and "".join(camel) == local_part else [local_part]

    tokens = [normalize_name(p) for p in parts if p]
    tokens = [t for t in tokens if t]
    if len(tokens) > 1:
        tokens = [t for t in tokens if len(t) > 1] or tokens[:1]
    return tokens


def split_display_name(display_name: str) -> List[str]:
    """
    Tokenize a display name, dropping titles and punctuation.

    Example:
        >>> split_display_name("Dr. Jane Smith")
        ['jane', 'smith']
    """
    if not display_name:
        return []
    cleaned = DISPLAY_NAME_TITLES_RE.sub(" ", display_name)
    tokens = []
    for part in DISPLAY_NAME_SPLIT_RE.split(cleaned):
        token = normalize_name(_DISPLAY_TOKEN_STRIP_RE.sub("", part))
        token = token.strip("-'")
        if token:
            tokens.append(token)
    return tokens


def dedupe(tokens: List[str]) -> List[str]:
    """Unique tokens, first-seen order."""
    seen = set()
    unique = []
    for token in tokens:
        if token not in seen:
            seen.add(token)
            unique.append(token)
    return unique
