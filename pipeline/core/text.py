"""Name normalization shared by extraction, parsing and matching."""

import unicodedata

APOSTROPHES = ("’", "‘", "ʼ")


def normalize_name(name: str) -> str:
    """
    Canonical form used for comparison and deduplication.

    NFC, casefolded, trimmed, curly apostrophes folded to "'".
    Diacritics are preserved: "José" -> "josé", while "Weiß" -> "weiss"
    so it compares equal to "WEISS".
    """
    if not name:
        return ""
    normalized = unicodedata.normalize("NFC", name).strip().casefold()
    for apostrophe in APOSTROPHES:
        normalized = normalized.replace(apostrophe, "'")
    return normalized


def strip_joiners(name: str) -> str:
    """Drop hyphens and apostrophes: "jean-luc" -> "jeanluc", "o'brien" -> "obrien"."""
    return name.replace("-", "").replace("'", "")
