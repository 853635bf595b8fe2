"""
Greeting Extractor Utilities

Helpers for HTML-to-text conversion.
"""

import re
import unicodedata

from bs4 import BeautifulSoup, Comment

_HTML_TAG_RE = re.compile(r"<\s*/?\s*[a-zA-Z][^>]*>|<!--")

# Elements that start a new line in rendered output
BLOCK_ELEMENTS = (
    "p", "div", "li", "ul", "ol", "tr", "table", "blockquote", "pre",
    "h1", "h2", "h3", "h4", "h5", "h6", "section", "article", "header", "footer",
)


def looks_like_html(text: str) -> bool:
    return bool(_HTML_TAG_RE.search(text))


def html_to_text(content: str) -> str:
    """
    Normalize HTML into plain text for greeting detection.

    Output is NFC-composed ("Jose" + U+0301 becomes "José"). Plain text is
    otherwise returned unchanged so positions refer to the caller's text.
    For HTML, <br> and block elements become line breaks, inline elements are
    joined without separators and entities are decoded. Non-ASCII is kept.

    Example:
        >>> html_to_text("<p>Hi <b>John</b>,</p><p>Thanks</p>")
        'Hi John,\\nThanks'
    """
    if not content:
        return ""
    content = unicodedata.normalize("NFC", content)
    if not looks_like_html(content):
        return content

    soup = BeautifulSoup(content, "html.parser")

    # Drop non-content elements
    for element in soup(["script", "style", "noscript", "template", "head"]):
        element.decompose()

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for br in soup.find_all("br"):
        br.replace_with("\n")

    for block in soup.find_all(list(BLOCK_ELEMENTS)):
        block.insert_before("\n")
        block.insert_after("\n")

    text = soup.get_text()

    # Non-breaking spaces from &nbsp;
    text = text.replace("\xa0", " ")

    # Split into lines, trim whitespace, and discard empties
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return unicodedata.normalize("NFC", "\n".join(lines))

