"""
RecipientIdentityParser: candidate name tokens for each recipient.

Names come from the address local part ("john.doe@" -> john, doe) and the
display name ("John Doe"). Role addresses (info@, support@, noreply@, ...)
are flagged generic and later excluded from matching.
"""

from email.utils import parseaddr
from typing import Iterable, List, Optional, Sequence, Union

import logfire

from pipeline.core.exceptions import ParsingError
from pipeline.models.core import ParsedRecipient, RecipientDetails

from .utils import (
    DEFAULT_GENERIC_LOCAL_PARTS,
    GENERIC_LOCAL_PART_RE,
    dedupe,
    split_display_name,
    split_local_part,
    strip_subaddress,
)

RecipientInput = Union[RecipientDetails, str]


class RecipientIdentityParser:
    """Parses recipient addresses. Holds no per-recipient state."""

    def __init__(
        self,
        generic_local_parts: Optional[Iterable[str]] = None,
        extra_generic_local_parts: Iterable[str] = (),
        detect_generic: bool = True,
    ):
        self.detect_generic = detect_generic
        base = DEFAULT_GENERIC_LOCAL_PARTS if generic_local_parts is None else generic_local_parts
        self.generic_local_parts = frozenset(
            part.strip().lower() for part in list(base) + list(extra_generic_local_parts)
        )

    def is_generic_local_part(self, local_part: str) -> bool:
        if not self.detect_generic:
            return False
        local_part = strip_subaddress(local_part.lower())
        return local_part in self.generic_local_parts or bool(GENERIC_LOCAL_PART_RE.match(local_part))

    def parse_email_address(self, address: str, display_name: Optional[str] = None) -> ParsedRecipient:
        """
        Parse one recipient.

        Accepts 'john@x.com' or 'John Doe <john@x.com>'.

        Raises:
            ParsingError: If the address is empty or malformed
        """
        if not isinstance(address, str) or not address.strip():
            raise ParsingError("Email address is required", context={"address": address})

        raw = address.strip()
        if "<" in raw:
            parsed_name, parsed_address = parseaddr(raw)
            if not parsed_address:
                raise ParsingError("Malformed email address", context={"address": raw})
            raw = parsed_address
            display_name = display_name or parsed_name or None

        local_part, at, domain = raw.rpartition("@")
        if not at or not local_part or not domain or any(c.isspace() for c in raw):
            raise ParsingError("Malformed email address", context={"address": raw})

        email = raw.lower()
        display_name = display_name.strip() if display_name else None
        is_generic = self.is_generic_local_part(local_part)

        local_tokens = split_local_part(strip_subaddress(local_part))
        display_tokens = split_display_name(display_name) if display_name else []
        whole_local = strip_subaddress(local_part).lower()

        if len(local_tokens) > 1:
            names = local_tokens + display_tokens
        elif display_tokens:
            names = display_tokens + [whole_local]
        else:
            names = [whole_local]

        return ParsedRecipient(
            email=email,
            extracted_names=tuple(dedupe([n for n in names if n])),
            is_generic=is_generic,
            display_name=display_name,
        )

    def extract_all_recipients(self, recipients: Optional[Sequence[RecipientInput]]) -> List[ParsedRecipient]:
        """
        Parse every recipient, keeping caller order (To, Cc, Bcc).

        Malformed entries are logged and skipped.
        """
        if not recipients:
            return []

        parsed: List[ParsedRecipient] = []
        for index, recipient in enumerate(recipients):
            if isinstance(recipient, RecipientDetails):
                address, display_name = recipient.address, recipient.display_name
            else:
                address, display_name = recipient, None

            try:
                parsed.append(self.parse_email_address(address, display_name))
            except ParsingError as e:
                logfire.warning(
                    "Skipping malformed recipient",
                    index=index,
                    error=str(e),
                    error_kind=e.kind.value,
                )
        return parsed
