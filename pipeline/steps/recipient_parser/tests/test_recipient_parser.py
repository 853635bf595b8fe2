"""
Test suite for Recipient Identity Parser

Run with:
    pytest pipeline/steps/recipient_parser/tests/test_recipient_parser.py -v
"""

import pytest
from uuid import uuid4

from pipeline.core.exceptions import ErrorKind, ParsingError
from pipeline.models.core import RecipientDetails, ValidationPassData
from pipeline.steps.recipient_parser import RecipientIdentityParser, RecipientParsingStep
from pipeline.steps.recipient_parser.utils import split_display_name, split_local_part


@pytest.fixture
def parser():
    return RecipientIdentityParser()


# ===================================================================
# LOCAL PART
# ===================================================================

@pytest.mark.unit
@pytest.mark.parametrize("local_part,expected", [
    ("john.doe", ["john", "doe"]),
    ("john_doe", ["john", "doe"]),
    ("john-doe", ["john", "doe"]),
    ("JohnDoe", ["john", "doe"]),
    ("johnDoe", ["john", "doe"]),
    ("john.doe2", ["john", "doe2"]),
    ("j.doe", ["doe"]),
    ("jdoe", ["jdoe"]),
    ("j", ["j"]),
])
def test_split_local_part(local_part, expected):
    assert split_local_part(local_part) == expected


@pytest.mark.unit
def test_split_display_name_drops_titles():
    assert split_display_name("Dr. Jane Smith") == ["jane", "smith"]
    assert split_display_name("Smith, Jane") == ["smith", "jane"]
    assert split_display_name("Frau Anna Müller") == ["anna", "müller"]


@pytest.mark.unit
def test_display_name_tokens_are_casefolded():
    assert split_display_name("Günter Weiß") == ["günter", "weiss"]
    assert split_display_name("GÜNTER WEISS") == ["günter", "weiss"]


# ===================================================================
# PARSE EMAIL ADDRESS
# ===================================================================

@pytest.mark.unit
def test_address_with_separator(parser):
    recipient = parser.parse_email_address("John.Doe@Company.com", "John Doe")

    assert recipient.email == "john.doe@company.com"
    assert recipient.extracted_names == ("john", "doe")
    assert recipient.is_generic is False
    assert recipient.display_name == "John Doe"


@pytest.mark.unit
def test_display_name_used_without_separator(parser):
    recipient = parser.parse_email_address("jsmith@company.com", "Jane Smith")
    assert recipient.extracted_names == ("jane", "smith", "jsmith")


@pytest.mark.unit
def test_single_token_without_display_name(parser):
    recipient = parser.parse_email_address("maria@company.com")
    assert recipient.extracted_names == ("maria",)


@pytest.mark.unit
def test_subaddress_is_removed(parser):
    recipient = parser.parse_email_address("john.doe+newsletter@company.com")
    assert recipient.extracted_names == ("john", "doe")


@pytest.mark.unit
def test_angle_bracket_form(parser):
    recipient = parser.parse_email_address("Sarah Connor <sconnor@example.org>")

    assert recipient.email == "sconnor@example.org"
    assert recipient.display_name == "Sarah Connor"
    assert recipient.extracted_names == ("sarah", "connor", "sconnor")


@pytest.mark.unit
def test_names_are_unique_and_ordered(parser):
    recipient = parser.parse_email_address("anna.lee@example.com", "Anna Lee")
    assert recipient.extracted_names == ("anna", "lee")


@pytest.mark.unit
def test_trailing_digits_are_kept(parser):
    recipient = parser.parse_email_address("doe2@example.com")
    assert recipient.extracted_names == ("doe2",)


@pytest.mark.unit
@pytest.mark.parametrize("address", ["", "   ", "not-an-address", "@example.com", "john@", "jo hn@example.com"])
def test_malformed_addresses_raise(parser, address):
    with pytest.raises(ParsingError) as exc_info:
        parser.parse_email_address(address)
    assert exc_info.value.kind is ErrorKind.PARSING


# ===================================================================
# GENERIC ADDRESSES
# ===================================================================

@pytest.mark.unit
@pytest.mark.parametrize("local_part", ["info", "support", "noreply", "admin", "no-reply", "no_reply",
                                        "do-not-reply", "postmaster", "mailer-daemon", "Sales"])
def test_generic_addresses(parser, local_part):
    recipient = parser.parse_email_address(f"{local_part}@domain.com", "Jane Smith")
    assert recipient.is_generic is True


@pytest.mark.unit
def test_generic_detection_is_configurable():
    parser = RecipientIdentityParser(extra_generic_local_parts=["helpdesk"])
    assert parser.parse_email_address("helpdesk@corp.com").is_generic
    assert not parser.parse_email_address("john@corp.com").is_generic

    permissive = RecipientIdentityParser(detect_generic=False)
    assert not permissive.parse_email_address("info@corp.com").is_generic


@pytest.mark.unit
def test_personal_address_is_not_generic(parser):
    assert parser.parse_email_address("information.officer@x.com").is_generic is False


# ===================================================================
# BATCH
# ===================================================================

@pytest.mark.unit
def test_extract_all_keeps_order_and_skips_malformed(parser):
    recipients = [
        RecipientDetails("john.doe@company.com", "John Doe"),
        RecipientDetails("broken"),
        "Jane Roe <jane.roe@company.com>",
        RecipientDetails("info@company.com"),
    ]
    parsed = parser.extract_all_recipients(recipients)

    assert [r.email for r in parsed] == [
        "john.doe@company.com",
        "jane.roe@company.com",
        "info@company.com",
    ]
    assert [r.is_generic for r in parsed] == [False, False, True]


@pytest.mark.unit
def test_extract_all_empty(parser):
    assert parser.extract_all_recipients([]) == []
    assert parser.extract_all_recipients(None) == []


@pytest.mark.asyncio
async def test_recipient_parsing_step_reports_skipped():
    step = RecipientParsingStep()
    pass_data = ValidationPassData(
        pass_id=str(uuid4()),
        email_body="Hi John,",
        recipients=[RecipientDetails("john.doe@company.com"), RecipientDetails("")],
    )

    result = await step.execute(pass_data)

    assert result.success
    assert len(pass_data.parsed_recipients) == 1
    assert result.warnings == ["skipped 1 malformed recipient(s)"]
    assert pass_data.errors == ["recipient_parser: skipped 1 malformed recipient(s)"]
