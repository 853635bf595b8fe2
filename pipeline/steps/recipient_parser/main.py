"""
Recipient Parsing Step

Derives candidate name tokens for every recipient and flags role addresses.
"""

import logfire
from typing import Iterable, Optional

from pipeline.core.runner import BasePipelineStep
from pipeline.models.core import ValidationPassData, StepResult

from .parser import RecipientIdentityParser


class RecipientParsingStep(BasePipelineStep):
    """
    Stage 1 (runs alongside greeting extraction): parse recipients.

    Updates ValidationPassData fields:
    - parsed_recipients: List[ParsedRecipient]
    """

    def __init__(self, exclude_generic: bool = True, extra_generic_local_parts: Iterable[str] = ()):
        super().__init__(step_name="recipient_parser")
        self.parser = RecipientIdentityParser(
            extra_generic_local_parts=extra_generic_local_parts,
            detect_generic=exclude_generic,
        )

    async def _validate_input(self, pass_data: ValidationPassData) -> Optional[str]:
        if pass_data.recipients is None:
            return "recipients are missing"
        return None

    async def _execute_step(self, pass_data: ValidationPassData) -> StepResult:
        parsed = self.parser.extract_all_recipients(pass_data.recipients)
        pass_data.parsed_recipients = parsed

        warnings = []
        skipped = len(pass_data.recipients) - len(parsed)
        if skipped:
            warnings.append(f"skipped {skipped} malformed recipient(s)")

        generic = sum(1 for r in parsed if r.is_generic)
        logfire.info(
            "Recipients parsed",
            pass_id=pass_data.pass_id,
            total=len(parsed),
            generic=generic,
            skipped=skipped
        )

        return StepResult(
            success=True,
            step_name=self.step_name,
            metadata={"recipients": len(parsed), "generic": generic},
            warnings=warnings
        )
