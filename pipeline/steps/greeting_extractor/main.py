"""
Greeting Extraction Step

Converts the email body to plain text and extracts the names used in
greeting phrases ("Hi John,", "Sehr geehrte Frau Müller,", "Bonjour Marie !").
"""

import logfire
from typing import Optional, Union

from pipeline.core.runner import BasePipelineStep
from pipeline.models.core import ValidationPassData, StepResult, SupportedLanguage

from .extractor import GreetingExtractor


class GreetingExtractionStep(BasePipelineStep):
    """
    Stage 1 (runs alongside recipient parsing): extract greeting names.

    Updates ValidationPassData fields:
    - parsed_content: ParsedContent
    """

    def __init__(self, language: Union[SupportedLanguage, str] = SupportedLanguage.AUTO):
        super().__init__(step_name="greeting_extractor")
        self.extractor = GreetingExtractor(language=language)

    async def _validate_input(self, pass_data: ValidationPassData) -> Optional[str]:
        if pass_data.email_body is None:
            return "email_body is missing"
        return None

    async def _execute_step(self, pass_data: ValidationPassData) -> StepResult:
        parsed = self.extractor.parse_email_content(pass_data.email_body)
        pass_data.parsed_content = parsed

        logfire.info(
            "Greetings extracted",
            pass_id=pass_data.pass_id,
            greetings=[g.extracted_name for g in parsed.greetings],
            has_valid_content=parsed.has_valid_content
        )

        return StepResult(
            success=True,
            step_name=self.step_name,
            metadata={
                "greetings_found": len(parsed.greetings),
                "has_valid_content": parsed.has_valid_content,
            }
        )
