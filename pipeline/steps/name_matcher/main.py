"""
Name Matching Step

Pairs every extracted greeting name with the parsed recipients and produces
the ValidationResult list returned by the pipeline.
"""

import logfire
from typing import Optional

from pipeline.core.runner import BasePipelineStep
from pipeline.models.core import ValidationPassData, StepResult

from .matcher import NameMatcher


class NameMatchingStep(BasePipelineStep):
    """
    Stage 2: match greeting names against non-generic recipients.

    Updates ValidationPassData fields:
    - results: List[ValidationResult]
    """

    def __init__(self, matcher: Optional[NameMatcher] = None):
        super().__init__(step_name="name_matcher")
        self.matcher = matcher or NameMatcher()

    async def _validate_input(self, pass_data: ValidationPassData) -> Optional[str]:
        if pass_data.parsed_content is None:
            return "parsed_content missing (greeting extraction has not run)"
        return None

    async def _execute_step(self, pass_data: ValidationPassData) -> StepResult:
        eligible = [r for r in pass_data.parsed_recipients if not r.is_generic]
        if not pass_data.greetings or not eligible:
            pass_data.results = []
            return StepResult(
                success=True,
                step_name=self.step_name,
                metadata={"results": 0, "skipped": "no greetings or no eligible recipients"}
            )

        results = self.matcher.validate_names(pass_data.greetings, eligible)
        pass_data.results = results

        valid, invalid = self.matcher.match_summary(results)
        warnings = []
        skipped = len(pass_data.greetings) - len(results)
        if skipped:
            warnings.append(f"skipped {skipped} greeting(s) during matching")

        logfire.info(
            "Greeting names matched",
            pass_id=pass_data.pass_id,
            valid=valid,
            invalid=invalid,
            mismatches=[r.greeting_name for r in results if not r.is_valid]
        )

        return StepResult(
            success=True,
            step_name=self.step_name,
            metadata={"results": len(results), "valid": valid, "invalid": invalid},
            warnings=warnings
        )
