"""
Pipeline factory function.

This module provides create_validation_pipeline() which instantiates
all pipeline steps in the correct order.
"""

from typing import TYPE_CHECKING, Optional

from pipeline.core.runner import PipelineRunner

if TYPE_CHECKING:
    from config.validation_config import ValidationConfig


def create_validation_pipeline(config: Optional["ValidationConfig"] = None) -> PipelineRunner:
    """
    Factory function to create a fully configured name validation pipeline.

    Stages are registered in execution order:
    1. GreetingExtractor + RecipientParser (concurrently)
    2. NameMatcher: Match each greeting name against non-generic recipients

    Args:
        config: Validation settings; defaults when omitted

    Returns:
        PipelineRunner with all steps registered and ready to execute

    Example:
        ```python
        from pipeline import create_validation_pipeline
        from pipeline.models.core import RecipientDetails, ValidationPassData

        runner = create_validation_pipeline()

        pass_data = ValidationPassData(
            pass_id="abc-123",
            email_body="Hi Jane,\\n\\nThanks for the notes.",
            recipients=[RecipientDetails("john.doe@company.com", "John Doe")],
        )

        results = await runner.run(pass_data)
        # [ValidationResult(greeting_name='jane', is_valid=False, ...)]
        ```
    """
    # Import lazily to avoid circular dependencies at package import time
    from config.validation_config import ValidationConfig
    from pipeline.steps.greeting_extractor.main import GreetingExtractionStep
    from pipeline.steps.recipient_parser.main import RecipientParsingStep
    from pipeline.steps.name_matcher.main import NameMatchingStep
    from pipeline.steps.name_matcher.matcher import NameMatcher

    config = config or ValidationConfig()
    runner = PipelineRunner()

    runner.register_parallel_steps([
        GreetingExtractionStep(language=config.language),
        RecipientParsingStep(exclude_generic=config.exclude_generic_emails),
    ])
    runner.register_step(NameMatchingStep(NameMatcher(
        enable_fuzzy_matching=config.enable_fuzzy_matching,
        fuzzy_similarity_threshold=config.fuzzy_similarity_threshold,
        minimum_confidence_threshold=config.minimum_confidence_threshold,
    )))

    return runner
