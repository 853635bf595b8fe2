"""
Core pipeline infrastructure - base classes for all steps.

BasePipelineStep: Abstract base class for pipeline steps
PipelineRunner: Executes stages in order; steps within one stage run concurrently
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional, List, Sequence
import time
import logfire

from pipeline.models.core import ValidationPassData, ValidationResult, StepResult
from pipeline.core.exceptions import StepExecutionError, ValidationError


class BasePipelineStep(ABC):
    """
    Abstract base class for all pipeline steps.

    Each step must implement:
    - _execute_step(): Core business logic
    - Optionally: _validate_input(): Input validation

    The execute() method wraps step execution with:
    - Logfire observability spans
    - Error handling and logging
    - Timing metrics
    """

    def __init__(self, step_name: str):
        """
        Initialize pipeline step.

        Args:
            step_name: Unique identifier for this step (used in logs)
        """
        self.step_name = step_name

    async def execute(self, pass_data: ValidationPassData) -> StepResult:
        """
        Execute the pipeline step with full observability.

        Args:
            pass_data: Shared data object (modified in-place)

        Returns:
            StepResult indicating success/failure

        Raises:
            StepExecutionError: If step fails and cannot continue
        """
        start_time = time.perf_counter()

        with logfire.span(
            f"pipeline.{self.step_name}",
            pass_id=pass_data.pass_id,
            step=self.step_name
        ):
            try:
                logfire.info(
                    f"{self.step_name} started",
                    pass_id=pass_data.pass_id
                )

                validation_error = await self._validate_input(pass_data)
                if validation_error:
                    raise ValidationError(
                        f"Input validation failed: {validation_error}",
                        context={"step": self.step_name},
                    )

                result = await self._execute_step(pass_data)

                duration = time.perf_counter() - start_time
                pass_data.add_timing(self.step_name, duration)

                if result.metadata is None:
                    result.metadata = {}
                result.metadata["duration"] = duration

                for warning in result.warnings:
                    pass_data.add_error(self.step_name, warning)

                logfire.info(
                    f"{self.step_name} completed",
                    pass_id=pass_data.pass_id,
                    duration=duration,
                    success=result.success,
                    warnings=len(result.warnings)
                )

                return result

            except Exception as e:
                duration = time.perf_counter() - start_time

                logfire.error(
                    f"{self.step_name} failed",
                    pass_id=pass_data.pass_id,
                    error=str(e),
                    error_type=type(e).__name__,
                    duration=duration,
                    exc_info=True
                )

                pass_data.add_error(self.step_name, str(e))

                raise StepExecutionError(self.step_name, e) from e

    async def _validate_input(self, pass_data: ValidationPassData) -> Optional[str]:
        """
        Validate that prerequisites for this step are met.

        Returns:
            Error message if validation fails, None if valid
        """
        return None

    @abstractmethod
    async def _execute_step(self, pass_data: ValidationPassData) -> StepResult:
        """
        Execute step-specific business logic.

        MUST BE IMPLEMENTED by each step.

        Args:
            pass_data: Shared data object (modify in-place)

        Returns:
            StepResult with success=True/False
        """
        pass


class PipelineRunner:
    """
    Orchestrates execution of the validation pipeline.

    Responsibilities:
    - Register stages in execution order (a stage is one or more steps)
    - Run the steps of a stage concurrently, stages sequentially
    - Handle step failures
    - Return the final ValidationResult list
    """

    def __init__(self, stages: Optional[List[List[BasePipelineStep]]] = None):
        self.stages: List[List[BasePipelineStep]] = stages or []

    @property
    def steps(self) -> List[BasePipelineStep]:
        """All registered steps, flattened in stage order."""
        return [step for stage in self.stages for step in stage]

    def register_step(self, step: BasePipelineStep) -> None:
        """Add a single-step stage. Stages execute in the order they are registered."""
        self.stages.append([step])

    def register_parallel_steps(self, steps: Sequence[BasePipelineStep]) -> None:
        """Add a stage whose steps run concurrently. Steps must write disjoint fields."""
        if not steps:
            raise ValueError("A parallel stage needs at least one step")
        self.stages.append(list(steps))

    async def _run_stage(
        self,
        stage: List[BasePipelineStep],
        pass_data: ValidationPassData,
    ) -> None:
        if len(stage) == 1:
            results = [await stage[0].execute(pass_data)]
        else:
            outcomes = await asyncio.gather(
                *(step.execute(pass_data) for step in stage),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome
            results = list(outcomes)

        for step, result in zip(stage, results):
            if not result.success:
                raise StepExecutionError(
                    step.step_name,
                    Exception(result.error or "Unknown error")
                )

    async def run(self, pass_data: ValidationPassData) -> List[ValidationResult]:
        """
        Run all pipeline stages.

        Args:
            pass_data: Shared data object

        Returns:
            ValidationResult list produced by the final step

        Raises:
            StepExecutionError: If any step fails
        """
        with logfire.span(
            "pipeline.validation_pass",
            pass_id=pass_data.pass_id,
            generation=pass_data.generation,
            recipients=len(pass_data.recipients)
        ):
            total_stages = len(self.stages)
            logfire.info(
                "Pipeline execution started",
                pass_id=pass_data.pass_id,
                total_stages=total_stages
            )

            for i, stage in enumerate(self.stages):
                logfire.info(
                    f"Executing stage {i+1}/{total_stages}",
                    steps=[step.step_name for step in stage],
                    progress_pct=int(((i + 1) / total_stages) * 100)
                )
                await self._run_stage(stage, pass_data)

            logfire.info(
                "Pipeline execution completed",
                pass_id=pass_data.pass_id,
                results=len(pass_data.results),
                total_duration=pass_data.total_duration(),
                step_timings=pass_data.step_timings,
                non_fatal_errors=len(pass_data.errors)
            )

            return list(pass_data.results)
