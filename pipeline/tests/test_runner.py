"""
Tests for PipelineRunner and the validation pipeline factory.
"""

import asyncio
from uuid import uuid4

import pytest

from config.validation_config import ValidationConfig
from pipeline import create_validation_pipeline
from pipeline.core.exceptions import ErrorKind, ParsingError, StepExecutionError
from pipeline.core.runner import BasePipelineStep, PipelineRunner
from pipeline.models.core import RecipientDetails, StepResult, ValidationPassData


class RecordingStep(BasePipelineStep):
    def __init__(self, name, log, delay=0.0, error=None):
        super().__init__(step_name=name)
        self.log = log
        self.delay = delay
        self.error = error

    async def _execute_step(self, pass_data):
        self.log.append(f"{self.step_name}:start")
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        self.log.append(f"{self.step_name}:end")
        return StepResult(success=True, step_name=self.step_name)


def make_pass(body="Hi Jane,\nThanks", recipients=None):
    return ValidationPassData(
        pass_id=str(uuid4()),
        email_body=body,
        recipients=recipients if recipients is not None else [
            RecipientDetails("john.doe@company.com", "John Doe")
        ],
    )


@pytest.mark.asyncio
async def test_parallel_stage_runs_concurrently():
    log = []
    runner = PipelineRunner()
    runner.register_parallel_steps([
        RecordingStep("a", log, delay=0.02),
        RecordingStep("b", log, delay=0.01),
    ])
    runner.register_step(RecordingStep("c", log))

    await runner.run(make_pass())

    assert log[:2] == ["a:start", "b:start"]
    assert log.index("c:start") > log.index("a:end")
    assert [s.step_name for s in runner.steps] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_step_failure_is_wrapped_with_kind():
    runner = PipelineRunner()
    runner.register_step(RecordingStep("broken", [], error=ParsingError("bad body")))
    pass_data = make_pass()

    with pytest.raises(StepExecutionError) as exc_info:
        await runner.run(pass_data)

    assert exc_info.value.step_name == "broken"
    assert exc_info.value.kind is ErrorKind.PARSING
    assert pass_data.errors == ["broken: bad body"]


@pytest.mark.asyncio
async def test_every_step_records_timing():
    pass_data = make_pass()

    await create_validation_pipeline().run(pass_data)

    assert set(pass_data.step_timings) == {"greeting_extractor", "recipient_parser", "name_matcher"}
    assert all(duration >= 0 for duration in pass_data.step_timings.values())


@pytest.mark.unit
def test_empty_parallel_stage_rejected():
    with pytest.raises(ValueError):
        PipelineRunner().register_parallel_steps([])


@pytest.mark.asyncio
async def test_full_pipeline_flags_mismatch():
    results = await create_validation_pipeline().run(make_pass())

    assert len(results) == 1
    assert results[0].greeting_name == "jane"
    assert results[0].is_valid is False
    assert "john" in results[0].suggested_recipient.extracted_names


@pytest.mark.asyncio
async def test_full_pipeline_respects_config():
    config = ValidationConfig(enable_fuzzy_matching=False)
    results = await create_validation_pipeline(config).run(make_pass(body="Hi Jon,"))
    assert results[0].is_valid is False

    results = await create_validation_pipeline().run(make_pass(body="Hi Jon,"))
    assert results[0].is_valid is True


@pytest.mark.asyncio
async def test_full_pipeline_skips_generic_only():
    pass_data = make_pass(recipients=[RecipientDetails("support@company.com")])
    assert await create_validation_pipeline().run(pass_data) == []
