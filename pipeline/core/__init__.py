"""
Core pipeline infrastructure.

This package contains the core components of the pipeline:
- BasePipelineStep: Abstract base class for all pipeline steps
- PipelineRunner: Runs stages in order, steps within a stage concurrently

Data models are in pipeline.models.core
Custom exceptions are in pipeline.core.exceptions
Retry policy and circuit breaker are in pipeline.core.retry
Debounce timer is in pipeline.core.timers
"""

from pipeline.core.runner import BasePipelineStep, PipelineRunner

__all__ = [
    "BasePipelineStep",
    "PipelineRunner",
]
