"""
Host integration layer.

adapter: contracts for the mail-client binding and settings store
orchestrator: ValidationOrchestrator (import from pipeline.integration.orchestrator)
"""

from pipeline.integration.adapter import (
    HandlerRegistration,
    MailClientAdapter,
    SaveResult,
    SettingsStore,
    ValidationListener,
)

__all__ = [
    "HandlerRegistration",
    "MailClientAdapter",
    "SaveResult",
    "SettingsStore",
    "ValidationListener",
]
