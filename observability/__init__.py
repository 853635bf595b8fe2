"""
Observability package.

Provides logging and tracing via Logfire plus the in-memory diagnostic log.
"""
from observability.logfire_config import LogfireConfig
from observability.diagnostics import DiagnosticEntry, DiagnosticLog, LogLevel

__all__ = ["LogfireConfig", "DiagnosticEntry", "DiagnosticLog", "LogLevel"]
