"""
In-memory diagnostic log.

Keeps the most recent entries (category, message, context) so degraded
validation passes can be inspected after the fact. Every entry is mirrored
to Logfire at the matching level.
"""

import json
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

import logfire

from config.settings import settings
from pipeline.core.exceptions import PipelineExecutionError


class LogLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class DiagnosticEntry:
    level: LogLevel
    category: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["level"] = self.level.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


class DiagnosticLog:
    """Bounded ring of diagnostic entries."""

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries or settings.diagnostic_log_size
        self._entries: Deque[DiagnosticEntry] = deque(maxlen=self.max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _record(self, level: LogLevel, category: str, message: str, context: Dict[str, Any]) -> DiagnosticEntry:
        entry = DiagnosticEntry(level=level, category=category, message=message, context=context)
        self._entries.append(entry)

        log = {
            LogLevel.INFO: logfire.info,
            LogLevel.WARNING: logfire.warning,
            LogLevel.ERROR: logfire.error,
        }[level]
        log("Diagnostic {category}: {diagnostic_message}", category=category,
            diagnostic_message=message, **{f"ctx_{k}": v for k, v in context.items()})
        return entry

    def error(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> DiagnosticEntry:
        """Record a failure; pipeline errors contribute their kind and context."""
        details: Dict[str, Any] = {}
        if isinstance(error, PipelineExecutionError):
            category = error.kind.value
            details.update(error.context)
            details["error_id"] = error.error_id
            if error.original_error is not None:
                details["original_error"] = f"{type(error.original_error).__name__}: {error.original_error}"
        else:
            category = "unknown"
            details["error_type"] = type(error).__name__
        details.update(context or {})
        return self._record(LogLevel.ERROR, category, str(error), details)

    def warning(self, message: str, category: str = "general", **context: Any) -> DiagnosticEntry:
        return self._record(LogLevel.WARNING, category, message, context)

    def info(self, message: str, category: str = "general", **context: Any) -> DiagnosticEntry:
        return self._record(LogLevel.INFO, category, message, context)

    def entries(self, level: Optional[LogLevel] = None) -> List[DiagnosticEntry]:
        if level is None:
            return list(self._entries)
        return [e for e in self._entries if e.level is level]

    def counts_by_category(self, level: LogLevel = LogLevel.ERROR) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for entry in self.entries(level):
            counts[entry.category] = counts.get(entry.category, 0) + 1
        return counts

    def export(self) -> str:
        """JSON array of all entries, oldest first."""
        return json.dumps([e.to_dict() for e in self._entries], default=str)

    def clear(self) -> None:
        self._entries.clear()
