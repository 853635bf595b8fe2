"""
Contracts for the host mail-client binding.

The orchestrator never talks to the host directly: it receives a
MailClientAdapter at construction. Production code wraps the real host API;
tests use the in-memory fakes from conftest.py.

Adapters signal failures by raising MailClientError with the matching
ErrorKind (permission_denied, not_found, network, timeout, quota, ...).
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Sequence, runtime_checkable

from pipeline.models.core import RecipientDetails


ChangeCallback = Callable[[], None]


@runtime_checkable
class HandlerRegistration(Protocol):
    """Handle returned when a change callback is registered."""

    def remove(self) -> None:
        ...


@runtime_checkable
class MailClientAdapter(Protocol):
    """Read access to the compose window plus change notifications."""

    async def get_body(self) -> str:
        ...

    async def get_recipients(self) -> Sequence[RecipientDetails]:
        """Recipients in To, Cc, Bcc order."""
        ...

    def on_content_changed(self, callback: ChangeCallback) -> HandlerRegistration:
        ...

    def on_recipients_changed(self, callback: ChangeCallback) -> HandlerRegistration:
        ...


@dataclass(frozen=True)
class SaveResult:
    """Outcome passed to the save_async callback."""

    succeeded: bool
    error_message: Optional[str] = None


@runtime_checkable
class SettingsStore(Protocol):
    """Roaming settings surface: get/set plus an asynchronous commit."""

    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def save_async(self, callback: Callable[[SaveResult], None]) -> None:
        ...


class ValidationListener(Protocol):
    """
    Presentation-layer callbacks.

    Any subset may be implemented; missing methods are skipped.
    """

    def on_validation_started(self) -> None:
        ...

    def on_validation_complete(self, results: Sequence[Any]) -> None:
        ...

    def on_validation_error(self, error: Exception) -> None:
        ...
