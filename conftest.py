"""Root conftest.py for pytest configuration.

This file configures pytest for the entire project, ensuring:
- Proper Python path setup for imports
- Logfire observability configuration (local only)
- Shared fixtures: in-memory mail client and settings store
- Async test support
"""

import asyncio
import sys
from collections import deque
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence

import logfire
import pytest

from pipeline.integration.adapter import SaveResult
from pipeline.models.core import RecipientDetails


# ============================================================================
# Python Path Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom settings and ensure project root is in sys.path."""

    project_root = Path(__file__).parent.resolve()
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

    # Register custom markers
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests that drive the orchestrator end to end"
    )
    config.addinivalue_line(
        "markers",
        "unit: marks tests as unit tests (fast, no external dependencies)"
    )

    # Configure logfire for all tests, nothing leaves the machine
    logfire.configure(
        service_name="name_validator_tests",
        environment="test",
        send_to_logfire=False,
        console=False,
    )

    logfire.info(
        "Starting test suite",
        project_root=str(project_root),
    )


def pytest_sessionfinish(session, exitstatus):
    """Log test session completion with summary statistics."""
    logfire.info(
        "Test suite completed",
        exit_status=exitstatus,
        tests_collected=session.testscollected,
        tests_failed=session.testsfailed,
    )


# ============================================================================
# Fakes
# ============================================================================

class FakeRegistration:
    """Handle returned by FakeMailClient.on_*_changed."""

    def __init__(self, registry: List[Callable[[], None]], callback: Callable[[], None]):
        self._registry = registry
        self._callback = callback
        self.removed = False

    def remove(self) -> None:
        if not self.removed and self._callback in self._registry:
            self._registry.remove(self._callback)
        self.removed = True


class FakeMailClient:
    """
    In-memory MailClientAdapter.

    Queue exceptions in body_failures / recipient_failures to make the next
    calls fail; set delay to keep calls pending for concurrency tests.
    """

    def __init__(self, body: str = "", recipients: Sequence[RecipientDetails] = ()):
        self.body = body
        self.recipients: List[RecipientDetails] = list(recipients)
        self.body_failures: Deque[BaseException] = deque()
        self.recipient_failures: Deque[BaseException] = deque()
        self.delay = 0.0
        self.body_calls = 0
        self.recipient_calls = 0
        self.content_handlers: List[Callable[[], None]] = []
        self.recipient_handlers: List[Callable[[], None]] = []
        self.registrations: List[FakeRegistration] = []

    async def get_body(self) -> str:
        self.body_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.body_failures:
            raise self.body_failures.popleft()
        return self.body

    async def get_recipients(self) -> List[RecipientDetails]:
        self.recipient_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.recipient_failures:
            raise self.recipient_failures.popleft()
        return list(self.recipients)

    def on_content_changed(self, callback: Callable[[], None]) -> FakeRegistration:
        self.content_handlers.append(callback)
        registration = FakeRegistration(self.content_handlers, callback)
        self.registrations.append(registration)
        return registration

    def on_recipients_changed(self, callback: Callable[[], None]) -> FakeRegistration:
        self.recipient_handlers.append(callback)
        registration = FakeRegistration(self.recipient_handlers, callback)
        self.registrations.append(registration)
        return registration

    def fire_content_changed(self) -> None:
        for handler in list(self.content_handlers):
            handler()

    def fire_recipients_changed(self) -> None:
        for handler in list(self.recipient_handlers):
            handler()


class FakeSettingsStore:
    """In-memory roaming settings with a controllable save outcome."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.values: Dict[str, Any] = dict(initial or {})
        self.saved: Dict[str, Any] = dict(self.values)
        self.fail_next_save: Optional[str] = None
        self.save_count = 0

    def get(self, key: str) -> Any:
        return self.values.get(key)

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    def save_async(self, callback: Callable[[SaveResult], None]) -> None:
        self.save_count += 1
        if self.fail_next_save is not None:
            message, self.fail_next_save = self.fail_next_save, None
            callback(SaveResult(succeeded=False, error_message=message))
            return
        self.saved = dict(self.values)
        callback(SaveResult(succeeded=True))


class RecordingListener:
    """Collects orchestrator notifications."""

    def __init__(self):
        self.started = 0
        self.completed: List[list] = []
        self.errors: List[Exception] = []

    def on_validation_started(self) -> None:
        self.started += 1

    def on_validation_complete(self, results) -> None:
        self.completed.append(list(results))

    def on_validation_error(self, error: Exception) -> None:
        self.errors.append(error)


async def no_sleep(_delay: float) -> None:
    """Backoff sleep replacement that only yields to the loop."""
    await asyncio.sleep(0)


# ============================================================================
# Shared Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def project_root():
    """Return the absolute path to the project root directory."""
    return Path(__file__).parent.resolve()


@pytest.fixture
def mail_client():
    """Mail client with a mismatched greeting: 'Hi Jane,' to John Doe."""
    return FakeMailClient(
        body="Hi Jane,\n\nThanks for the update on the budget.\n\nBest regards,\nAlex",
        recipients=[RecipientDetails("john.doe@company.com", "John Doe")],
    )


@pytest.fixture
def mail_client_factory():
    """Build FakeMailClient instances with custom body/recipients."""
    return FakeMailClient


@pytest.fixture
def settings_store():
    return FakeSettingsStore()


@pytest.fixture
def settings_store_factory():
    return FakeSettingsStore


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def fast_sleep():
    return no_sleep


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Fixture to mock environment variables for testing.

    Usage:
        def test_something(mock_env_vars):
            mock_env_vars({"PRIMARY_LANGUAGE": "de"})
    """
    def _set_env_vars(env_dict: dict):
        for key, value in env_dict.items():
            monkeypatch.setenv(key, value)

    return _set_env_vars


# ============================================================================
# Async Test Configuration
# ============================================================================

@pytest.fixture(scope="session")
def event_loop_policy():
    """Set the event loop policy for async tests."""
    return asyncio.DefaultEventLoopPolicy()
