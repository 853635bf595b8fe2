"""
ValidationOrchestrator: runs the validation pipeline against the open draft.

Owns the per-session state: cached body and recipients, the generation
counter that marks in-flight passes stale, the debounce timer, the circuit
breaker and the single in-flight pass. All methods run on one event loop.

States: Idle -> Validating -> Idle, Disabled (left only by re-enabling) and
Disposed (terminal).
"""

import asyncio
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import logfire

from config.validation_config import ConfigurationManager, ValidationConfig
from observability.diagnostics import DiagnosticLog
from pipeline import create_validation_pipeline
from pipeline.core.retry import CircuitBreaker, retry_async
from pipeline.core.timers import DebounceTimer
from pipeline.integration.adapter import HandlerRegistration, MailClientAdapter, SettingsStore
from pipeline.models.core import (
    RecipientDetails,
    ValidationPassData,
    ValidationResult,
    ValidationState,
)

RecipientLike = Union[RecipientDetails, str]


def _as_recipient(recipient: RecipientLike) -> RecipientDetails:
    if isinstance(recipient, RecipientDetails):
        return recipient
    return RecipientDetails(address=str(recipient))


class ValidationOrchestrator:
    """
    End-to-end validation with caching, debouncing and fault tolerance.

    Args:
        adapter: Mail-client binding (body, recipients, change notifications)
        config_manager: Source of ValidationConfig; in-memory defaults when omitted
        diagnostics: Diagnostic log for degraded passes
        clock: Monotonic clock for cache TTL and the circuit breaker
        sleep: Backoff sleep used between retries
    """

    def __init__(
        self,
        adapter: MailClientAdapter,
        config_manager: Optional[ConfigurationManager] = None,
        diagnostics: Optional[DiagnosticLog] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.adapter = adapter
        self.config_manager = config_manager or ConfigurationManager()
        self.diagnostics = diagnostics or DiagnosticLog()
        self._clock = clock
        self._sleep = sleep

        self.config: ValidationConfig = self.config_manager.config
        self._runner = create_validation_pipeline(self.config)
        self._breaker = CircuitBreaker(
            threshold=self.config.circuit_breaker_threshold,
            cooldown=self.config.circuit_breaker_cooldown,
            clock=clock,
        )
        self._debounce = DebounceTimer(self.config.debounce_delay, self._on_debounce_fired)

        self._listeners: List[Any] = []
        self._handles: List[HandlerRegistration] = []

        self._cached_content: Optional[str] = None
        self._content_cached_at = 0.0
        self._cached_recipients: Optional[Tuple[RecipientDetails, ...]] = None
        self._recipients_cached_at = 0.0

        self._generation = 0
        self._inflight: Optional[asyncio.Task] = None
        self._enabled = True
        self._pending_while_disabled = False
        self._last_validation_time: Optional[datetime] = None
        self._last_results: Tuple[ValidationResult, ...] = ()
        self._consecutive_errors = 0
        self._total_errors = 0
        self._initialized = False
        self._disposed = False
        self.pass_count = 0

    # ===================================================================
    # LIFECYCLE
    # ===================================================================

    def initialize(self) -> None:
        """Register host change handlers. Safe to call more than once."""
        if self._initialized or self._disposed:
            return
        self._handles.append(self.adapter.on_content_changed(self.handle_content_changed))
        self._handles.append(self.adapter.on_recipients_changed(self.handle_recipients_changed))
        self._initialized = True
        logfire.info("Validation orchestrator initialized", handlers=len(self._handles))

    def dispose(self) -> None:
        """
        Release all state and detach from the host.

        A pass still running completes in the background but its results are
        never delivered or cached.
        """
        if self._disposed:
            return
        self._disposed = True
        self._debounce.dispose()
        self._generation += 1

        for handle in self._handles:
            try:
                handle.remove()
            except Exception as e:
                logfire.warning(
                    "Failed to remove host change handler",
                    error=str(e),
                    error_type=type(e).__name__,
                )
        self._handles.clear()

        self._invalidate_cache()
        self._inflight = None
        self._listeners.clear()
        logfire.info("Validation orchestrator disposed", passes=self.pass_count)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # ===================================================================
    # CHANGE NOTIFICATIONS
    # ===================================================================

    def handle_content_changed(self) -> None:
        """Host callback: the body changed. Invalidates both cache slots."""
        self._on_host_change("content")

    def handle_recipients_changed(self) -> None:
        """Host callback: recipients changed. Invalidates both cache slots."""
        self._on_host_change("recipients")

    def _on_host_change(self, source: str) -> None:
        if self._disposed:
            return
        self._invalidate_cache()
        self._generation += 1
        logfire.debug("Host change received", source=source, generation=self._generation)
        self._request_validation()

    def on_content_changed(self, content: Optional[str]) -> None:
        """Store the current body and schedule a debounced pass."""
        if self._disposed:
            return
        self._cached_content = content or ""
        self._content_cached_at = self._clock()
        self._generation += 1
        self._request_validation()

    def on_recipients_changed(self, recipients: Optional[Iterable[RecipientLike]]) -> None:
        """Store the current recipients and schedule a debounced pass."""
        if self._disposed:
            return
        self._cached_recipients = tuple(_as_recipient(r) for r in (recipients or ()))
        self._recipients_cached_at = self._clock()
        self._generation += 1
        self._request_validation()

    def _invalidate_cache(self) -> None:
        self._cached_content = None
        self._cached_recipients = None

    def _request_validation(self) -> None:
        if not self._enabled:
            self._pending_while_disabled = True
            return
        self._debounce.schedule()

    async def _on_debounce_fired(self) -> None:
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            await asyncio.shield(inflight)
        if self._disposed or not self._enabled:
            return
        await self.validate_current_email()

    # ===================================================================
    # ENABLE / DISABLE
    # ===================================================================

    def set_validation_enabled(self, enabled: bool) -> None:
        if self._disposed or enabled == self._enabled:
            return
        self._enabled = enabled

        if not enabled:
            if self._debounce.pending:
                self._pending_while_disabled = True
            self._debounce.cancel()
            logfire.info("Validation disabled")
            return

        logfire.info("Validation enabled", pending_change=self._pending_while_disabled)
        if self._pending_while_disabled:
            self._pending_while_disabled = False
            self._debounce.schedule()

    def is_validation_enabled(self) -> bool:
        return self._enabled

    # ===================================================================
    # VALIDATION
    # ===================================================================

    async def validate_current_email(self) -> List[ValidationResult]:
        """
        Validate the current draft.

        Single-flight: while a pass is running, callers share its outcome.
        Never raises for host or pipeline failures; those yield [].
        """
        if self._disposed or not self._enabled:
            return []

        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.get_running_loop().create_task(
                self._run_pass(self._generation)
            )
        results = await asyncio.shield(self._inflight)
        return list(results)

    def is_validation_in_progress(self) -> bool:
        return (
            not self._disposed
            and self._inflight is not None
            and not self._inflight.done()
        )

    def _is_current(self, generation: int) -> bool:
        return not self._disposed and generation == self._generation

    async def _run_pass(self, generation: int) -> List[ValidationResult]:
        pass_id = uuid.uuid4().hex[:12]
        self.pass_count += 1

        with logfire.span(
            "orchestrator.validation_pass",
            pass_id=pass_id,
            generation=generation
        ):
            self._notify("on_validation_started")
            try:
                body, recipients = await self._fetch_inputs(generation)

                if not body.strip() or not recipients:
                    logfire.info(
                        "Nothing to validate",
                        pass_id=pass_id,
                        has_body=bool(body.strip()),
                        recipients=len(recipients)
                    )
                    results: List[ValidationResult] = []
                else:
                    pass_data = ValidationPassData(
                        pass_id=pass_id,
                        email_body=body,
                        recipients=list(recipients),
                        generation=generation,
                    )
                    results = await self._runner.run(pass_data)

                self._consecutive_errors = 0

            except asyncio.CancelledError:
                raise

            except Exception as e:
                self._consecutive_errors += 1
                self._total_errors += 1
                self.diagnostics.error(e, {
                    "pass_id": pass_id,
                    "generation": generation,
                    "consecutive_errors": self._consecutive_errors,
                })
                logfire.warning(
                    "Validation pass degraded to empty result",
                    pass_id=pass_id,
                    error=str(e),
                    error_type=type(e).__name__
                )
                if self._is_current(generation):
                    self._notify("on_validation_error", e)
                return []

            self._last_validation_time = datetime.now(timezone.utc)

            if not self._is_current(generation):
                logfire.info(
                    "Discarding stale validation results",
                    pass_id=pass_id,
                    generation=generation,
                    current_generation=self._generation
                )
                return results

            self._last_results = tuple(results)
            self._notify("on_validation_complete", list(results))
            return results

    async def _fetch_inputs(self, generation: int) -> Tuple[str, Tuple[RecipientDetails, ...]]:
        body, recipients = await asyncio.gather(
            self._get_body(generation),
            self._get_recipients(generation),
            return_exceptions=True,
        )
        for outcome in (body, recipients):
            if isinstance(outcome, BaseException):
                raise outcome
        return body, recipients

    def _fresh(self, cached_at: float) -> bool:
        return self._clock() - cached_at < self.config.cache_ttl

    async def _get_body(self, generation: int) -> str:
        if self._cached_content is not None and self._fresh(self._content_cached_at):
            return self._cached_content

        body = await self._call_adapter(self.adapter.get_body, "get_body")
        body = body or ""
        if self._is_current(generation):
            self._cached_content = body
            self._content_cached_at = self._clock()
        return body

    async def _get_recipients(self, generation: int) -> Tuple[RecipientDetails, ...]:
        if self._cached_recipients is not None and self._fresh(self._recipients_cached_at):
            return self._cached_recipients

        raw = await self._call_adapter(self.adapter.get_recipients, "get_recipients")
        recipients = tuple(_as_recipient(r) for r in (raw or ()))
        if self._is_current(generation):
            self._cached_recipients = recipients
            self._recipients_cached_at = self._clock()
        return recipients

    async def _call_adapter(self, operation: Callable[[], Awaitable[Any]], name: str) -> Any:
        return await retry_async(
            operation,
            name,
            max_attempts=self.config.max_retry_attempts,
            base_delay=self.config.retry_base_delay,
            max_delay=self.config.retry_max_delay,
            timeout=self.config.host_call_timeout,
            circuit_breaker=self._breaker,
            sleep=self._sleep,
        )

    # ===================================================================
    # LISTENERS
    # ===================================================================

    def add_listener(self, listener: Any) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Any) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, method: str, *args: Any) -> None:
        for listener in list(self._listeners):
            callback = getattr(listener, method, None)
            if not callable(callback):
                continue
            try:
                callback(*args)
            except Exception as e:
                logfire.error(
                    "Validation listener failed",
                    callback=method,
                    error=str(e),
                    error_type=type(e).__name__
                )

    # ===================================================================
    # STATE / CONFIG
    # ===================================================================

    def get_cached_content(self) -> Optional[str]:
        return self._cached_content

    def get_cached_recipients(self) -> Optional[List[RecipientDetails]]:
        if self._cached_recipients is None:
            return None
        return list(self._cached_recipients)

    def get_validation_state(self) -> ValidationState:
        return ValidationState(
            cached_content=self._cached_content,
            cached_recipients=self._cached_recipients,
            generation=self._generation,
            in_progress=self.is_validation_in_progress(),
            last_validation_time=self._last_validation_time,
            is_enabled=self._enabled,
            last_results=self._last_results,
        )

    def get_error_statistics(self) -> Dict[str, Any]:
        return {
            "consecutive_errors": self._consecutive_errors,
            "total_errors": self._total_errors,
            "circuit_state": self._breaker.state.value,
            "circuit_failures": self._breaker.consecutive_failures,
            "degraded": not self._breaker.allow_request(),
            "errors_by_kind": self.diagnostics.counts_by_category(),
            "passes": self.pass_count,
        }

    def reset_error_state(self) -> None:
        """Close the circuit breaker and zero the error counters."""
        self._breaker.reset()
        self._consecutive_errors = 0
        self._total_errors = 0
        self.diagnostics.info("Error state reset", category="recovery")

    def apply_config(self, config: ValidationConfig) -> None:
        """Rebuild the pipeline and timers for a new ValidationConfig."""
        self.config = config
        self._runner = create_validation_pipeline(config)
        self._breaker.threshold = config.circuit_breaker_threshold
        self._breaker.cooldown = config.circuit_breaker_cooldown
        self._debounce.delay = config.debounce_delay
        logfire.info(
            "Validation config applied",
            language=config.language.value,
            minimum_confidence_threshold=config.minimum_confidence_threshold,
            enable_fuzzy_matching=config.enable_fuzzy_matching
        )

    async def update_config(self, **changes: Any) -> ValidationConfig:
        """Persist config changes through the ConfigurationManager and apply them."""
        config = await self.config_manager.update(**changes)
        self.apply_config(config)
        return config


def create_orchestrator(
    adapter: MailClientAdapter,
    settings_store: Optional[SettingsStore] = None,
    listeners: Sequence[Any] = (),
    diagnostics: Optional[DiagnosticLog] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ValidationOrchestrator:
    """
    Load persisted config and build an initialized orchestrator.

    Invalid persisted config is recorded in the diagnostic log and replaced
    by the defaults.
    """
    manager = ConfigurationManager(settings_store)
    manager.load()

    orchestrator = ValidationOrchestrator(
        adapter,
        config_manager=manager,
        diagnostics=diagnostics,
        sleep=sleep,
    )
    if manager.last_error is not None:
        orchestrator.diagnostics.error(manager.last_error, {"recovery": "reset_defaults"})

    for listener in listeners:
        orchestrator.add_listener(listener)
    orchestrator.initialize()
    return orchestrator
