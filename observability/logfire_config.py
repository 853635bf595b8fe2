"""
Logfire configuration and initialization.

Logfire provides structured logging and tracing for every validation pass.

Environment Variables:
    LOGFIRE_TOKEN: Logfire project token (optional; without it logs stay local)
    ENVIRONMENT: deployment environment (development, staging, production)
"""
from typing import Optional

import logfire

from config.settings import settings


class LogfireConfig:
    """
    Logfire configuration singleton.

    Ensures Logfire is initialized only once. Without a token, spans and logs
    are kept local (send_to_logfire=False) so the validator keeps running.
    """

    _initialized = False

    @classmethod
    def initialize(cls, token: Optional[str] = None, console: bool = False) -> None:
        """
        Initialize Logfire.

        Args:
            token: Logfire project token (falls back to settings.logfire_token)
            console: Also print logs to the console
        """
        if cls._initialized:
            return

        token = token or settings.logfire_token

        logfire.configure(
            token=token,
            service_name=settings.service_name,
            environment=settings.environment,
            send_to_logfire=bool(token),
            console=None if console else False,
        )

        cls._initialized = True
        logfire.info(
            "Logfire initialized",
            service_name=settings.service_name,
            remote=bool(token),
        )

    @classmethod
    def is_initialized(cls) -> bool:
        """
        Check if Logfire has been initialized.

        Returns:
            True if initialized, False otherwise
        """
        return cls._initialized
