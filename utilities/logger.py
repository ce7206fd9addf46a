"""
Structured logging setup using structlog.
Provides JSON/console output and a context-aware logger for external API calls.
"""

import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import structlog
from structlog.stdlib import LoggerFactory

# Keyed by the values AppConfig.log_format accepts
RENDERERS: Dict[str, Callable[[], Callable]] = {
    "json": structlog.processors.JSONRenderer,
    "console": lambda: structlog.dev.ConsoleRenderer(colors=True),
}


def build_processors(log_format: str = "json", debug: bool = False) -> List[Callable]:
    """
    Build the structlog processor chain, ending with the renderer for log_format.

    Raises:
        ValueError: unknown log format
    """
    try:
        renderer = RENDERERS[log_format]()
    except KeyError:
        raise ValueError(f"Unsupported log format: {log_format}")

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())
    processors.append(renderer)
    return processors


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging with configurable output formats.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path
        debug: Add call site information to every event
    """
    level = getattr(logging, log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=build_processors(log_format, debug),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(file_handler)

    structlog.get_logger(__name__).info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class ExternalApiLogger:
    """
    Logger for outbound API calls with context management.
    """

    def __init__(self, api_name: str):
        self.api_name = api_name
        self.logger = structlog.get_logger(f"external.{api_name.lower()}")
        self.context = {}

    def bind_context(self, **kwargs) -> 'ExternalApiLogger':
        """
        Bind context variables to the logger.

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    def log_request(self, method: str, endpoint: str) -> None:
        self.logger.debug(
            "External API request",
            api_name=self.api_name,
            method=method,
            endpoint=endpoint,
            **self.context
        )

    def log_retry(self, endpoint: str, attempt: int, max_attempts: int, delay: float, reason: str) -> None:
        """Log retry attempt."""
        self.logger.warning(
            "Retrying external API request",
            api_name=self.api_name,
            endpoint=endpoint,
            attempt=attempt,
            max_attempts=max_attempts,
            delay_seconds=delay,
            reason=reason,
            **self.context
        )

    def log_call(
        self,
        endpoint: str,
        success: bool,
        duration_ms: int,
        status_code: Optional[int] = None,
        **details
    ) -> None:
        """Log a completed external API call."""
        level = "info" if success else "warning"
        getattr(self.logger, level)(
            f"{self.api_name} API call to {endpoint} {'succeeded' if success else 'failed'}",
            api_name=self.api_name,
            endpoint=endpoint,
            success=success,
            response_time_ms=duration_ms,
            status_code=status_code,
            **details,
            **self.context
        )

