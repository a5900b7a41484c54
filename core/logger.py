import logging
import sys
from datetime import datetime
from typing import Any, Iterable, List, Optional

import structlog

from config import config, AppConfig
from diagnostics.masking import mask_literals, mask_sensitive

# Flag to ensure configuration happens only once
_is_configured = False


class SensitiveDataFilter(logging.Filter):
    """Masks credentials in plain stdlib log records before they are formatted."""

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets: List[str] = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_literals(mask_sensitive(message), self.secrets)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


class MaskSensitiveProcessor:
    """structlog processor that masks every string value of an event dict."""

    def __init__(self, secrets: Iterable[str] = ()):
        self.secrets: List[str] = [s for s in secrets if s]

    def __call__(self, logger: Any, method_name: str, event_dict: dict) -> dict:
        for key, value in event_dict.items():
            if isinstance(value, str):
                event_dict[key] = mask_literals(mask_sensitive(value), self.secrets)
        return event_dict


def _credential_values(app_config: AppConfig) -> List[str]:
    creds = app_config.credentials
    return [creds.jobkorea_id, creds.jobkorea_pwd, creds.telegram_token, creds.telegram_chat_id]


def setup_logging(app_config: Optional[AppConfig] = None, force: bool = False) -> None:
    """
    Set up logging configuration for the application using structlog.
    This function is idempotent and will only configure the logging system once
    unless ``force`` is set.
    """
    global _is_configured
    if _is_configured and not force:
        return

    app_config = app_config or config
    log_config = app_config.logging
    log_level = log_config.log_level.upper()

    # Clear any handlers that may have been set by other libraries or pytest
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    secrets = _credential_values(app_config) if log_config.mask_sensitive_info else []

    handlers: List[logging.Handler] = []

    # Console Handler
    stream_handler = logging.StreamHandler(sys.stdout)
    handlers.append(stream_handler)

    # File Handler (if configured)
    if log_config.log_file_path:
        log_path = log_config.log_file_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        new_log_file = log_path.parent / f"{log_path.stem}_{timestamp}{log_path.suffix}"
        handlers.append(logging.FileHandler(new_log_file, encoding='utf-8'))

    for handler in handlers:
        handler.setFormatter(formatter)
        if log_config.mask_sensitive_info:
            handler.addFilter(SensitiveDataFilter(secrets))

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=False, key="timestamp"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if log_config.mask_sensitive_info:
        processors.append(MaskSensitiveProcessor(secrets))
    if log_config.log_format == "json":
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    # structlog renders the event; stdlib handlers only add their prefix
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _is_configured = True


def get_structured_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger with the given name.

    Args:
        name: The name of the logger (usually __name__ of the module)

    Returns:
        A structured logger instance with context binding capabilities

    Example:
        >>> logger = get_structured_logger(__name__)
        >>> logger.info("operation_retry", operation="navigate_login", attempt=2)
    """
    return structlog.get_logger(name)


def bind_context(logger: structlog.BoundLogger, **context) -> structlog.BoundLogger:
    """
    Bind context data to a logger for all subsequent log entries.

    Args:
        logger: The structured logger to bind context to
        **context: Keyword arguments to bind as context

    Returns:
        A new logger with the bound context
    """
    return logger.bind(**context)
