# ============================================================================
# CLAUDE CONTEXT - LOGGING
# ============================================================================
# STATUS: Core Infrastructure - Structured logging
# PURPOSE: One-line JSON log records with run correlation for the dump pipeline
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: ComponentType, LogLevel, LogContext, ComponentConfig, JSONFormatter, LoggerFactory, log_exceptions
# INTERFACES: Enums, dataclasses, logger factory, JSON formatter, exception decorator
# DEPENDENCIES: logging, json, dataclasses (stdlib only)
# SCOPE: Every logger of the service, repository and command line layers
# PATTERNS: JSON-only output, Exception decorator pattern
# ENTRY_POINTS: LoggerFactory.create_logger(), @log_exceptions decorator
# ============================================================================

"""
Structured Logging

Component loggers write one JSON object per line to stdout, which keeps
stderr free for the progress bar and the run summary. Every record carries
the component type and name plus the run correlation fields (run id,
layer) under "customDimensions"; callers add per-record fields such as the
tile id through extra={"custom_dimensions": {...}}.

Levels:
    INFO by default, DEBUG when DEBUG_LOGGING=true, or whatever
    LoggerFactory.set_default_level() was given (the --log-level option).

Usage:
    from util_logger import LoggerFactory, ComponentType, LogContext

    logger = LoggerFactory.create_logger(
        ComponentType.SERVICE,
        "WFSDumpService",
        context=LogContext(run_id="4f2a9c01", layer="topp:states")
    )
    logger.warning("Tile failed", extra={"custom_dimensions": {"tile_id": "14/8412/5384"}})
"""

import os
import sys
import json
import logging
import traceback
from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dataclasses import dataclass, asdict
from functools import partial, wraps


class ComponentType(Enum):
    """Pipeline layer a logger belongs to; first part of the logger name."""
    SERVICE = "service"        # Run orchestration
    REPOSITORY = "repository"  # PostGIS loading
    TRIGGER = "trigger"        # Command line


class LogLevel(Enum):
    """Level names accepted by --log-level and DEBUG_LOGGING."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        return getattr(logging, self.value)

    @classmethod
    def from_string(cls, level: str) -> 'LogLevel':
        """Case-insensitive lookup; raises KeyError for unknown names."""
        return cls[level.upper()]


@dataclass
class LogContext:
    """
    Correlation fields shared by every record of one dump run.

    Per-tile fields travel as per-record custom dimensions instead.
    """
    run_id: Optional[str] = None
    layer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class ComponentConfig:
    """Per-component logging settings."""
    component_type: ComponentType
    log_level: LogLevel = LogLevel.INFO
    max_message_length: int = 1000


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'thread': record.threadName
        }

        if hasattr(record, 'custom_dimensions'):
            entry['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            exc_type, exc_value = record.exc_info[0], record.exc_info[1]
            entry['exception'] = {
                'type': exc_type.__name__ if exc_type else None,
                'message': str(exc_value) if exc_value else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(entry, default=str)


class LoggerFactory:
    """
    Creates JSON loggers named "<component type>.<name>".

    Loggers are registered so that a later level change (the --log-level
    option is parsed after module-level loggers exist) reaches all of them.
    """

    default_level = LogLevel.DEBUG if os.getenv('DEBUG_LOGGING', '').lower() == 'true' else LogLevel.INFO

    DEFAULT_CONFIGS = {
        ComponentType.SERVICE: ComponentConfig(
            component_type=ComponentType.SERVICE,
            log_level=default_level
        ),
        ComponentType.REPOSITORY: ComponentConfig(
            component_type=ComponentType.REPOSITORY,
            log_level=default_level
        ),
        ComponentType.TRIGGER: ComponentConfig(
            component_type=ComponentType.TRIGGER,
            log_level=default_level
        )
    }

    _loggers: Dict[str, logging.Logger] = {}

    @classmethod
    def set_default_level(cls, level: str) -> None:
        """
        Set the level of every component logger, existing and future.

        Args:
            level: Level name, case-insensitive (e.g. "debug")

        Raises:
            KeyError: Unknown level name
        """
        log_level = LogLevel.from_string(level)
        cls.default_level = log_level
        for config in cls.DEFAULT_CONFIGS.values():
            config.log_level = log_level
        for logger in cls._loggers.values():
            logger.setLevel(log_level.to_python_level())
            for handler in logger.handlers:
                handler.setLevel(log_level.to_python_level())

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        context: Optional[LogContext] = None,
        config: Optional[ComponentConfig] = None
    ) -> logging.Logger:
        """
        Create (or reconfigure) the logger for one component.

        Args:
            component_type: Pipeline layer
            name: Component name (e.g., "WFSDumpService")
            context: Run correlation fields added to every record
            config: Settings overriding the component type's defaults

        Returns:
            Logger writing JSON lines to stdout, not propagating to root
        """
        config = config or cls.DEFAULT_CONFIGS[component_type]
        level = config.log_level.to_python_level()

        logger_name = f"{component_type.value}.{name}"
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)

        # Calling create_logger twice for a name must not duplicate output
        logger.handlers.clear()
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False

        base_dims = context.to_dict() if context else {}
        base_dims['component_type'] = component_type.value
        base_dims['component_name'] = name

        # Bound to the class method, not the instance attribute, so wrappers never stack
        emit = partial(logging.Logger._log, logger)

        def log_with_context(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
            extra = dict(extra or {})
            dims = dict(base_dims)
            dims.update(extra.get('custom_dimensions') or {})
            extra['custom_dimensions'] = dims

            if isinstance(msg, str) and len(msg) > config.max_message_length:
                msg = msg[:config.max_message_length] + "..."

            emit(level, msg, args, exc_info=exc_info, extra=extra,
                 stack_info=stack_info, stacklevel=stacklevel)

        logger._log = log_with_context
        cls._loggers[logger_name] = logger
        return logger


def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Log any exception escaping the wrapped function, then re-raise it.

    Either pass an existing logger or a component type and name; with
    neither, a service logger named after the function's module is used.

    Example:
        @log_exceptions(ComponentType.TRIGGER, "cli")
        def main(argv=None):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if logger:
                    log = logger
                elif component_type and component_name:
                    log = LoggerFactory.create_logger(component_type, component_name)
                else:
                    log = LoggerFactory.create_logger(ComponentType.SERVICE, func.__module__ or "unknown")
                log.error(
                    f"Unhandled {type(e).__name__} in {func.__name__}: {e}",
                    exc_info=True,
                    extra={
                        'custom_dimensions': {
                            'function_name': func.__name__,
                            'function_module': func.__module__,
                            'exception_type': type(e).__name__,
                            'traceback': traceback.format_exc()
                        }
                    }
                )
                raise
        return wrapper
    return decorator
