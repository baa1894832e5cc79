"""Logging for the platform: snake_case structlog events with keyword fields.

Every component logs through ``get_logger(__name__)``. Agent background
tasks bind ``agent_id`` into the context, so each event from an agent loop
names its agent. LOG_FORMAT=json emits one JSON object per line for log
shipping; the default console format is for local runs. aiokafka, httpx
and websockets are held at WARNING so connection chatter and per-request
lines stay out of the stream.
"""

import logging
import os

import structlog

_QUIET_LIBRARIES = ("aiokafka", "httpx", "httpcore", "websockets")


def _renderer() -> structlog.types.Processor:
    """LOG_FORMAT=json for production, anything else renders for a console."""
    if os.environ.get("LOG_FORMAT", "console").lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structlog and the root logger.

    Context bound with structlog.contextvars (e.g. the agent id inside an
    agent's background tasks) is merged into every event.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
