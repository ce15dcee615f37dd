import contextvars
import logging
import sys

import structlog
from pythonjsonlogger import jsonlogger
from structlog.stdlib import LoggerFactory

from ..config.settings import get_settings

CORRELATION_ID_HEADER = "X-Correlation-ID"
TRACE_ID_HEADER = "X-Trace-ID"

# Libraries that log every request on their own; the retry loop already logs each attempt
TRANSPORT_LOGGERS = ("httpx", "httpcore")


def setup_logging(
    service_name: str | None = None,
    level: str = "INFO",
    format_type: str = "json",  # "json" or "console"
    transport_level: str = "WARNING",
) -> None:
    """
    Set up structured logging for the client

    Args:
        service_name: Value of the `service` key on every entry; defaults to
            the configured BackoffSettings service
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format_type: "json" for production, "console" for development
        transport_level: Log level for the httpx and httpcore loggers
    """
    service_name = service_name or get_settings().service

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(getattr(logging, transport_level.upper(), logging.WARNING))

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        add_service_context(service_name),
        add_correlation_context(),
    ]

    if format_type == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    # Transport records that pass transport_level are rendered as JSON too
    if format_type == "json":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S%z",
            )
        )
        logging.getLogger().handlers = [handler]


def add_service_context(service_name: str):
    """Label every entry with the client's service name"""

    def processor(logger, method_name, event_dict):
        event_dict["service"] = service_name
        return event_dict

    return processor


def add_correlation_context():
    """Add correlation and trace IDs from context"""

    def processor(logger, method_name, event_dict):
        event_dict.update(
            (key, value)
            for key, value in (("correlation_id", get_correlation_id()), ("trace_id", get_trace_id()))
            if value
        )
        return event_dict

    return processor


_correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("correlation_id", default=None)
_trace_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("trace_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID forwarded on outbound requests"""
    _correlation_id_var.set(correlation_id)


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID forwarded on outbound requests"""
    _trace_id_var.set(trace_id)


def get_correlation_id() -> str | None:
    return _correlation_id_var.get()


def get_trace_id() -> str | None:
    return _trace_id_var.get()


def correlation_headers() -> dict[str, str]:
    """Outbound headers carrying the current correlation and trace IDs"""
    values = ((CORRELATION_ID_HEADER, get_correlation_id()), (TRACE_ID_HEADER, get_trace_id()))
    return {header: value for header, value in values if value}


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)
