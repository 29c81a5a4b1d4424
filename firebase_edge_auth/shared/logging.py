"""
Structured logging for firebase-edge-auth.

The library only obtains loggers; the hosting edge function decides whether to
install the JSON pipeline below (``FirebaseAuth(..., configure_logs=True)`` does
it from ``FirebaseConfig.log_level``).
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Callable, Dict, Optional

import structlog

try:
    from opentelemetry import trace
    HAS_OPENTELEMETRY = True
except ImportError:
    HAS_OPENTELEMETRY = False

EventDict = Dict[str, Any]
Processor = Callable[[Any, str, EventDict], EventDict]

ROOT_LOGGER = "firebase_auth"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)
tenant_id_var: ContextVar[Optional[str]] = ContextVar("tenant_id", default=None)

_CORRELATION_VARS = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "tenant_id": tenant_id_var,
}


def configure_logging(service_name: str = ROOT_LOGGER, log_level: str = "info") -> None:
    """Install the JSON structlog pipeline on top of stdlib logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _service_context_processor(service_name),
            add_trace_context,
            add_correlation_context,
            add_timestamp,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def _service_context_processor(service_name: str) -> Processor:
    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        return add_service_context(logger, method_name, event_dict)

    return processor


def add_service_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag events with the component, e.g. ``validation`` for ``firebase_auth.validation``."""
    parts = event_dict.get("logger", "").split(".")
    if len(parts) > 1:
        event_dict["component"] = parts[1]
    return event_dict


def add_trace_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Attach OpenTelemetry trace and span ids when a span is recording."""
    if not HAS_OPENTELEMETRY:
        return event_dict

    span = trace.get_current_span()
    if span and span.is_recording():
        context = span.get_span_context()
        if context.trace_id:
            event_dict["trace_id"] = format(context.trace_id, "032x")
        if context.span_id:
            event_dict["span_id"] = format(context.span_id, "016x")
    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Attach request, user and tenant ids bound to the current context."""
    for key, var in _CORRELATION_VARS.items():
        value = var.get()
        if value:
            event_dict[key] = value
    return event_dict


def add_timestamp(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["timestamp"] = time.time()
    return event_dict


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind a request id (a new uuid4 by default) to the current context."""
    request_id = request_id or str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def set_user_context(user_id: Optional[str] = None, tenant_id: Optional[str] = None):
    if user_id:
        user_id_var.set(user_id)
    if tenant_id:
        tenant_id_var.set(tenant_id)


def clear_context():
    for var in _CORRELATION_VARS.values():
        var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
