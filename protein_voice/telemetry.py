"""Logging and tracing helpers for the protein voice service."""
from __future__ import annotations

import logging
import os
from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from structlog.stdlib import ProcessorFormatter

from . import __version__

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
_tracing_configured = False
_logging_configured = False

# Request paths excluded from server spans.
UNTRACED_PATHS = ("/healthz", "/metrics")


def parse_otlp_headers(raw_value: Optional[str]) -> Dict[str, str]:
    """Parse ``OTEL_EXPORTER_OTLP_HEADERS`` (``k1=v1,k2=v2``), skipping malformed pairs."""

    pairs = (item.partition("=") for item in (raw_value or "").split(","))
    return {key.strip(): value.strip() for key, sep, value in pairs if sep and key.strip()}


def tracing_enabled() -> bool:
    if os.getenv("OTEL_SDK_DISABLED", "").strip().lower() == "true":
        return False
    return bool(os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"))


def configure_tracing(app: FastAPI, service_name: str) -> bool:
    """Export spans over OTLP/HTTP when a collector endpoint is configured.

    Returns whether tracing is active; without an endpoint the API tracer
    stays a no-op.
    """

    global _tracing_configured
    if _tracing_configured:
        return True
    if not tracing_enabled():
        return False

    endpoint = os.environ["OTEL_EXPORTER_OTLP_ENDPOINT"].rstrip("/")
    exporter = OTLPSpanExporter(
        endpoint=f"{endpoint}/v1/traces",
        headers=parse_otlp_headers(os.getenv("OTEL_EXPORTER_OTLP_HEADERS")) or None,
    )
    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name, "service.version": __version__}),
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=provider,
        excluded_urls=",".join(UNTRACED_PATHS),
    )
    _tracing_configured = True
    return True


def _add_correlation_id(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:  # pragma: no cover - logging helper
    event_dict.setdefault("correlation_id", correlation_id_var.get() or "unknown")
    return event_dict


def configure_logging(level: int = logging.INFO) -> None:
    """Route stdlib and structlog records through a JSON renderer."""

    global _logging_configured
    if _logging_configured:
        return

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        _add_correlation_id,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        timestamper,
        structlog.processors.format_exc_info,
    ]

    formatter = ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    structlog.configure(
        processors=shared_processors + [ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _logging_configured = True


def get_correlation_id() -> Optional[str]:
    """Correlation id of the request being handled, if any."""

    return correlation_id_var.get()


def set_correlation_id(value: str) -> Token:
    """Bind ``value`` as the correlation id; keep the token to undo it."""

    return correlation_id_var.set(value)


def reset_correlation_id(token: Token) -> None:
    correlation_id_var.reset(token)


__all__ = [
    "UNTRACED_PATHS",
    "configure_logging",
    "configure_tracing",
    "get_correlation_id",
    "parse_otlp_headers",
    "reset_correlation_id",
    "set_correlation_id",
    "tracing_enabled",
]
