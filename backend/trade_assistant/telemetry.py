"""OpenTelemetry wiring plus the domain spans and counters the handlers record.

Exporters are only installed when ``telemetry_enabled`` is set. Spans and
counters created through this module are always safe to use: without a
configured provider the OpenTelemetry API hands out no-op implementations.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional, Sequence

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes
from sqlalchemy.ext.asyncio import AsyncEngine

from .config import AppSettings
from .models import MatchedTradePair, ParsedTimeQuery

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "trade_assistant"
_METRIC_EXPORT_INTERVAL_MS = 10000

_providers_installed = False
_instrumented_engines: list[AsyncEngine] = []


def setup_telemetry(app: FastAPI, settings: AppSettings, engine: AsyncEngine | None = None) -> bool:
    """Install OTLP exporters and instrument the app; returns whether telemetry is active."""

    global _providers_installed  # noqa: PLW0603

    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled via configuration")
        return False

    if not _providers_installed:
        _install_providers(settings)
        _providers_installed = True
        logger.info(
            "Telemetry exporting to %s (insecure=%s)",
            settings.telemetry_otlp_endpoint or "default OTLP endpoint",
            settings.telemetry_otlp_insecure,
        )

    if not getattr(app, "_is_instrumented_by_opentelemetry", False):
        FastAPIInstrumentor.instrument_app(app)
    if engine is not None:
        instrument_engine(engine)
    return True


def instrument_engine(engine: AsyncEngine) -> None:
    """Add ``engine`` to the SQLAlchemy instrumentation.

    The instrumentor is process-wide and only accepts engines when it is
    switched on, so it is re-armed with every engine seen so far.
    """

    if any(known is engine for known in _instrumented_engines):
        return
    _instrumented_engines.append(engine)
    instrumentor = SQLAlchemyInstrumentor()
    if instrumentor.is_instrumented_by_opentelemetry:
        instrumentor.uninstrument()
    instrumentor.instrument(engines=[known.sync_engine for known in _instrumented_engines])
    logger.info("SQLAlchemy instrumentation covers %d engine(s)", len(_instrumented_engines))


def _install_providers(settings: AppSettings) -> None:
    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: settings.telemetry_service_name or settings.app_name,
            ResourceAttributes.SERVICE_NAMESPACE: "trade-assistant",
            "demo.anchor_date": settings.demo_anchor_date.isoformat(),
            "demo.account_code": settings.account_code,
        }
    )
    exporter_options: dict[str, Any] = {"insecure": settings.telemetry_otlp_insecure}
    if settings.telemetry_otlp_endpoint:
        exporter_options["endpoint"] = settings.telemetry_otlp_endpoint

    tracer_provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.telemetry_sample_ratio)),
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_options)))
    trace.set_tracer_provider(tracer_provider)

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(**exporter_options),
        export_interval_millis=_METRIC_EXPORT_INTERVAL_MS,
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))

    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter(**exporter_options)))
    set_logger_provider(logger_provider)
    LoggingInstrumentor().instrument(set_logging_format=False, log_hook=_attach_trace_ids)


def _attach_trace_ids(span: Any, record: logging.LogRecord) -> None:
    span_ctx = span.get_span_context() if span is not None else None
    if span_ctx is None or not span_ctx.is_valid:
        return
    record.trace_id = format(span_ctx.trace_id, "032x")
    record.span_id = format(span_ctx.span_id, "016x")


@contextmanager
def trace_span(name: str, attributes: Optional[dict[str, Any]] = None) -> Iterator[trace.Span]:
    """Run a block inside a span named ``trade_assistant.<name>``."""

    tracer = trace.get_tracer(INSTRUMENTATION_NAME)
    with tracer.start_as_current_span(f"{INSTRUMENTATION_NAME}.{name}") as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        yield span


class QueryMetrics:
    """Counters describing what users ask and how the store answers."""

    def __init__(self, meter: metrics.Meter | None = None):
        meter = meter or metrics.get_meter(INSTRUMENTATION_NAME)
        self._time_expressions = meter.create_counter(
            "trade_assistant.time_expressions",
            unit="1",
            description="Time phrases received, by surface and outcome",
        )
        self._matched_pairs = meter.create_histogram(
            "trade_assistant.fifo.pairs",
            unit="1",
            description="Buy/sell pairs produced per profitability query",
        )
        self._store_errors = meter.create_counter(
            "trade_assistant.store.errors",
            unit="1",
            description="Trade store failures surfaced to callers",
        )

    def time_expression(self, surface: str, parsed: ParsedTimeQuery | None) -> None:
        outcome = "unparsed" if parsed is None else parsed.kind
        self._time_expressions.add(1, {"surface": surface, "outcome": outcome})

    def matched_pairs(self, surface: str, pairs: Sequence[MatchedTradePair]) -> None:
        self._matched_pairs.record(len(pairs), {"surface": surface})

    def store_error(self, surface: str, operation: str) -> None:
        self._store_errors.add(1, {"surface": surface, "operation": operation})


__all__ = ["INSTRUMENTATION_NAME", "QueryMetrics", "instrument_engine", "setup_telemetry", "trace_span"]
