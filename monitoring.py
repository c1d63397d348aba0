"""Monitoring and observability setup.

When OTEL_ENABLED is false no SDK providers are installed, so the tracer and
meter below resolve to the OpenTelemetry API no-op implementations. Business
code can record spans and metrics unconditionally.
"""
import logging
from opentelemetry import trace, metrics
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

from config import OTEL_ENABLED, OTEL_EXPORTER_OTLP_ENDPOINT, SERVICE_NAME

logger = logging.getLogger(__name__)


def init_tracing() -> trace.Tracer:
    """
    Initialize OpenTelemetry tracing.

    Returns:
        Tracer instance
    """
    if OTEL_ENABLED:
        resource = Resource.create({"service.name": SERVICE_NAME})

        tracer_provider = TracerProvider(resource=resource)
        otlp_span_exporter = OTLPSpanExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_span_exporter))
        trace.set_tracer_provider(tracer_provider)

        logger.info(f"Tracing initialized with endpoint: {OTEL_EXPORTER_OTLP_ENDPOINT}")

    return trace.get_tracer(__name__)


def init_metrics() -> metrics.Meter:
    """
    Initialize OpenTelemetry metrics.

    Returns:
        Meter instance
    """
    if OTEL_ENABLED:
        resource = Resource.create({"service.name": SERVICE_NAME})

        otlp_metric_reader = PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True),
            export_interval_millis=5000
        )
        meter_provider = MeterProvider(
            resource=resource,
            metric_readers=[otlp_metric_reader]
        )
        metrics.set_meter_provider(meter_provider)

        logger.info("Metrics initialized with OTLP exporter")

    return metrics.get_meter(__name__)


tracer = init_tracing()
meter = init_metrics()

# Order placement metrics
orders_placed_counter = meter.create_counter(
    "shop.orders.placed",
    description="Total number of orders committed",
    unit="1"
)

order_amount_histogram = meter.create_histogram(
    "shop.orders.amount",
    description="Order total price",
    unit="USD"
)

orders_rejected_counter = meter.create_counter(
    "shop.orders.rejected",
    description="Order placements rolled back, by reason",
    unit="1"
)

order_status_changes_counter = meter.create_counter(
    "shop.orders.status_changes",
    description="Order status transitions, by target status",
    unit="1"
)

# Integrity metrics
constraint_violations_counter = meter.create_counter(
    "shop.constraint_violations",
    description="Writes rejected by a uniqueness, check or foreign-key rule",
    unit="1"
)

# Security monitoring metrics
rate_limit_exceeded_counter = meter.create_counter(
    "shop.rate_limit.exceeded",
    description="Total number of write rate limit violations",
    unit="1"
)
