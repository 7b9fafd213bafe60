"""Monitoring and observability setup.

Traces and metrics are exported over OTLP gRPC when telemetry is enabled.
With ``TELEMETRY_ENABLED=false`` the providers are still installed, so spans
and instruments keep working, but nothing leaves the process.
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
import pyroscope

from storefront.config import (
    OTEL_EXPORTER_OTLP_ENDPOINT,
    PYROSCOPE_SERVER,
    SERVICE_NAME,
    TELEMETRY_ENABLED,
)

logger = logging.getLogger(__name__)


def init_tracing() -> trace.Tracer:
    """
    Initialize OpenTelemetry tracing.

    Returns:
        Tracer instance
    """
    resource = Resource.create({"service.name": SERVICE_NAME})

    tracer_provider = TracerProvider(resource=resource)
    if TELEMETRY_ENABLED:
        otlp_span_exporter = OTLPSpanExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_span_exporter))
        logger.info(f"Tracing initialized with endpoint: {OTEL_EXPORTER_OTLP_ENDPOINT}")
    trace.set_tracer_provider(tracer_provider)

    return trace.get_tracer(__name__)


def init_metrics() -> metrics.Meter:
    """
    Initialize OpenTelemetry metrics.

    Returns:
        Meter instance
    """
    resource = Resource.create({"service.name": SERVICE_NAME})

    metric_readers = []
    if TELEMETRY_ENABLED:
        otlp_metric_exporter = OTLPMetricExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        metric_readers.append(
            PeriodicExportingMetricReader(
                otlp_metric_exporter,
                export_interval_millis=5000
            )
        )

    meter_provider = MeterProvider(
        resource=resource,
        metric_readers=metric_readers
    )
    metrics.set_meter_provider(meter_provider)

    if TELEMETRY_ENABLED:
        logger.info("Metrics initialized with OTLP exporter")

    return metrics.get_meter(__name__)


def init_profiling() -> None:
    """Initialize Pyroscope profiling."""
    if not TELEMETRY_ENABLED:
        return
    try:
        pyroscope.configure(
            application_name=SERVICE_NAME,
            server_address=PYROSCOPE_SERVER,
            tags={"env": "demo"}
        )
        logger.info(f"Profiling initialized with server: {PYROSCOPE_SERVER}")
    except Exception as e:
        logger.warning(f"Failed to initialize profiling: {e}")


# Initialize tracer and meter
tracer = init_tracing()
meter = init_metrics()

# Order placement metrics
orders_placed_counter = meter.create_counter(
    "storefront.orders.placed",
    description="Order placement attempts by outcome (created, rejected, failed)",
    unit="1"
)

order_amount_histogram = meter.create_histogram(
    "storefront.orders.amount",
    description="Total amount of created orders",
    unit="USD"
)

# Reservation failures roll back the whole order
inventory_reservation_failures_counter = meter.create_counter(
    "storefront.inventory.reservation_failures",
    description="Inventory reservations refused, by reason (not_found, insufficient_stock)",
    unit="1"
)

transaction_rollbacks_counter = meter.create_counter(
    "storefront.transactions.rollbacks",
    description="Order transactions rolled back, by error type",
    unit="1"
)
