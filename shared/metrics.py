"""
Shared metrics configuration for the session authorization service.
"""

from typing import Dict, Any, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Gauge, Info, generate_latest


class MetricsCollector:
    """Centralized metrics collector for services.

    Each collector owns its own registry so that several service instances
    (as created by the test-suite) never collide on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._setup_authz_metrics()

    def _setup_authz_metrics(self):
        """Set up decision and key cache metrics."""
        self._metrics["authz_decisions_total"] = Counter(
            "authz_decisions_total",
            "Total authorization decisions",
            ["decision", "reason"],
            registry=self.registry
        )

        self._metrics["authz_decision_duration_seconds"] = Histogram(
            "authz_decision_duration_seconds",
            "Authorization decision duration in seconds",
            registry=self.registry
        )

        self._metrics["jwks_fetch_total"] = Counter(
            "jwks_fetch_total",
            "Total JWKS fetches",
            ["status"],
            registry=self.registry
        )

        self._metrics["jwks_cache_lookups_total"] = Counter(
            "jwks_cache_lookups_total",
            "Key cache lookups",
            ["result"],
            registry=self.registry
        )

        self._metrics["directory_records"] = Gauge(
            "directory_records",
            "Records in the loaded directory snapshot",
            ["kind"],
            registry=self.registry
        )

    def export(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_decision(self, allowed: bool, reason: str, duration: float):
        """Record the outcome of one authorization decision."""
        self._metrics["authz_decisions_total"].labels(
            decision="allow" if allowed else "deny",
            reason=reason
        ).inc()
        self._metrics["authz_decision_duration_seconds"].observe(duration)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).set(value)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
