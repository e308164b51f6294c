"""
Observability metrics module.

Counters are registered once per process with the default Prometheus
registry. Recording is always safe to call; the ``/metrics`` endpoint and the
per-request hooks are only active when ``METRICS_ENABLED`` is set.
"""

import time
import typing as t

from flask import Flask, Response, request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


class MetricsManager:
    """Central manager for metrics operations."""

    def __init__(self) -> None:
        self.http_requests_total = Counter(
            "onramp_http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
        )
        self.http_request_duration_seconds = Histogram(
            "onramp_http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "endpoint"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0),
        )
        self.errors_total = Counter(
            "onramp_errors_total",
            "Errors returned to clients",
            ["error_type", "endpoint"],
        )
        self.rate_refresh_total = Counter(
            "onramp_rate_refresh_total",
            "Price feed refresh attempts",
            ["outcome"],
        )
        self.transfers_total = Counter(
            "onramp_transfers_total",
            "On-chain transfer attempts",
            ["token", "outcome"],
        )
        self.task_executions_total = Counter(
            "onramp_task_executions_total",
            "Total background task executions",
            ["task_name", "status"],
        )

    def record_request(self, method: str, endpoint: str, status_code: int, duration: float) -> None:
        self.http_requests_total.labels(
            method=method.upper(),
            endpoint=endpoint,
            status_code=str(status_code),
        ).inc()
        self.http_request_duration_seconds.labels(method=method.upper(), endpoint=endpoint).observe(duration)


_metrics_manager = MetricsManager()


def record_error(error_type: str, endpoint: str) -> None:
    _metrics_manager.errors_total.labels(error_type=error_type, endpoint=endpoint).inc()


def record_rate_refresh(outcome: str) -> None:
    _metrics_manager.rate_refresh_total.labels(outcome=outcome).inc()


def record_transfer(token: str, outcome: str) -> None:
    _metrics_manager.transfers_total.labels(token=token, outcome=outcome).inc()


def record_task(task_name: str, status: str) -> None:
    _metrics_manager.task_executions_total.labels(task_name=task_name, status=status).inc()


def register_metrics(app: Flask) -> None:
    """
    Register metrics endpoint and request hooks with the Flask application.

    Args:
        app: Flask application instance
    """
    enabled = app.config.get("METRICS_ENABLED", False)

    if enabled:
        @app.before_request
        def start_timer() -> None:
            request.environ["onramp.request_start"] = time.perf_counter()

        @app.after_request
        def record_request_metrics(response: Response) -> Response:
            started = request.environ.get("onramp.request_start")
            duration = time.perf_counter() - started if started else 0.0
            _metrics_manager.record_request(
                request.method,
                request.url_rule.rule if request.url_rule else "unmatched",
                response.status_code,
                duration,
            )
            return response

    @app.route("/metrics")
    def metrics_endpoint() -> Response:
        """
        Metrics endpoint for Prometheus scraping.

        Returns an empty body when metrics are disabled.
        """
        if enabled:
            return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST, headers={"Cache-Control": "no-cache"})
        return Response("", mimetype="text/plain")


# Export metric objects for direct access
metrics: t.Final[MetricsManager] = _metrics_manager
