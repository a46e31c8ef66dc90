r"""podpredict/app/core/observability.py"""

from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

ACCESS_LOGGER = logging.getLogger("podpredict.access")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


_REQUEST_COUNTER = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status"]
)
_LATENCY_HISTOGRAM = Histogram(
    "http_request_latency_seconds", "Request latency", ["method", "path"]
)

PREDICTIONS_COUNTER = Counter(
    "pod_predictions_total",
    "Predictions appended to the store",
    ["origin"],
)
TRAININGS_COUNTER = Counter(
    "model_trainings_total",
    "Model training attempts",
    ["outcome"],
)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Middleware recording Prometheus metrics and one JSON access log line per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        method = request.method
        client_ip = request.client.host if request.client else "unknown"
        request_id = (
            request.headers.get("x-request-id")
            or request.headers.get("request-id")
            or str(uuid.uuid4())
        )

        start_perf = time.perf_counter()
        start_wall = time.time()

        def _finalize(response: Response) -> Response:
            latency = time.perf_counter() - start_perf
            status_code = getattr(response, "status_code", 500)

            _REQUEST_COUNTER.labels(method, path, str(status_code)).inc()
            _LATENCY_HISTOGRAM.labels(method, path).observe(latency)

            log_payload = {
                "timestamp": datetime.fromtimestamp(start_wall, tz=timezone.utc).isoformat(),
                "path": path,
                "method": method,
                "status": status_code,
                "latency_ms": int(latency * 1000),
                "request_id": request_id,
                "client_ip": client_ip,
            }
            ACCESS_LOGGER.info(json.dumps(log_payload))
            response.headers["x-request-id"] = request_id
            return response

        try:
            response = await call_next(request)
        except Exception:
            # Record the failure, then let the server's error handling take over.
            _finalize(PlainTextResponse("Internal Server Error", status_code=500))
            raise

        return _finalize(response)


def metrics_endpoint() -> Response:
    """Return Prometheus metrics payload."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
