r"""podpredict/app/main.py

Main entrypoint for the FastAPI application.

On startup the service fetches the daily metrics once, trains the pod model,
predicts every day without recorded pod counts and stores one entry per day.
The API then serves ad-hoc predictions (``POST /predict``), the accumulated
predictions (``GET /predictions``), a health probe (``GET /healthz``) and an
explicit retrain (``POST /retrain``). Configuration is read from
``PODPREDICT_*`` environment variables and ``configs/settings.yaml``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.deps import error_payload
from .api.v1 import admin, health, predictions
from .core.config import Settings, get_settings, resolve_model_strategy, resolve_request_timeout
from .core.observability import RequestMetricsMiddleware, configure_logging, metrics_endpoint
from .services.fetchers import build_fetcher
from .services.prediction_service import PredictionService, bootstrap
from .services.prediction_store import InMemoryPredictionStore
from .services.regression import build_model

__version__ = "0.1.0"

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root
load_dotenv(BASE_DIR / ".env")

LOGGER = logging.getLogger(__name__)


def build_service(settings: Settings) -> PredictionService:
    """Run the boot pipeline: fetch, train, predict missing days, persist."""

    strategy = resolve_model_strategy(settings)
    timeout = resolve_request_timeout(settings)
    LOGGER.info(
        "Bootstrapping pod predictor: source=%s strategy=%s timeout=%.1fs",
        settings.data_source,
        strategy,
        timeout,
    )
    return bootstrap(
        model=build_model(strategy),
        fetcher=build_fetcher(settings),
        store=InMemoryPredictionStore(),
        timeout=timeout,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    if app.state.prediction_service is None:
        # Startup fails (and the server exits) if fetching or training fails.
        app.state.prediction_service = build_service(get_settings())
    yield
    LOGGER.info("Shutting down pod predictor API")


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in errors
    ) or "invalid request body"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": error_payload("invalid_request", message)},
    )


def create_app(service: PredictionService | None = None) -> FastAPI:
    """Build the API. Pass ``service`` to skip the startup bootstrap."""

    app = FastAPI(title="Pod Predict API", version=__version__, lifespan=_lifespan)
    app.state.prediction_service = service

    origins_env = get_settings().cors_origins
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()] or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestMetricsMiddleware)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(predictions.router)
    app.include_router(health.router)
    app.include_router(admin.router)

    @app.get("/metrics", include_in_schema=False)
    async def _metrics() -> Response:
        """Expose Prometheus metrics."""

        return metrics_endpoint()

    return app


configure_logging(get_settings().log_level)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())
