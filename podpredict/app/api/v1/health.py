r"""podpredict/app/api/v1/health.py

Health check endpoint.

Orchestrators and load balancers can poll ``GET /healthz``. The payload
reports whether the prediction store answers a read; the model is reported
healthy whenever the service exists.
"""

from fastapi import APIRouter, Depends

from ...models import schemas
from ...services.prediction_service import PredictionService
from ..deps import get_prediction_service, run_with_deadline

router = APIRouter()

HEALTH_TIMEOUT_SECONDS = 2.0


@router.get("/healthz", response_model=schemas.HealthStatus)
async def health_check(
    service: PredictionService = Depends(get_prediction_service),
) -> schemas.HealthStatus:
    """Return store and model status."""
    return await run_with_deadline(service.health, timeout=HEALTH_TIMEOUT_SECONDS)
