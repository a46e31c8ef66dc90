r"""podpredict/app/api/v1/admin.py

Operational endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...core.exceptions import FetchError
from ...models import schemas
from ...services.prediction_service import PredictionService
from ..deps import error_payload, get_prediction_service

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.post("/retrain", response_model=schemas.RetrainResult)
def retrain(
    service: PredictionService = Depends(get_prediction_service),
) -> schemas.RetrainResult:
    """Re-fetch daily metrics and retrain the model in place.

    Stored predictions are left as they are. On failure the previous model
    keeps serving.
    """

    try:
        return service.retrain()
    except FetchError as exc:
        LOGGER.error("Retrain aborted, fetch failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=error_payload("fetch_failed", str(exc)),
        ) from exc
    except Exception as exc:
        LOGGER.exception("Retrain failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_payload("training_failed", str(exc)),
        ) from exc
