"""Routes for pod predictions."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...core.exceptions import PersistenceError
from ...models import schemas
from ...services.prediction_service import PredictionService
from ..deps import error_payload, get_prediction_service, run_with_deadline

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/predict",
    response_model=schemas.Prediction,
    status_code=status.HTTP_201_CREATED,
)
async def create_prediction(
    features: schemas.FeatureVector,
    service: PredictionService = Depends(get_prediction_service),
) -> schemas.Prediction:
    """Predict FE/BE pods for the supplied features and record the result."""

    try:
        return await run_with_deadline(service.predict, features, timeout=service.timeout)
    except HTTPException:
        raise
    except PersistenceError as exc:
        LOGGER.error("Persisting prediction failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_payload("persistence_failed", str(exc)),
        ) from exc
    except Exception as exc:
        LOGGER.exception("Prediction failed for %s", features.model_dump())
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_payload("prediction_failed", f"prediction failed: {exc}"),
        ) from exc


@router.get("/predictions", response_model=List[schemas.Prediction])
async def list_predictions(
    service: PredictionService = Depends(get_prediction_service),
) -> List[schemas.Prediction]:
    """Return every stored prediction in insertion order."""

    try:
        return await run_with_deadline(service.list_predictions, timeout=service.timeout)
    except HTTPException:
        raise
    except Exception as exc:
        LOGGER.exception("Listing predictions failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_payload("listing_failed", f"listing predictions failed: {exc}"),
        ) from exc
