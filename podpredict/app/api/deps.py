"""Shared helpers for the API routers."""

from __future__ import annotations

import asyncio
from typing import Callable, TypeVar

from fastapi import HTTPException, Request, status

from ..services.prediction_service import PredictionService

T = TypeVar("T")


def error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


def get_prediction_service(request: Request) -> PredictionService:
    """Return the service attached to the application at startup."""

    service = getattr(request.app.state, "prediction_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error_payload("service_unavailable", "Prediction service is not ready."),
        )
    return service


async def run_with_deadline(func: Callable[..., T], *args: object, timeout: float) -> T:
    """Run ``func`` in a worker thread, answering 504 once ``timeout`` expires.

    The worker call itself is abandoned, not cancelled: it keeps its slot in
    the event loop's default executor until it returns, so a stuck model or
    store can exhaust that pool. Size the executor with this in mind.
    """

    try:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=error_payload("timeout", f"Request did not complete within {timeout:g}s."),
        ) from exc
