r"""podpredict/app/models/schemas.py

Pydantic models used throughout the API.

These models serve as both request payload validators and response
serialisation schemas. Predictions are frozen so that a value handed out by
the store can never be changed after it was recorded.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field


class FeatureVector(BaseModel):
    """Model input for a single day: GMV, active users and marketing spend.

    Values must be finite; NaN and infinities are rejected at validation.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    gmv: float = Field(..., description="Gross merchandise value")
    users: float = Field(..., description="Active users")
    marketing_cost: float = Field(..., description="Marketing spend")

    def as_tuple(self) -> Tuple[float, float, float]:
        """Return the features in model order: GMV, users, marketing cost."""
        return self.gmv, self.users, self.marketing_cost


class Prediction(BaseModel):
    """A stored pod count for one feature vector."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique prediction identifier (UUID4)")
    timestamp: datetime = Field(..., description="UTC instant the prediction applies to")
    input: FeatureVector
    fe_pods: int = Field(..., ge=0, description="Front-end pods")
    be_pods: int = Field(..., ge=0, description="Back-end pods")


class HealthStatus(BaseModel):
    status: Literal["ok", "degraded"]
    store_ok: bool
    model_ok: bool
    timestamp: str = Field(..., description="RFC3339 UTC time of the check")


class RetrainResult(BaseModel):
    status: Literal["ok"] = "ok"
    records: int = Field(..., ge=0, description="Rows returned by the fetcher")
    labeled: int = Field(..., ge=0, description="Rows carrying both pod counts")
