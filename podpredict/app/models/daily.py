r"""podpredict/app/models/daily.py

Day-level business metrics, optionally annotated with the pod counts that
were actually deployed on that day.

Records are validated on construction so invalid rows never reach training.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from ..core.exceptions import InvalidDateError, NegativeMetricError
from .schemas import FeatureVector


def _check_metric(name: str, value: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise NegativeMetricError(name, value) from None
    if not math.isfinite(number) or number < 0:
        raise NegativeMetricError(name, value)
    return number


def _check_count(name: str, value: int) -> int:
    """Return ``value`` as a non-negative int; fractional or non-numeric values are rejected."""
    if isinstance(value, bool):
        raise NegativeMetricError(name, value)
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        raise NegativeMetricError(name, value) from None
    if count != value or count < 0:
        raise NegativeMetricError(name, value)
    return count


def _check_pods(name: str, value: Optional[int]) -> Optional[int]:
    if value is None:
        return None
    return _check_count(name, value)


@dataclass(frozen=True)
class DailyRecord:
    """Business KPIs for a single calendar day.

    ``fe_pods`` and ``be_pods`` are ``None`` when the day has no recorded pod
    counts. A record only counts as labeled when both are present.
    """

    date: date
    gmv: float
    users: int
    marketing_cost: float
    fe_pods: Optional[int] = None
    be_pods: Optional[int] = None

    def __post_init__(self) -> None:
        day = self.date
        if isinstance(day, datetime):
            day = day.date()
        if not isinstance(day, date):
            raise InvalidDateError(day)

        # frozen dataclass: normalised values are written through object.__setattr__
        object.__setattr__(self, "date", day)
        object.__setattr__(self, "gmv", _check_metric("gmv", self.gmv))
        object.__setattr__(self, "users", _check_count("users", self.users))
        object.__setattr__(self, "marketing_cost", _check_metric("marketing cost", self.marketing_cost))
        object.__setattr__(self, "fe_pods", _check_pods("fe pods", self.fe_pods))
        object.__setattr__(self, "be_pods", _check_pods("be pods", self.be_pods))

    @property
    def has_fe_pods(self) -> bool:
        return self.fe_pods is not None

    @property
    def has_be_pods(self) -> bool:
        return self.be_pods is not None

    @property
    def is_labeled(self) -> bool:
        """True only when both FE and BE pod counts are present."""
        return self.has_fe_pods and self.has_be_pods

    def pods(self) -> Optional[Tuple[int, int]]:
        """Return ``(fe_pods, be_pods)`` for labeled records, otherwise ``None``."""
        if not self.is_labeled:
            return None
        return self.fe_pods, self.be_pods

    def features(self) -> Tuple[float, float, float]:
        """Return the model input triple ``(gmv, users, marketing_cost)``."""
        return self.gmv, float(self.users), self.marketing_cost

    def feature_vector(self) -> FeatureVector:
        gmv, users, marketing_cost = self.features()
        return FeatureVector(gmv=gmv, users=users, marketing_cost=marketing_cost)
