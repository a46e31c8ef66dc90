r"""podpredict/app/services/regression.py

Linear pod-count regression.

Two independent linear predictors are fitted over the same inputs, one for
front-end pods and one for back-end pods. The design matrix always starts
with a constant-1 intercept column followed by GMV, users and marketing cost,
in that order, for training and prediction alike.

Two fitting strategies share the same interface:

* ``ols`` (default): joint ordinary least squares via ``numpy.linalg.lstsq``.
* ``diagonal``: per-column ``sum(x*y) / sum(x*x)``, ignoring covariance
  between features. Cheap, biased under correlated inputs, kept as an
  alternate policy.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence, Tuple

import numpy as np

from ..core.exceptions import DegenerateFitError, ModelNotTrainedError, NoTrainableDataError
from ..models.daily import DailyRecord
from ..models.schemas import FeatureVector

LOGGER = logging.getLogger(__name__)

MIN_PODS = 1
COLUMNS: Tuple[str, ...] = ("intercept", "gmv", "users", "marketing_cost")
DEFAULT_STRATEGY = "ols"


class PodModel(Protocol):
    """Capability shared by every pod regression model."""

    def train(self, records: Iterable[DailyRecord]) -> None:
        ...

    def predict(self, features: FeatureVector) -> Tuple[int, int]:
        ...


# ---------------------------------------------------------------------------
# Helper utilities (kept top-level for straightforward unit testing)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""

    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def to_pod_count(raw: float, minimum: int = MIN_PODS) -> int:
    """Convert a raw regression output into a pod count.

    Non-finite values map to ``minimum``; everything else is rounded half away
    from zero and floored at ``minimum``.
    """

    if not math.isfinite(raw):
        return minimum
    return max(round_half_away(raw), minimum)


def design_matrix(records: Sequence[DailyRecord]) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return ``(X, fe_y, be_y)`` for the labeled subset of ``records``.

    Records missing either pod count are skipped.
    """

    rows: list[tuple[float, ...]] = []
    fe_y: list[float] = []
    be_y: list[float] = []
    for record in records:
        pods = record.pods()
        if pods is None:
            continue
        rows.append((1.0, *record.features()))
        fe_y.append(float(pods[0]))
        be_y.append(float(pods[1]))

    X = np.asarray(rows, dtype=float).reshape(len(rows), len(COLUMNS))
    return X, np.asarray(fe_y, dtype=float), np.asarray(be_y, dtype=float)


def reject_zero_columns(X: np.ndarray) -> None:
    """Raise ``DegenerateFitError`` naming every column of ``X`` that is all zero."""

    zero = np.flatnonzero(np.all(X == 0.0, axis=0))
    if zero.size:
        names = ", ".join(COLUMNS[j] if j < len(COLUMNS) else str(j) for j in zero)
        raise DegenerateFitError("all-zero feature column", details=names)


def fit_ols(X: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Joint least-squares coefficients for ``X @ coef ~= y``.

    All-zero feature columns are rejected. Designs with fewer rows than
    columns (or collinear ones) fall back to the minimum-norm solution.
    """

    if X.shape[0] == 0 or X.shape[0] != y.shape[0]:
        raise DegenerateFitError("invalid training data", details=f"X={X.shape} y={y.shape}")
    if not (np.isfinite(X).all() and np.isfinite(y).all()):
        raise DegenerateFitError("training data contains non-finite values")
    reject_zero_columns(X)

    coef, _, rank, _ = np.linalg.lstsq(X, y, rcond=None)
    if rank < X.shape[1]:
        LOGGER.warning(
            "OLS design is rank deficient (rank=%d, columns=%d, rows=%d); using minimum-norm solution",
            rank,
            X.shape[1],
            X.shape[0],
        )
    if not np.isfinite(coef).all():
        raise DegenerateFitError("least-squares solution is not finite")
    return coef


def fit_diagonal(X: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Naive diagonal approximation: ``coef_j = sum(x_j * y) / sum(x_j ** 2)``."""

    if X.shape[0] == 0 or X.shape[0] != y.shape[0]:
        raise DegenerateFitError("invalid training data", details=f"X={X.shape} y={y.shape}")

    reject_zero_columns(X)

    sum_xy = X.T @ y
    sum_xx = np.einsum("ij,ij->j", X, X)
    coef = sum_xy / sum_xx
    if not np.isfinite(coef).all():
        raise DegenerateFitError("diagonal coefficients are not finite")
    return coef


# ---------------------------------------------------------------------------
# Models


@dataclass(frozen=True)
class _Fit:
    fe: np.ndarray
    be: np.ndarray
    rows: int


class LinearRegressionModel:
    """Two independent linear predictors for FE and BE pods."""

    strategy: str = ""

    def __init__(self) -> None:
        self._fit: _Fit | None = None
        self._train_lock = threading.Lock()

    def _solve(self, X: np.ndarray, y: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    # ------------------------------------------------------------------
    @property
    def is_trained(self) -> bool:
        return self._fit is not None

    @property
    def coefficients(self) -> dict[str, np.ndarray]:
        fit = self._fit
        if fit is None:
            raise ModelNotTrainedError()
        return {"fe": fit.fe.copy(), "be": fit.be.copy()}

    # ------------------------------------------------------------------
    def train(self, records: Iterable[DailyRecord]) -> None:
        """Fit both predictors on the labeled records.

        The previous fit is only replaced once both targets fitted successfully.
        """

        X, fe_y, be_y = design_matrix(list(records))
        if X.shape[0] == 0:
            raise NoTrainableDataError()

        with self._train_lock:
            fit = _Fit(fe=self._solve(X, fe_y), be=self._solve(X, be_y), rows=X.shape[0])
            fit.fe.setflags(write=False)
            fit.be.setflags(write=False)
            self._fit = fit

        LOGGER.info("Trained %s pod model on %d labeled rows", self.strategy, fit.rows)

    # ------------------------------------------------------------------
    def predict(self, features: FeatureVector) -> Tuple[int, int]:
        """Return ``(fe_pods, be_pods)``, each at least ``MIN_PODS``."""

        fit = self._fit
        if fit is None:
            raise ModelNotTrainedError()

        x = np.array((1.0, *features.as_tuple()), dtype=float)
        with np.errstate(all="ignore"):
            fe_raw = float(x @ fit.fe)
            be_raw = float(x @ fit.be)
        return to_pod_count(fe_raw), to_pod_count(be_raw)


class OLSRegressionModel(LinearRegressionModel):
    """Joint ordinary least squares with an intercept term."""

    strategy = "ols"

    def _solve(self, X: np.ndarray, y: np.ndarray) -> np.ndarray:
        return fit_ols(X, y)


class DiagonalRegressionModel(LinearRegressionModel):
    """Per-column least squares that ignores feature covariance."""

    strategy = "diagonal"

    def _solve(self, X: np.ndarray, y: np.ndarray) -> np.ndarray:
        return fit_diagonal(X, y)


_STRATEGIES: dict[str, type[LinearRegressionModel]] = {
    OLSRegressionModel.strategy: OLSRegressionModel,
    DiagonalRegressionModel.strategy: DiagonalRegressionModel,
}


def build_model(strategy: str = DEFAULT_STRATEGY) -> LinearRegressionModel:
    """Return an untrained model for ``strategy`` (``"ols"`` or ``"diagonal"``)."""

    key = (strategy or DEFAULT_STRATEGY).strip().lower()
    try:
        model_cls = _STRATEGIES[key]
    except KeyError:
        raise ValueError(
            f"unknown model strategy {strategy!r}; expected one of {sorted(_STRATEGIES)}"
        ) from None
    return model_cls()
