r"""podpredict/app/services/prediction_service.py

Orchestration of the pod prediction pipeline.

``PredictionService`` fetches the daily metrics and trains the model when it
is constructed, so a service instance is always ready to predict. The
``bootstrap`` helper additionally fills the store with one entry per fetched
day: observed pod counts are stored as-is and days without them are
predicted.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, time, timezone
from typing import List

from ..core.exceptions import PersistenceError
from ..core.observability import PREDICTIONS_COUNTER, TRAININGS_COUNTER
from ..models.daily import DailyRecord
from ..models.schemas import FeatureVector, HealthStatus, Prediction, RetrainResult
from .fetchers import Fetcher
from .prediction_store import PredictionStore
from .regression import PodModel

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class PredictionService:
    """Owns the model, fetcher and store used by the HTTP layer."""

    def __init__(
        self,
        model: PodModel,
        fetcher: Fetcher,
        store: PredictionStore,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if model is None:
            raise ValueError("nil model")
        if fetcher is None:
            raise ValueError("nil fetcher")
        if store is None:
            raise ValueError("nil store")

        self.model = model
        self.fetcher = fetcher
        self.store = store
        self.timeout = float(timeout) if timeout and timeout > 0 else DEFAULT_TIMEOUT_SECONDS

        # Initial training; any failure aborts construction.
        records = self.fetcher.fetch()
        self._train(records)
        self._boot_records: tuple[DailyRecord, ...] = tuple(records)

    # ------------------------------------------------------------------
    def _train(self, records: List[DailyRecord]) -> None:
        try:
            self.model.train(records)
        except Exception:
            TRAININGS_COUNTER.labels("failure").inc()
            raise
        TRAININGS_COUNTER.labels("success").inc()

    def _append(self, prediction: Prediction, origin: str) -> Prediction:
        try:
            self.store.append(prediction)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError("persisting prediction failed", details=str(exc)) from exc
        PREDICTIONS_COUNTER.labels(origin).inc()
        return prediction

    # ------------------------------------------------------------------
    def predict(self, features: FeatureVector) -> Prediction:
        """Predict pods for ``features``, store the result and return it."""

        fe_pods, be_pods = self.model.predict(features)
        prediction = Prediction(
            id=str(uuid.uuid4()),
            timestamp=_utc_now(),
            input=features,
            fe_pods=int(fe_pods),
            be_pods=int(be_pods),
        )
        return self._append(prediction, origin="model")

    def list_predictions(self) -> List[Prediction]:
        return self.store.list()

    def health(self) -> HealthStatus:
        """Report store reachability. The model is reported healthy unconditionally."""

        store_ok = True
        try:
            self.store.list()
        except Exception:
            LOGGER.exception("Prediction store health probe failed")
            store_ok = False

        return HealthStatus(
            status="ok" if store_ok else "degraded",
            store_ok=store_ok,
            model_ok=True,
            timestamp=rfc3339(_utc_now()),
        )

    def retrain(self) -> RetrainResult:
        """Fetch fresh records and train the model in place.

        Not transactional: if fetching or training fails the error propagates
        and the previously fitted model stays in use.
        """

        records = self.fetcher.fetch()
        self._train(records)
        labeled = sum(1 for record in records if record.is_labeled)
        LOGGER.info("Retrained model on %d records (%d labeled)", len(records), labeled)
        return RetrainResult(records=len(records), labeled=labeled)

    # ------------------------------------------------------------------
    def seed_store(self) -> int:
        """Store one prediction per boot record, in fetch order.

        Labeled days keep their observed pod counts; the others are predicted.
        Each entry is stamped with the day it describes. The boot batch is
        consumed, so later calls store nothing and return 0.
        """

        records, self._boot_records = self._boot_records, ()
        stored = 0
        for record in records:
            features = record.feature_vector()
            pods = record.pods()
            if pods is None:
                fe_pods, be_pods = self.model.predict(features)
                origin = "model"
            else:
                fe_pods, be_pods = pods
                origin = "observed"

            self._append(
                Prediction(
                    id=str(uuid.uuid4()),
                    timestamp=datetime.combine(record.date, time.min, tzinfo=timezone.utc),
                    input=features,
                    fe_pods=int(fe_pods),
                    be_pods=int(be_pods),
                ),
                origin=origin,
            )
            stored += 1

        LOGGER.info("Seeded prediction store with %d daily entries", stored)
        return stored


def bootstrap(
    model: PodModel,
    fetcher: Fetcher,
    store: PredictionStore,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> PredictionService:
    """Fetch once, train once, persist every fetched day and return the ready service."""

    service = PredictionService(model, fetcher, store, timeout=timeout)
    service.seed_store()
    return service
