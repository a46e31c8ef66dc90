r"""podpredict/app/services/prediction_store.py

Append-only store for every prediction the service has produced."""

from __future__ import annotations

import threading
from typing import List, Protocol

from ..models.schemas import Prediction


class PredictionStore(Protocol):
    """Persistence capability used by the prediction service.

    Implementations must be safe for concurrent use by multiple threads and
    must return independent snapshots from ``list``.
    """

    def append(self, prediction: Prediction) -> None:
        ...

    def list(self) -> List[Prediction]:
        ...


class InMemoryPredictionStore:
    """Predictions held in process memory, in insertion order.

    Contents are lost when the process exits. There is no eviction and no
    capacity bound.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: List[Prediction] = []

    def append(self, prediction: Prediction) -> None:
        with self._lock:
            self._items.append(prediction)

    def list(self) -> List[Prediction]:
        """Return a point-in-time copy of all predictions, oldest first."""
        with self._lock:
            return self._items.copy()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
