from __future__ import annotations

import sys
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from podpredict.app.models.schemas import FeatureVector, Prediction
from podpredict.app.services.prediction_store import InMemoryPredictionStore


def _prediction(gmv: float = 1.0, fe: int = 1, be: int = 1) -> Prediction:
    return Prediction(
        id=str(uuid.uuid4()),
        timestamp=datetime.now(timezone.utc),
        input=FeatureVector(gmv=gmv, users=1, marketing_cost=1),
        fe_pods=fe,
        be_pods=be,
    )


def test_new_store_lists_empty() -> None:
    store = InMemoryPredictionStore()

    items = store.list()

    assert items == []
    assert isinstance(items, list)
    assert len(store) == 0


def test_list_preserves_insertion_order() -> None:
    store = InMemoryPredictionStore()
    predictions = [_prediction(gmv=float(i)) for i in range(5)]
    for prediction in reversed(predictions):
        store.append(prediction)

    assert [p.id for p in store.list()] == [p.id for p in reversed(predictions)]


def test_snapshot_is_independent_of_store() -> None:
    store = InMemoryPredictionStore()
    first = _prediction()
    store.append(first)

    snapshot = store.list()
    snapshot.append(_prediction())
    snapshot.clear()
    assert store.list() == [first]

    before = store.list()
    store.append(_prediction())
    assert before == [first]
    assert len(store.list()) == 2


def test_concurrent_appends_lose_nothing() -> None:
    store = InMemoryPredictionStore()
    predictions = [_prediction(gmv=float(i)) for i in range(200)]

    with ThreadPoolExecutor(max_workers=32) as pool:
        list(pool.map(store.append, predictions))

    stored = store.list()
    assert len(stored) == 200
    assert {p.id for p in stored} == {p.id for p in predictions}


def test_listing_during_appends_returns_prefixes() -> None:
    store = InMemoryPredictionStore()
    predictions = [_prediction(gmv=float(i)) for i in range(200)]
    snapshots: list[list[Prediction]] = []

    def _append_all() -> None:
        for prediction in predictions:
            store.append(prediction)

    with ThreadPoolExecutor(max_workers=2) as pool:
        writer = pool.submit(_append_all)
        while not writer.done():
            snapshots.append(store.list())
        writer.result()

    ids = [p.id for p in predictions]
    for snapshot in snapshots:
        assert [p.id for p in snapshot] == ids[: len(snapshot)]
