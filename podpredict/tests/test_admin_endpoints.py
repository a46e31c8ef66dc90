from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from podpredict.app.core.config import get_settings
from podpredict.app.core.exceptions import FetchError
from podpredict.app.main import create_app
from podpredict.app.models.daily import DailyRecord
from podpredict.app.services.fetchers import StaticFetcher
from podpredict.app.services.prediction_service import PredictionService
from podpredict.app.services.prediction_store import InMemoryPredictionStore
from podpredict.app.services.regression import OLSRegressionModel

ROWS = [
    DailyRecord(date(2025, 1, 1), 100, 10, 5, 5, 2),
    DailyRecord(date(2025, 1, 2), 150, 12, 6, 6, 3),
    DailyRecord(date(2025, 1, 3), 200, 20, 8, 7, 4),
]


class FailingFetcher:
    def __init__(self, error: Exception) -> None:
        self.error = error

    def fetch(self):
        raise self.error


class BrokenStore:
    def append(self, prediction) -> None:
        raise RuntimeError("db down")

    def list(self):
        raise RuntimeError("db down")


def _service(store=None) -> PredictionService:
    return PredictionService(
        OLSRegressionModel(),
        StaticFetcher(ROWS),
        store if store is not None else InMemoryPredictionStore(),
    )


def test_healthz_reports_ok() -> None:
    client = TestClient(create_app(service=_service()))

    response = client.get("/healthz")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["store_ok"] is True
    assert body["model_ok"] is True
    assert body["timestamp"].endswith("Z")


def test_healthz_reports_degraded_store() -> None:
    client = TestClient(create_app(service=_service(BrokenStore())))

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["store_ok"] is False


def test_listing_failure_returns_500() -> None:
    client = TestClient(create_app(service=_service(BrokenStore())))

    response = client.get("/predictions")

    assert response.status_code == 500
    assert response.json()["detail"]["error"] == "listing_failed"


def test_retrain_reports_counts() -> None:
    service = _service()
    client = TestClient(create_app(service=service))
    service.fetcher = StaticFetcher(ROWS + [DailyRecord(date(2025, 1, 4), 5, 1, 1)])

    response = client.post("/retrain")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "records": 4, "labeled": 3}


def test_retrain_fetch_failure_returns_502() -> None:
    service = _service()
    client = TestClient(create_app(service=service))
    service.fetcher = FailingFetcher(FetchError("failed to fetch sheet data", "403"))

    response = client.post("/retrain")

    assert response.status_code == 502
    assert response.json()["detail"]["error"] == "fetch_failed"


def test_retrain_training_failure_returns_500_and_keeps_model() -> None:
    service = _service()
    client = TestClient(create_app(service=service))
    payload = {"gmv": 150, "users": 12, "marketing_cost": 6}
    before = client.post("/predict", json=payload).json()
    service.fetcher = StaticFetcher([DailyRecord(date(2025, 1, 4), 5, 1, 1)])

    response = client.post("/retrain")

    assert response.status_code == 500
    assert response.json()["detail"]["error"] == "training_failed"
    after = client.post("/predict", json=payload).json()
    assert (after["fe_pods"], after["be_pods"]) == (before["fe_pods"], before["be_pods"])


def test_metrics_exposes_prediction_counter() -> None:
    client = TestClient(create_app(service=_service()))
    client.post("/predict", json={"gmv": 1, "users": 1, "marketing_cost": 1})

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "pod_predictions_total" in response.text
    assert "http_requests_total" in response.text


def test_missing_service_returns_503() -> None:
    app = create_app(service=_service())
    app.state.prediction_service = None
    client = TestClient(app)

    response = client.get("/predictions")

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "service_unavailable"


@pytest.fixture
def sample_env(monkeypatch):
    monkeypatch.setenv("PODPREDICT_DATA_SOURCE", "table")
    monkeypatch.setenv("PODPREDICT_DATA_PATH", str(ROOT / "data" / "daily_metrics.csv"))
    monkeypatch.setenv("PODPREDICT_CONFIG_ROOT", str(ROOT / "configs"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_startup_seeds_one_entry_per_day(sample_env) -> None:
    with TestClient(create_app()) as client:
        response = client.get("/predictions")

        assert response.status_code == 200
        items = response.json()
        assert len(items) == 6
        assert [item["timestamp"][:10] for item in items] == [
            "2025-01-01",
            "2025-01-02",
            "2025-01-03",
            "2025-01-04",
            "2025-01-05",
            "2025-01-06",
        ]
        assert (items[0]["fe_pods"], items[0]["be_pods"]) == (5, 2)
        assert items[-1]["fe_pods"] >= 1 and items[-1]["be_pods"] >= 1

        created = client.post("/predict", json={"gmv": 250, "users": 25, "marketing_cost": 9})
        assert created.status_code == 201
        assert len(client.get("/predictions").json()) == 7


def test_startup_fails_when_source_is_missing(sample_env, monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PODPREDICT_DATA_PATH", str(tmp_path / "missing.csv"))
    get_settings.cache_clear()

    with pytest.raises(FetchError):
        with TestClient(create_app()):
            pass
