import json

import pytest
from fastapi.testclient import TestClient

from welltest.main import app
from welltest.services.fit_jobs import get_job_registry

client = TestClient(app)

FAST_VARIANT = {"boundary": "infinite", "storage": "constant"}
FAST_PARAMETERS = {"n_f": 1, "n_stehfest": 4}


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "online"


def test_list_models():
    response = client.get("/models")
    assert response.status_code == 200
    models = response.json()
    assert [m["number"] for m in models] == [1, 2, 3, 4, 5, 6]
    assert models[0]["defaults"]["c_D"] == 0.01
    assert models[1]["defaults"]["c_D"] == 0.0


def test_curve():
    payload = {"variant": FAST_VARIANT, "parameters": FAST_PARAMETERS, "time": [1.0, 10.0, 100.0]}
    response = client.post("/simulate/curve", json=payload)
    assert response.status_code == 200
    data = response.json()
    assert len(data["time"]) == len(data["pressure"]) == len(data["derivative"]) == 3
    assert all(p > 0 for p in data["pressure"])


def test_curve_rejects_odd_stehfest_order():
    payload = {"variant": FAST_VARIANT, "parameters": {"n_stehfest": 5}, "time": [1.0]}
    assert client.post("/simulate/curve", json=payload).status_code == 422


@pytest.mark.parametrize("time", [[0.0, 1.0, 10.0], [1.0, 1.0, 10.0], [10.0, 1.0]])
def test_curve_rejects_invalid_time_axis(time):
    payload = {"variant": FAST_VARIANT, "parameters": FAST_PARAMETERS, "time": time}
    assert client.post("/simulate/curve", json=payload).status_code == 422


def test_sensitivity():
    payload = {"variant": FAST_VARIANT, "parameters": FAST_PARAMETERS, "time": [1.0, 10.0],
               "parameter": "skin", "values": [0.0, 2.0]}
    response = client.post("/simulate/sensitivity", json=payload)
    assert response.status_code == 200
    data = response.json()
    assert data["parameter"] == "skin"
    assert [c["value"] for c in data["curves"]] == [0.0, 2.0]


def test_sensitivity_unknown_parameter():
    payload = {"variant": FAST_VARIANT, "parameters": FAST_PARAMETERS, "time": [1.0],
               "parameter": "porosity", "values": [0.1]}
    assert client.post("/simulate/sensitivity", json=payload).status_code == 422


def test_prepare_observed():
    payload = {"time": [1.0, 2.0, 4.0], "pressure": [30.0, 29.0, 28.0], "initial_pressure": 31.0}
    response = client.post("/observed/prepare", json=payload)
    assert response.status_code == 200
    assert response.json()["pressure"] == pytest.approx([1.0, 2.0, 3.0])


def test_prepare_observed_drawdown_without_initial_pressure():
    payload = {"time": [1.0, 2.0], "pressure": [30.0, 29.0], "test_type": "drawdown"}
    assert client.post("/observed/prepare", json=payload).status_code == 422


def _fit_payload(is_fit, observed=None):
    return {
        "variant": FAST_VARIANT,
        "parameters": [{"name": "k_f", "value": 1e-3, "min": 1e-4, "max": 1e-2, "is_fit": is_fit}],
        "base": FAST_PARAMETERS,
        "observed": observed or {"time": [1.0, 10.0, 100.0], "pressure": [1.0, 2.0, 3.0],
                                 "derivative": [0.5, 0.5, 0.5]},
    }


def test_fit_job_without_fit_parameters():
    response = client.post("/fitting/jobs", json=_fit_payload(False))
    assert response.status_code == 200
    job_id = response.json()["job_id"]

    stream = client.get(f"/fitting/jobs/{job_id}/events")
    assert stream.status_code == 200
    lines = [json.loads(line) for line in stream.text.splitlines() if line]
    assert lines[-1]["type"] == "completed"
    assert lines[-1]["status"] == "no_fit_parameters"

    # el job se libera al terminar el stream
    assert client.get(f"/fitting/jobs/{job_id}/events").status_code == 404


def test_fit_job_stop():
    response = client.post("/fitting/jobs", json=_fit_payload(True))
    job_id = response.json()["job_id"]
    assert client.post(f"/fitting/jobs/{job_id}/stop").status_code == 200

    lines = [json.loads(line) for line in client.get(f"/fitting/jobs/{job_id}/events").text.splitlines()]
    assert lines[-1]["type"] == "completed"
    assert lines[-1]["status"] in ("stopped_by_user", "converged", "stalled", "max_iter_reached")


def test_fit_job_empty_observed():
    payload = _fit_payload(True, observed={"time": [], "pressure": [], "derivative": []})
    assert client.post("/fitting/jobs", json=payload).status_code == 422


@pytest.mark.parametrize("observed", [
    {"time": [1.0, 10.0, 100.0], "pressure": [], "derivative": []},
    {"time": [1.0, 10.0, 100.0], "pressure": [1.0, 2.0], "derivative": [0.5, 0.5, 0.5]},
    {"time": [0.0, 10.0, 100.0], "pressure": [1.0, 2.0, 3.0], "derivative": [0.5, 0.5, 0.5]},
])
def test_fit_job_rejects_malformed_observed(observed):
    assert client.post("/fitting/jobs", json=_fit_payload(True, observed=observed)).status_code == 422


def test_event_stream_single_consumer():
    job_id = client.post("/fitting/jobs", json=_fit_payload(False)).json()["job_id"]
    jobs = get_job_registry()
    assert jobs.claim(job_id) is not None
    try:
        assert client.get(f"/fitting/jobs/{job_id}/events").status_code == 409
    finally:
        jobs.pop(job_id)


def test_unknown_job():
    assert client.get("/fitting/jobs/missing/events").status_code == 404
    assert client.post("/fitting/jobs/missing/stop").status_code == 404
