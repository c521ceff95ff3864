"""
Tests for the training-finished and deployment-finished callbacks.
"""

import pytest

from app.core.config import settings
from app.models.model import TrainedModel
from tests.conftest import BUCKET, USER_ID


@pytest.fixture
def training_model(client, auth_headers, dataset):
    response = client.post("/api/models", headers=auth_headers, json={
        "name": "Portrait v1",
        "type": "fast",
        "training_steps": 500,
        "dataset_id": dataset.id,
    })
    assert response.status_code == 201
    return response.json()["data"]


def model_path(model_id):
    return f"r2://{BUCKET}/{USER_ID}/models/model-{model_id}.safetensors"


def test_training_finished_moves_to_deploying_and_dispatches(client, webhook_headers, training_model, deploy_trigger, db):
    model_id = training_model["id"]

    response = client.post(
        f"/api/models/{model_id}/training-finished",
        headers=webhook_headers,
        json={"model_path": model_path(model_id)},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["model_id"] == model_id
    assert body["model_path"] == model_path(model_id)
    assert db.get(TrainedModel, model_id).status == "deploying"
    assert deploy_trigger.dispatched == [(model_id, model_path(model_id))]


def test_repeated_training_finished_does_not_redispatch(client, webhook_headers, training_model, deploy_trigger):
    model_id = training_model["id"]
    payload = {"model_path": model_path(model_id)}

    first = client.post(f"/api/models/{model_id}/training-finished", headers=webhook_headers, json=payload)
    second = client.post(f"/api/models/{model_id}/training-finished", headers=webhook_headers, json=payload)

    assert first.status_code == 200
    assert second.status_code == 200
    assert len(deploy_trigger.dispatched) == 1


@pytest.mark.parametrize("endpoint,payload", [
    ("training-finished", {"model_path": "r2://b/k.safetensors"}),
    ("deployment-finished", {"endpoint_url": "https://api.runpod.ai/v2/abc"}),
])
@pytest.mark.parametrize("headers", [
    {},
    {"Authorization": "wrong-token"},
    {"Authorization": "Bearer test-webhook-token"},
])
def test_webhook_rejects_bad_credentials(client, training_model, db, endpoint, payload, headers):
    model_id = training_model["id"]

    response = client.post(f"/api/models/{model_id}/{endpoint}", headers=headers, json=payload)

    assert response.status_code == 401
    assert response.json()["success"] is False
    assert db.get(TrainedModel, model_id).status == "training"


def test_webhook_rejected_when_token_unset(client, training_model, monkeypatch):
    monkeypatch.setattr(settings, "WEBHOOK_TOKEN", "")

    response = client.post(
        f"/api/models/{training_model['id']}/training-finished",
        headers={"Authorization": ""},
        json={"model_path": "r2://b/k"},
    )

    assert response.status_code == 401


def test_auth_is_checked_before_body(client, training_model):
    response = client.post(
        f"/api/models/{training_model['id']}/training-finished",
        content=b"not json",
    )
    assert response.status_code == 401


@pytest.mark.parametrize("body", [{}, {"model_path": ""}, {"model_path": None}])
def test_training_finished_requires_model_path(client, webhook_headers, training_model, body):
    response = client.post(
        f"/api/models/{training_model['id']}/training-finished",
        headers=webhook_headers,
        json=body,
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "model_path is required"}


def test_invalid_json_body_is_rejected(client, webhook_headers, training_model):
    response = client.post(
        f"/api/models/{training_model['id']}/training-finished",
        headers={**webhook_headers, "Content-Type": "application/json"},
        content=b"{not json",
    )
    assert response.status_code == 400


def test_webhook_for_unknown_model(client, webhook_headers):
    response = client.post(
        "/api/models/does-not-exist/training-finished",
        headers=webhook_headers,
        json={"model_path": "r2://b/k"},
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Model not found"


def test_deployment_finished_completes_model(client, webhook_headers, training_model, db):
    model_id = training_model["id"]
    client.post(
        f"/api/models/{model_id}/training-finished",
        headers=webhook_headers,
        json={"model_path": model_path(model_id)},
    )

    response = client.post(
        f"/api/models/{model_id}/deployment-finished",
        headers=webhook_headers,
        json={"endpoint_url": "https://api.runpod.ai/v2/abc"},
    )

    assert response.status_code == 200
    assert response.json()["endpoint_url"] == "https://api.runpod.ai/v2/abc"
    stored = db.get(TrainedModel, model_id)
    assert stored.status == "completed"
    assert stored.completed_at is not None


def test_deployment_finished_before_training_finished_conflicts(client, webhook_headers, training_model):
    response = client.post(
        f"/api/models/{training_model['id']}/deployment-finished",
        headers=webhook_headers,
        json={"endpoint_url": "https://api.runpod.ai/v2/abc"},
    )
    assert response.status_code == 409
    assert response.json()["success"] is False


def test_deployment_finished_requires_endpoint_url(client, webhook_headers, training_model):
    response = client.post(
        f"/api/models/{training_model['id']}/deployment-finished",
        headers=webhook_headers,
        json={},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "endpoint_url is required"
