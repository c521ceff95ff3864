"""
Tests for the user-facing model routes.
"""

import pytest

from app.core.errors import JobProviderError
from app.models.model import TrainedModel
from tests.conftest import BUCKET, USER_ID, WEBHOOK_TOKEN


def create_model(client, headers, dataset_id="ds-1", **overrides):
    payload = {
        "name": "Portrait v1",
        "type": "high-quality",
        "resolution": "1024x1024",
        "training_steps": 1000,
        "dataset_id": dataset_id,
    }
    payload.update(overrides)
    return client.post("/api/models", headers=headers, json=payload)


def finish_training(client, model_id):
    path = f"r2://{BUCKET}/{USER_ID}/models/model-{model_id}.safetensors"
    response = client.post(
        f"/api/models/{model_id}/training-finished",
        headers={"Authorization": WEBHOOK_TOKEN},
        json={"model_path": path},
    )
    assert response.status_code == 200
    return path


def test_requires_authentication(client):
    assert client.get("/api/models").status_code == 401
    response = client.get("/api/models", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "User not authenticated"}


def test_create_model_starts_training(client, auth_headers, dataset):
    response = create_model(client, auth_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["status"] == "training"
    assert body["data"]["training_run_id"] == "job-123"
    assert body["data"]["number_of_images"] == 12


def test_create_model_with_unknown_dataset(client, auth_headers, db):
    response = create_model(client, auth_headers, dataset_id="missing")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Dataset not found"}
    assert db.query(TrainedModel).count() == 0


def test_create_model_validation_error_is_400(client, auth_headers, dataset):
    response = create_model(client, auth_headers, training_steps=0)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "training_steps" in response.json()["error"]


def test_create_model_provider_failure(client, auth_headers, dataset, provider, db):
    provider.start_error = JobProviderError("RunPod unavailable", http_status=503)

    response = create_model(client, auth_headers)

    assert response.status_code == 502
    assert response.json()["success"] is False
    assert db.query(TrainedModel).one().status == "failed"


def test_get_and_list_are_owner_scoped(client, auth_headers, other_auth_headers, dataset):
    model_id = create_model(client, auth_headers).json()["data"]["id"]

    assert client.get(f"/api/models/{model_id}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/models/{model_id}", headers=other_auth_headers).status_code == 404
    assert len(client.get("/api/models", headers=auth_headers).json()["data"]) == 1
    assert client.get("/api/models", headers=other_auth_headers).json()["data"] == []


def test_status_poll(client, auth_headers, dataset):
    model_id = create_model(client, auth_headers).json()["data"]["id"]

    response = client.get(f"/api/models/{model_id}/status", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["provider_status"] == "training"
    assert data["current_step"] == 250


def test_status_poll_after_deploy_does_not_regress(client, auth_headers, dataset, provider):
    model_id = create_model(client, auth_headers).json()["data"]["id"]
    finish_training(client, model_id)

    data = client.get(f"/api/models/{model_id}/status", headers=auth_headers).json()["data"]

    assert data["status"] == "deploying"
    assert data["provider_status"] == "completed"
    assert provider.status_calls == []


def test_train_endpoint_rejects_non_pending(client, auth_headers, dataset):
    model_id = create_model(client, auth_headers).json()["data"]["id"]

    response = client.post(f"/api/models/{model_id}/train", headers=auth_headers)

    assert response.status_code == 400


def test_cancel(client, auth_headers, dataset, provider):
    model_id = create_model(client, auth_headers).json()["data"]["id"]

    response = client.post(f"/api/models/{model_id}/cancel", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"
    assert provider.cancelled == ["job-123"]

    again = client.post(f"/api/models/{model_id}/cancel", headers=auth_headers)
    assert again.status_code == 400


def test_delete_reports_cleanup(client, auth_headers, dataset, provider, db):
    model_id = create_model(client, auth_headers).json()["data"]["id"]
    provider.cancel_error = JobProviderError("boom", http_status=500)

    response = client.delete(f"/api/models/{model_id}", headers=auth_headers)

    assert response.status_code == 200
    cleanup = {step["step"]: step for step in response.json()["data"]["cleanup"]}
    assert cleanup["cancel_training_job"]["outcome"] == "failed"
    assert cleanup["cancel_training_job"]["error"] == "boom"
    assert db.query(TrainedModel).count() == 0
    assert client.get(f"/api/models/{model_id}", headers=auth_headers).status_code == 404


def test_download_before_training_finishes(client, auth_headers, dataset):
    model_id = create_model(client, auth_headers).json()["data"]["id"]

    response = client.get(f"/api/models/{model_id}/download", headers=auth_headers)

    assert response.status_code == 409
    assert response.json()["error"] == "Model is not ready for download yet"


def test_download_link(client, auth_headers, dataset, s3):
    model_id = create_model(client, auth_headers, name="My Model v2").json()["data"]["id"]
    finish_training(client, model_id)
    key = f"{USER_ID}/models/model-{model_id}.safetensors"
    s3.objects.add(key)

    response = client.get(f"/api/models/{model_id}/download", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert key in data["download_url"]
    assert "op=get_object" in data["download_url"]
    assert data["file_name"] == "My_Model_v2.safetensors"
    assert data["expires_in"] == 3600


def test_download_of_other_users_model_is_not_found(client, auth_headers, other_auth_headers, dataset, s3):
    model_id = create_model(client, auth_headers).json()["data"]["id"]
    finish_training(client, model_id)
    s3.objects.add(f"{USER_ID}/models/model-{model_id}.safetensors")

    response = client.get(f"/api/models/{model_id}/download", headers=other_auth_headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Model not found"}
    assert s3.calls == []


def test_download_missing_file(client, auth_headers, dataset):
    model_id = create_model(client, auth_headers).json()["data"]["id"]
    finish_training(client, model_id)

    response = client.get(f"/api/models/{model_id}/download", headers=auth_headers)

    assert response.status_code == 409
    assert response.json()["error"] == "Model file not found in storage"


def test_download_storage_error(client, auth_headers, dataset, s3):
    model_id = create_model(client, auth_headers).json()["data"]["id"]
    finish_training(client, model_id)
    s3.fail_head = True

    response = client.get(f"/api/models/{model_id}/download", headers=auth_headers)

    assert response.status_code == 502


@pytest.mark.parametrize("path", ["/health", "/"])
def test_service_endpoints(client, path):
    assert client.get(path).status_code == 200
