"""
Shared fixtures: in-memory database, fake collaborators and an API client.
"""

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers tables on Base
from app.api.deps import get_db, get_deploy_trigger, get_job_provider, get_storage
from app.core.config import settings
from app.core.database import Base
from app.core.errors import JobProviderError
from app.core.security import create_access_token
from app.main import app
from app.schemas.model import ProviderStatus
from app.services.dataset_store import DatasetStore
from app.services.job_provider import ProviderJobStatus
from app.services.storage import StorageService

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
BUCKET = "test-bucket"
WEBHOOK_TOKEN = "test-webhook-token"
STRIPE_WEBHOOK_SECRET = "whsec_test"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client."""

    def __init__(self):
        self.objects = set()
        self.deleted = []
        self.fail_deletes = False
        self.fail_head = False
        self.calls = []

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        self.calls.append(("generate_presigned_url", Params["Key"]))
        return f"https://r2.test/{Params['Bucket']}/{Params['Key']}?op={operation}&expires={ExpiresIn}"

    def head_object(self, Bucket, Key):
        self.calls.append(("head_object", Key))
        if self.fail_head:
            raise ClientError(
                {"Error": {"Code": "AccessDenied", "Message": "Forbidden"},
                 "ResponseMetadata": {"HTTPStatusCode": 403}},
                "HeadObject",
            )
        if Key not in self.objects:
            raise ClientError(
                {"Error": {"Code": "404", "Message": "Not Found"},
                 "ResponseMetadata": {"HTTPStatusCode": 404}},
                "HeadObject",
            )
        return {"ContentLength": 1}

    def delete_object(self, Bucket, Key):
        if self.fail_deletes:
            raise ClientError(
                {"Error": {"Code": "InternalError", "Message": "boom"},
                 "ResponseMetadata": {"HTTPStatusCode": 500}},
                "DeleteObject",
            )
        self.objects.discard(Key)
        self.deleted.append(Key)


class FakeJobProvider:
    """Records calls; behaviour is controlled through attributes."""

    def __init__(self):
        self.job_id = "job-123"
        self.started = []
        self.cancelled = []
        self.status_calls = []
        self.start_error = None
        self.cancel_error = None
        self.status_error = None
        self.status_result = ProviderJobStatus(
            raw_status="IN_PROGRESS",
            status=ProviderStatus.TRAINING,
            current_step=250,
            total_steps=1000,
            progress_percent=25.0,
        )

    async def start(self, spec):
        if self.start_error:
            raise self.start_error
        self.started.append(spec)
        return self.job_id

    async def status(self, job_id):
        self.status_calls.append(job_id)
        if self.status_error:
            raise self.status_error
        return self.status_result

    async def cancel(self, job_id):
        self.cancelled.append(job_id)
        if self.cancel_error:
            raise self.cancel_error
        return {"id": job_id, "status": "CANCELLED"}


class FakeDeployTrigger:

    def __init__(self):
        self.dispatched = []

    async def dispatch(self, model_id, model_path):
        self.dispatched.append((model_id, model_path))
        return True


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def s3():
    return FakeS3Client()


@pytest.fixture
def storage(s3):
    return StorageService(client=s3, bucket=BUCKET, url_expiration=3600)


@pytest.fixture
def provider():
    return FakeJobProvider()


@pytest.fixture
def deploy_trigger():
    return FakeDeployTrigger()


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    monkeypatch.setattr(settings, "WEBHOOK_TOKEN", WEBHOOK_TOKEN)
    monkeypatch.setattr(settings, "APP_URL", "https://app.test")
    monkeypatch.setattr(settings, "SECRET_KEY", "test-secret")
    monkeypatch.setattr(settings, "RUNPOD_API_KEY", "rp-test-key")
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_key")
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", STRIPE_WEBHOOK_SECRET)
    monkeypatch.setattr(settings, "FRONTEND_URL", "https://studio.test")


@pytest.fixture
def client(db, provider, storage, deploy_trigger):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_job_provider] = lambda: provider
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_deploy_trigger] = lambda: deploy_trigger
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(USER_ID)}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {create_access_token(OTHER_USER_ID)}"}


@pytest.fixture
def webhook_headers():
    return {"Authorization": WEBHOOK_TOKEN}


@pytest.fixture
def dataset(db, s3):
    key = f"{USER_ID}/datasets/ds-1.zip"
    s3.objects.add(key)
    return DatasetStore(db).create(
        dataset_id="ds-1",
        user_id=USER_ID,
        url=f"r2://{BUCKET}/{key}",
        number_of_images=12,
    )


def provider_error(message="provider down", http_status=500):
    return JobProviderError(message, http_status=http_status)
