"""Shared test doubles."""
import pytest


class FakeS3Client:
    """Records upload_fileobj calls the way aioboto3's S3 client receives them."""

    def __init__(self, session):
        self._session = session

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return None

    async def upload_fileobj(self, Fileobj, Bucket, Key, ExtraArgs=None):
        if self._session.errors:
            raise self._session.errors.pop(0)
        body = await Fileobj.read()
        self._session.uploads.append({
            "bucket": Bucket,
            "key": Key,
            "body": body,
            "extra": ExtraArgs or {},
        })


class FakeS3Session:
    """Stands in for aioboto3.Session."""

    instances = []

    def __init__(self, **credentials):
        self.credentials = credentials
        self.client_kwargs = []
        self.uploads = []
        self.errors = []
        FakeS3Session.instances.append(self)

    def client(self, service_name, **kwargs):
        assert service_name == "s3"
        self.client_kwargs.append(kwargs)
        return FakeS3Client(self)


@pytest.fixture
def fake_s3(monkeypatch):
    """Route every aioboto3.Session the factory creates to FakeS3Session."""
    FakeS3Session.instances = []
    monkeypatch.setattr("artifact_uploader.uploaders.aioboto3.Session", FakeS3Session)
    return FakeS3Session
