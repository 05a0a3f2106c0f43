import pytest
from botocore.exceptions import ClientError

from visitlog.exceptions.base import ExternalServiceError
from visitlog.repositories.s3_repository import S3Repository


class RecordingClient:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def put_object(self, **kwargs):
        if self.fail:
            raise ClientError({'Error': {'Code': 'AccessDenied', 'Message': 'denied'}}, 'PutObject')
        self.calls.append(kwargs)


def test_upload_bytes_returns_public_url():
    client = RecordingClient()
    repo = S3Repository(client=client, bucket_name='photos')

    url = repo.upload_bytes('students/S25-01.jpg', b'jpeg', 'image/jpeg')

    assert url.startswith('https://photos.s3.')
    assert url.endswith('/students/S25-01.jpg')
    assert client.calls == [{
        'Bucket': 'photos', 'Key': 'students/S25-01.jpg', 'Body': b'jpeg', 'ContentType': 'image/jpeg',
    }]


def test_upload_failure_is_an_external_service_error():
    repo = S3Repository(client=RecordingClient(fail=True), bucket_name='photos')

    with pytest.raises(ExternalServiceError) as excinfo:
        repo.upload_bytes('students/S25-01.jpg', b'jpeg', 'image/jpeg')
    assert excinfo.value.status_code == 502


def test_upload_without_bucket_is_rejected(monkeypatch):
    monkeypatch.setattr('visitlog.config.settings.Config.AWS_S3_BUCKET', None)
    repo = S3Repository(client=RecordingClient(), bucket_name=None)

    with pytest.raises(ExternalServiceError):
        repo.upload_bytes('students/S25-01.jpg', b'jpeg', 'image/jpeg')
