"""
StorageService tests
Transport failures from MinIO/S3 surface as StorageError and become 400s
"""
import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import EndpointConnectionError
from urllib3.exceptions import MaxRetryError

from main import app
from services.storage import StorageError, StorageService, get_storage_service

from conftest import image_file


USERS_URL = "/api/v1/users"


def unreachable_minio() -> StorageService:
    """MinIO-backed service whose endpoint refuses every connection"""
    service = StorageService()
    service.use_aws = False
    service.minio_client = MagicMock()
    service.minio_client.bucket_exists.side_effect = MaxRetryError(None, "/images")
    service.minio_client.put_object.side_effect = MaxRetryError(None, "/images/avatars/x.png")
    service.minio_client.remove_object.side_effect = MaxRetryError(None, "/images/avatars/x.png")
    return service


@pytest.fixture
def use_storage():
    """Route requests to a specific StorageService for one test"""
    def install(service):
        app.dependency_overrides[get_storage_service] = lambda: service
        return service
    return install


class TestStorageServiceErrors:
    """Client errors and transport errors both raise StorageError"""

    def test_minio_unreachable_on_upload(self):
        service = unreachable_minio()
        with pytest.raises(StorageError):
            service.upload_image(io.BytesIO(b"img"), "me.png", "avatars", "image/png")

    def test_minio_unreachable_on_delete(self):
        service = unreachable_minio()
        with pytest.raises(StorageError):
            service.delete_file("avatars/old.png")

    def test_s3_endpoint_unreachable(self):
        service = StorageService()
        service.use_aws = True
        service.bucket_name = "images"
        service.s3_client = MagicMock()
        service.s3_client.upload_fileobj.side_effect = EndpointConnectionError(endpoint_url="https://s3.test")
        service.s3_client.delete_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.test")

        with pytest.raises(StorageError):
            service.upload_file(io.BytesIO(b"img"), "avatars/me.png", "image/png")
        with pytest.raises(StorageError):
            service.delete_file("avatars/me.png")

    def test_upload_returns_url_and_key(self):
        service = StorageService()
        service.use_aws = False
        service.minio_client = MagicMock()
        service.minio_client.bucket_exists.return_value = True

        url, key = service.upload_image(io.BytesIO(b"img"), "Me.PNG", "avatars", "image/png")

        assert key.startswith("avatars/")
        assert key.endswith(".png")
        assert url.endswith(f"/{service.bucket_name}/{key}")
        service.minio_client.put_object.assert_called_once()


class TestEndpointsWithUnreachableStorage:
    """Endpoints report storage outages as 400, never 500"""

    def test_register_avatar_upload_fails(self, client, use_storage):
        use_storage(unreachable_minio())
        response = client.post(
            f"{USERS_URL}/register",
            data={
                "fullName": "New User",
                "email": "newuser@example.com",
                "username": "newuser",
                "password": "hunter2",
            },
            files={"avatar": image_file()},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Avatar file is required"

    def test_update_avatar_upload_fails(self, client, use_storage, auth_headers):
        use_storage(unreachable_minio())
        response = client.patch(
            f"{USERS_URL}/avatar",
            files={"avatar": image_file()},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Error while uploading avatar"

    def test_failed_delete_of_old_avatar_keeps_new_one(self, client, test_db, test_user, use_storage, auth_headers):
        service = unreachable_minio()
        service.minio_client.bucket_exists.side_effect = None
        service.minio_client.bucket_exists.return_value = True
        service.minio_client.put_object.side_effect = None
        use_storage(service)

        response = client.patch(
            f"{USERS_URL}/avatar",
            files={"avatar": image_file()},
            headers=auth_headers,
        )
        assert response.status_code == 200

        test_db.refresh(test_user)
        assert test_user.avatar_key != "avatars/testuser.png"
        service.minio_client.remove_object.assert_called_once_with(service.bucket_name, "avatars/testuser.png")
