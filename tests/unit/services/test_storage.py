"""
Unit tests for storage service.
"""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
import requests
from google.cloud.exceptions import GoogleCloudError, NotFound

from filmcam.config import get_config
from filmcam.services.storage import ImageLoader, StorageService
from filmcam.ui.handlers.error import NetworkError, StorageError


class TestStorageService:
    """Test cases for StorageService class."""

    @patch("filmcam.services.storage.storage.Client")
    def test_init_success(self, mock_client_class):
        mock_client = MagicMock()
        mock_bucket = MagicMock()
        mock_client.bucket.return_value = mock_bucket
        mock_client_class.return_value = mock_client

        service = StorageService()

        assert service.photos_bucket_name == "test-photos-bucket"
        assert service.project_id == "test-project"
        assert service.photos_bucket == mock_bucket
        mock_client_class.assert_called_once_with(project="test-project")

    def test_init_missing_bucket_name(self, monkeypatch):
        monkeypatch.delenv("GCS_PHOTOS_BUCKET")
        get_config().clear_cache()

        with pytest.raises(StorageError) as exc_info:
            StorageService()

        assert exc_info.value.code == "storage_not_configured"

    @patch("filmcam.services.storage.storage.Client")
    def test_init_client_error(self, mock_client_class):
        mock_client_class.side_effect = Exception("Client initialization failed")

        with pytest.raises(StorageError, match="Failed to initialize GCS client"):
            StorageService()

    @patch("filmcam.services.storage.storage.Client")
    def test_build_photo_path(self, mock_client_class):
        service = StorageService()
        uploaded_at = datetime.fromtimestamp(1_700_000_000.123)

        path = service.build_photo_path("user123", "photo-1.jpg", uploaded_at)

        assert path == "photos/user123/1700000000123_photo-1.jpg"

    @patch("filmcam.services.storage.storage.Client")
    def test_build_photo_path_sanitizes_filename(self, mock_client_class):
        service = StorageService()

        path = service.build_photo_path("user123", "../../../etc/passwd")

        assert path.startswith("photos/user123/")
        assert path.endswith("_passwd")
        assert ".." not in path

    @patch("filmcam.services.storage.storage.Client")
    def test_path_from_url(self, mock_client_class):
        service = StorageService()

        assert service.path_from_url(service.public_url("photos/u/1_a.jpg")) == "photos/u/1_a.jpg"
        assert service.path_from_url("gs://test-photos-bucket/photos/u/2_b.jpg") == "photos/u/2_b.jpg"
        assert service.path_from_url("https://storage.googleapis.com/other-bucket/x.jpg") is None
        assert service.path_from_url("https://example.com/x.jpg") is None

    @patch("filmcam.services.storage.storage.Client")
    def test_upload_photo_success(self, mock_client_class):
        mock_blob = MagicMock()
        mock_client_class.return_value.bucket.return_value.blob.return_value = mock_blob
        service = StorageService()

        url = service.upload_photo(b"jpeg-data", "photos/u/1_photo.jpg")

        assert url == "https://storage.googleapis.com/test-photos-bucket/photos/u/1_photo.jpg"
        mock_blob.upload_from_string.assert_called_once_with(b"jpeg-data", content_type="image/jpeg")
        assert mock_blob.metadata["file_size"] == "9"

    @patch("filmcam.services.storage.storage.Client")
    def test_upload_photo_gcs_error(self, mock_client_class):
        mock_blob = MagicMock()
        mock_blob.upload_from_string.side_effect = GoogleCloudError("Upload failed")
        mock_client_class.return_value.bucket.return_value.blob.return_value = mock_blob
        service = StorageService()

        with pytest.raises(StorageError) as exc_info:
            service.upload_photo(b"jpeg-data", "photos/u/1_photo.jpg")

        assert exc_info.value.code == "upload_attempt_failed"

    @patch("filmcam.services.storage.storage.Client")
    def test_download_file_not_found(self, mock_client_class):
        mock_blob = MagicMock()
        mock_blob.download_as_bytes.side_effect = NotFound("missing")
        mock_client_class.return_value.bucket.return_value.blob.return_value = mock_blob
        service = StorageService()

        with pytest.raises(StorageError) as exc_info:
            service.download_file("photos/u/missing.jpg")

        assert exc_info.value.code == "file_not_found"

    @patch("filmcam.services.storage.storage.Client")
    def test_download_file_transport_error(self, mock_client_class):
        mock_blob = MagicMock()
        mock_blob.download_as_bytes.side_effect = requests.exceptions.ConnectionError("connection reset")
        mock_client_class.return_value.bucket.return_value.blob.return_value = mock_blob
        service = StorageService()

        with pytest.raises(StorageError) as exc_info:
            service.download_file("photos/u/1_a.jpg")

        assert exc_info.value.code == "download_failed"
        assert isinstance(exc_info.value.original_exception, requests.exceptions.ConnectionError)


class TestImageLoader:
    """Test cases for ImageLoader."""

    def test_own_bucket_urls_read_through_gcs(self):
        storage_service = MagicMock()
        storage_service.path_from_url.return_value = "photos/u/1_a.jpg"
        storage_service.download_file.return_value = b"bytes"

        data = ImageLoader(storage_service).load("https://storage.googleapis.com/test-photos-bucket/photos/u/1_a.jpg")

        assert data == b"bytes"
        storage_service.download_file.assert_called_once_with("photos/u/1_a.jpg")

    @patch("filmcam.services.storage.requests.get")
    def test_other_urls_fetched_over_http(self, mock_get):
        mock_get.return_value = MagicMock(content=b"remote")

        data = ImageLoader(timeout=5).load("https://example.com/a.jpg")

        assert data == b"remote"
        mock_get.assert_called_once_with("https://example.com/a.jpg", timeout=5)

    @patch("filmcam.services.storage.requests.get")
    def test_http_failure_raises_network_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(NetworkError) as exc_info:
            ImageLoader(timeout=5).load("https://example.com/a.jpg")

        assert exc_info.value.code == "image_fetch_failed"

    @patch("filmcam.services.storage.requests.get")
    def test_http_error_status_raises_network_error(self, mock_get):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("404")
        mock_get.return_value = response

        with pytest.raises(NetworkError):
            ImageLoader(timeout=5).load("https://example.com/missing.jpg")
