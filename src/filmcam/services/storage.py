"""Storage service for Google Cloud Storage operations."""

from datetime import datetime
from pathlib import Path
from urllib.parse import unquote, urlparse

import requests
from google.cloud import storage  # type: ignore[attr-defined]
from google.cloud.exceptions import GoogleCloudError, NotFound

from filmcam.ui.handlers.error import NetworkError, StorageError
from ..config import get_http_timeout, get_photos_bucket, get_photos_prefix, get_project_id
from ..logging_config import get_logger

logger = get_logger(__name__)

PUBLIC_URL_HOST = "storage.googleapis.com"


class StorageService:
    """Service for Google Cloud Storage operations on the photos bucket."""

    def __init__(self, bucket_name: str | None = None, project_id: str | None = None) -> None:
        """
        Initialize the storage service.

        Args:
            bucket_name: GCS photos bucket name (defaults to GCS_PHOTOS_BUCKET)
            project_id: GCP project ID (defaults to GOOGLE_CLOUD_PROJECT)

        Raises:
            StorageError: If configuration is missing or the client cannot be created
        """
        try:
            self.photos_bucket_name = bucket_name or get_photos_bucket()
            self.project_id = project_id or get_project_id()
        except ValueError as e:
            raise StorageError(f"Storage is not configured: {e}", code="storage_not_configured") from e

        self.prefix = get_photos_prefix()

        try:
            self.client = storage.Client(project=self.project_id)
            self.photos_bucket = self.client.bucket(self.photos_bucket_name)
            logger.info(
                "storage_service_initialized",
                photos_bucket=self.photos_bucket_name,
                project_id=self.project_id,
                prefix=self.prefix,
            )
        except Exception as e:
            raise StorageError(f"Failed to initialize GCS client: {e}") from e

    def build_photo_path(self, user_id: str, filename: str, uploaded_at: datetime | None = None) -> str:
        """
        Generate the object path for a photo, namespaced by upload time and filename.

        Args:
            user_id: User identifier
            filename: Original filename

        Returns:
            str: GCS object path, e.g. ``photos/<user>/1700000000000_photo.jpg``
        """
        # Sanitize filename to prevent path traversal
        safe_filename = Path(filename).name
        timestamp_ms = int((uploaded_at or datetime.now()).timestamp() * 1000)
        return f"{self.prefix}/{user_id}/{timestamp_ms}_{safe_filename}"

    def public_url(self, gcs_path: str) -> str:
        return f"https://{PUBLIC_URL_HOST}/{self.photos_bucket_name}/{gcs_path}"

    def path_from_url(self, url: str) -> str | None:
        """
        Map a URL back to an object path in the photos bucket.

        Returns:
            The object path, or None when the URL points elsewhere
        """
        parsed = urlparse(url)
        if parsed.scheme == "gs" and parsed.netloc == self.photos_bucket_name:
            return unquote(parsed.path.lstrip("/"))

        if parsed.scheme in ("http", "https") and parsed.netloc == PUBLIC_URL_HOST:
            bucket, _, path = parsed.path.lstrip("/").partition("/")
            if bucket == self.photos_bucket_name and path:
                return unquote(path)

        return None

    def upload_photo(self, file_data: bytes, gcs_path: str, content_type: str = "image/jpeg") -> str:
        """
        Upload an encoded photo in a single attempt.

        Args:
            file_data: Encoded image bytes
            gcs_path: Destination object path
            content_type: MIME type of the data

        Returns:
            str: Public URL of the stored object

        Raises:
            StorageError: If the upload fails
        """
        try:
            blob = self.photos_bucket.blob(gcs_path)
            blob.metadata = {
                "uploaded_at": datetime.now().isoformat(),
                "file_size": str(len(file_data)),
                "upload_type": "photo",
            }

            blob.upload_from_string(file_data, content_type=content_type)

            url = self.public_url(gcs_path)
            logger.info("photo_uploaded", gcs_path=gcs_path, file_size=len(file_data))
            return url

        except GoogleCloudError as e:
            raise StorageError(
                f"Failed to upload photo '{gcs_path}': {e}",
                code="upload_attempt_failed",
                details={"gcs_path": gcs_path},
                original_exception=e,
            ) from e
        except Exception as e:
            raise StorageError(
                f"Unexpected error uploading '{gcs_path}': {e}",
                code="upload_attempt_failed",
                details={"gcs_path": gcs_path},
                original_exception=e,
            ) from e

    def download_file(self, gcs_path: str) -> bytes:
        """
        Download file from GCS.

        Raises:
            StorageError: If download fails
        """
        try:
            blob = self.photos_bucket.blob(gcs_path)
            file_data: bytes = blob.download_as_bytes()
            logger.debug("file_downloaded", gcs_path=gcs_path, file_size=len(file_data))
            return file_data

        except NotFound as e:
            raise StorageError(f"File not found: {gcs_path}", code="file_not_found") from e
        except GoogleCloudError as e:
            raise StorageError(
                f"Failed to download file '{gcs_path}': {e}", details={"gcs_path": gcs_path}, original_exception=e
            ) from e
        except Exception as e:
            raise StorageError(
                f"Unexpected error downloading '{gcs_path}': {e}",
                code="download_failed",
                details={"gcs_path": gcs_path},
                original_exception=e,
            ) from e


class ImageLoader:
    """Fetches image bytes by URL, using GCS directly for the photos bucket."""

    def __init__(self, storage_service: StorageService | None = None, timeout: float | None = None) -> None:
        self.storage_service = storage_service
        self.timeout = timeout if timeout is not None else get_http_timeout()

    def load(self, url: str) -> bytes:
        """
        Load the bytes behind an image URL.

        Raises:
            StorageError: If the object cannot be read from the photos bucket
            NetworkError: If an HTTP fetch fails
        """
        if self.storage_service is not None:
            gcs_path = self.storage_service.path_from_url(url)
            if gcs_path is not None:
                return self.storage_service.download_file(gcs_path)

        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(
                f"Failed to fetch image from {url}: {e}",
                code="image_fetch_failed",
                details={"url": url},
                original_exception=e,
            ) from e

        logger.debug("image_fetched", url=url, file_size=len(response.content))
        return response.content


_storage_service: StorageService | None = None


def get_storage_service(bucket_name: str | None = None, project_id: str | None = None) -> StorageService:
    """
    Get the global storage service instance.

    Returns:
        StorageService: Global storage service instance
    """
    global _storage_service

    if _storage_service is None:
        _storage_service = StorageService(bucket_name=bucket_name, project_id=project_id)

    return _storage_service
