"""
Unit tests for the edit orchestrator.
"""

import asyncio
import io
from datetime import datetime
from unittest.mock import patch

import numpy as np
import pytest
import requests
from PIL import Image

from filmcam.models.filter_profile import adjustment_profile
from filmcam.models.photo import PhotoRecord, PrivacyPreferences
from filmcam.services.edit import EditOrchestrator, edit_filename
from filmcam.services.storage import ImageLoader, StorageService
from filmcam.services.upload import RetryPolicy, UploadManager
from filmcam.ui.handlers.error import EditFailedError, NetworkError, StorageError
from tests.conftest import TestDataFactory

ORIGINAL_URL = "https://storage.googleapis.com/test-photos-bucket/photos/user-1/1_photo-1.jpg"


class FakeImageLoader:
    def __init__(self, images: dict[str, bytes]):
        self.images = images
        self.requested: list[str] = []

    def load(self, url: str) -> bytes:
        self.requested.append(url)
        if url not in self.images:
            raise NetworkError(f"Failed to fetch image from {url}", code="image_fetch_failed")
        return self.images[url]


class RecordingUploader:
    def __init__(self, failures: int = 0):
        self.failures = failures
        self.uploads: dict[str, bytes] = {}
        self.calls = 0

    def upload_photo(self, file_data: bytes, gcs_path: str, content_type: str = "image/jpeg") -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise StorageError("bucket unavailable", code="upload_attempt_failed")
        self.uploads[gcs_path] = file_data
        return f"https://storage.googleapis.com/test-photos-bucket/{gcs_path}"


async def no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def stored_photo(metadata_service) -> PhotoRecord:
    record = PhotoRecord.create_capture(
        user_id="user-1",
        image_url=ORIGINAL_URL,
        preferences=PrivacyPreferences(default_photo_visibility="friends_only"),
    )
    return metadata_service.create_photo(record)


def make_orchestrator(metadata_service, images=None, uploader=None, progress=None):
    loader = FakeImageLoader(
        images if images is not None else {ORIGINAL_URL: TestDataFactory.create_jpeg((80, 60), "orange")}
    )
    uploader = uploader or RecordingUploader()
    orchestrator = EditOrchestrator(
        image_loader=loader,
        upload_manager=UploadManager(uploader, policy=RetryPolicy(backoff_seconds=0), sleep=no_sleep),
        metadata_service=metadata_service,
        path_builder=lambda user_id, filename: f"photos/{user_id}/{filename}",
        progress_callback=(lambda percent, stage: progress.append(percent)) if progress is not None else None,
    )
    return orchestrator, loader, uploader


class TestEdit:
    @pytest.mark.asyncio
    async def test_classic_bw_replaces_image(self, metadata_service, stored_photo):
        progress: list[int] = []
        orchestrator, loader, uploader = make_orchestrator(metadata_service, progress=progress)

        outcome = await orchestrator.edit(stored_photo.id, "classic_bw")

        assert outcome.succeeded
        record = outcome.record
        assert record.edited is True
        assert record.filter_applied == "classic_bw"
        assert record.image_url != ORIGINAL_URL
        assert record.thumbnail_url == record.image_url
        assert record.visibility == "friends_only"
        assert loader.requested == [ORIGINAL_URL]
        assert progress == [30, 50, 80, 100]

        [(path, data)] = list(uploader.uploads.items())
        assert "/edited-" in path
        with Image.open(io.BytesIO(data)) as image:
            rgb = np.asarray(image.convert("RGB")).astype(int)
        assert image.size == (80, 60)
        assert np.all(np.abs(rgb[..., 0] - rgb[..., 2]) <= 8)

        stored = metadata_service.get_photo(stored_photo.id)
        assert stored.image_url == record.image_url

    @pytest.mark.asyncio
    async def test_none_profile_with_adjustments(self, metadata_service, stored_photo):
        orchestrator, _, uploader = make_orchestrator(metadata_service)

        outcome = await orchestrator.edit(stored_photo.id, "none", adjustments=adjustment_profile(brightness=1.3))

        assert outcome.succeeded
        assert outcome.record.filter_applied == "none"
        assert outcome.record.edited is True
        assert uploader.calls == 1

    @pytest.mark.asyncio
    async def test_upload_retried(self, metadata_service, stored_photo):
        orchestrator, _, uploader = make_orchestrator(metadata_service, uploader=RecordingUploader(failures=2))

        outcome = await orchestrator.edit(stored_photo.id, "vintage_sepia")

        assert outcome.succeeded
        assert uploader.calls == 3


class TestEditFailures:
    @pytest.mark.asyncio
    @patch("filmcam.services.storage.storage.Client")
    async def test_storage_transport_error_fails_edit(self, mock_client_class, metadata_service, stored_photo):
        blob = mock_client_class.return_value.bucket.return_value.blob.return_value
        blob.download_as_bytes.side_effect = requests.exceptions.ConnectionError("connection reset")
        uploader = RecordingUploader()
        orchestrator = EditOrchestrator(
            image_loader=ImageLoader(StorageService()),
            upload_manager=UploadManager(uploader, sleep=no_sleep),
            metadata_service=metadata_service,
            path_builder=lambda user_id, filename: f"photos/{user_id}/{filename}",
        )

        outcome = await orchestrator.edit(stored_photo.id, "classic_bw")

        assert outcome.status.value == "failed"
        assert isinstance(outcome.error, EditFailedError)
        assert outcome.error.details["cause"] == "download_failed"
        assert outcome.user_message == "Could not apply edit."
        assert uploader.calls == 0
        assert metadata_service.get_photo(stored_photo.id).image_url == ORIGINAL_URL

    @pytest.mark.asyncio
    async def test_undecodable_image_leaves_record_unchanged(self, metadata_service, stored_photo):
        orchestrator, _, uploader = make_orchestrator(metadata_service, images={ORIGINAL_URL: b"not a jpeg"})

        outcome = await orchestrator.edit(stored_photo.id, "classic_bw")

        assert outcome.status.value == "failed"
        assert isinstance(outcome.error, EditFailedError)
        assert outcome.user_message == "Could not apply edit."
        assert uploader.calls == 0
        stored = metadata_service.get_photo(stored_photo.id)
        assert stored.image_url == ORIGINAL_URL
        assert stored.edited is False
        assert stored.filter_applied == "none"

    @pytest.mark.asyncio
    async def test_unreachable_image_fails(self, metadata_service, stored_photo):
        orchestrator, _, _ = make_orchestrator(metadata_service, images={})

        outcome = await orchestrator.edit(stored_photo.id, "classic_bw")

        assert outcome.status.value == "failed"
        assert outcome.error.details["cause"] == "image_fetch_failed"

    @pytest.mark.asyncio
    async def test_upload_exhausted_leaves_record_unchanged(self, metadata_service, stored_photo):
        orchestrator, _, _ = make_orchestrator(metadata_service, uploader=RecordingUploader(failures=10))

        outcome = await orchestrator.edit(stored_photo.id, "classic_bw")

        assert outcome.status.value == "failed"
        assert outcome.error.code == "upload_failed_after_retries"
        assert metadata_service.get_photo(stored_photo.id).image_url == ORIGINAL_URL

    @pytest.mark.asyncio
    async def test_unknown_filter_rejected(self, metadata_service, stored_photo):
        orchestrator, loader, _ = make_orchestrator(metadata_service)

        outcome = await orchestrator.edit(stored_photo.id, "no-such-filter")

        assert outcome.status.value == "rejected"
        assert outcome.error.code == "unknown_filter"
        assert loader.requested == []

    @pytest.mark.asyncio
    async def test_unknown_photo_rejected(self, metadata_service):
        orchestrator, loader, _ = make_orchestrator(metadata_service)

        outcome = await orchestrator.edit("missing-photo", "classic_bw")

        assert outcome.status.value == "rejected"
        assert outcome.error.code == "photo_not_found"
        assert loader.requested == []

    @pytest.mark.asyncio
    async def test_concurrent_edit_rejected(self, metadata_service, stored_photo):
        orchestrator, loader, _ = make_orchestrator(metadata_service)
        gate = asyncio.Event()
        original_load = orchestrator.load_image

        async def held_load(url):
            await gate.wait()
            return await original_load(url)

        orchestrator.load_image = held_load

        first = asyncio.create_task(orchestrator.edit(stored_photo.id, "classic_bw"))
        await asyncio.sleep(0)
        second = await orchestrator.edit(stored_photo.id, "velvia")
        gate.set()
        first_outcome = await first

        assert second.status.value == "rejected"
        assert first_outcome.succeeded
        assert metadata_service.get_photo(stored_photo.id).filter_applied == "classic_bw"


class TestLoading:
    @pytest.mark.asyncio
    async def test_load_histogram(self, metadata_service):
        orchestrator, _, uploader = make_orchestrator(
            metadata_service, images={ORIGINAL_URL: TestDataFactory.create_jpeg((10, 10), "black")}
        )

        histogram = await orchestrator.load_histogram(ORIGINAL_URL)

        assert histogram.total == 100
        assert histogram.r[0] > 90
        assert uploader.calls == 0

    @pytest.mark.asyncio
    async def test_load_image_failure(self, metadata_service):
        orchestrator, _, _ = make_orchestrator(metadata_service, images={})

        with pytest.raises(EditFailedError):
            await orchestrator.load_image(ORIGINAL_URL)


def test_edit_filename():
    assert edit_filename(datetime.fromtimestamp(1_700_000_000.25)) == "edited-1700000000250.jpg"
