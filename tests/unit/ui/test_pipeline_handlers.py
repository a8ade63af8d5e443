"""Tests for the pipeline wiring used by the pages and the CLI."""

from unittest.mock import patch

import pytest

from filmcam.models.filter_profile import list_filter_profiles
from filmcam.models.photo import PhotoRecord
from filmcam.services.capture import OutcomeStatus
from filmcam.ui.handlers.error import SourceUnavailableError
from filmcam.ui.handlers.pipeline import capture_still, load_histogram, load_photo, save_edit
from filmcam.ui.pages.editor import initial_filter_index
from tests.conftest import TestDataFactory

BUCKET_URL = "https://storage.googleapis.com/test-photos-bucket/"


class InMemoryStorage:
    """Stands in for StorageService with a dict of objects."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}

    def build_photo_path(self, user_id: str, filename: str) -> str:
        return f"photos/{user_id}/{len(self.objects)}_{filename}"

    def upload_photo(self, file_data: bytes, gcs_path: str, content_type: str = "image/jpeg") -> str:
        self.objects[gcs_path] = file_data
        return BUCKET_URL + gcs_path

    def path_from_url(self, url: str) -> str | None:
        return url[len(BUCKET_URL) :] if url.startswith(BUCKET_URL) else None

    def download_file(self, gcs_path: str) -> bytes:
        return self.objects[gcs_path]


@pytest.fixture
def storage():
    storage = InMemoryStorage()
    with patch("filmcam.ui.handlers.pipeline.get_storage_service", return_value=storage):
        yield storage


@pytest.fixture
def wired_metadata(metadata_service):
    with patch("filmcam.ui.handlers.pipeline.get_metadata_service", return_value=metadata_service):
        yield metadata_service


class TestCaptureStill:
    def test_capture_and_edit_round(self, storage, wired_metadata, mock_user_id):
        progress: list[int] = []

        captured = capture_still(
            TestDataFactory.create_jpeg((320, 240), "blue"),
            mock_user_id,
            exposure=0.5,
            progress_callback=lambda percent, stage: progress.append(percent),
        )

        assert captured.status is OutcomeStatus.SUCCEEDED
        assert progress == [30, 50, 80, 100]
        assert len(storage.objects) == 1

        edited = save_edit(captured.record.id, "classic_bw")

        assert edited.succeeded
        assert edited.record.filter_applied == "classic_bw"
        assert edited.record.image_url != captured.record.image_url
        assert len(storage.objects) == 2
        assert wired_metadata.get_photo(captured.record.id).edited is True

    def test_unreadable_still_fails(self, storage, wired_metadata, mock_user_id):
        progress: list[int] = []

        outcome = capture_still(
            b"not an image", mock_user_id, progress_callback=lambda percent, stage: progress.append(percent)
        )

        assert outcome.status is OutcomeStatus.FAILED
        assert isinstance(outcome.error, SourceUnavailableError)
        assert outcome.user_message == "Could not access camera. Please check permissions."
        assert progress == []
        assert storage.objects == {}
        assert wired_metadata.list_user_photos(mock_user_id) == []

    def test_load_photo_and_histogram(self, storage, wired_metadata, mock_user_id):
        captured = capture_still(TestDataFactory.create_jpeg((40, 30)), mock_user_id)

        buffer = load_photo(captured.record.image_url)
        histogram = load_histogram(captured.record.image_url)

        assert buffer.size == (40, 30)
        assert histogram.total == 1200


class TestInitialFilterIndex:
    def make_record(self, filter_applied: str) -> PhotoRecord:
        record = PhotoRecord.from_dict(
            {
                "id": "p1",
                "user_id": "u1",
                "image_url": BUCKET_URL + "a.jpg",
                "created_at": "2024-01-01T00:00:00+00:00",
            }
        )
        record.filter_applied = filter_applied
        return record

    def test_current_filter_selected(self):
        profiles = list_filter_profiles()

        index = initial_filter_index(self.make_record("velvia"), profiles)

        assert profiles[index].id == "velvia"

    def test_unknown_filter_falls_back_to_none(self):
        profiles = list_filter_profiles()

        index = initial_filter_index(self.make_record("discontinued"), profiles)

        assert profiles[index].id == "none"
