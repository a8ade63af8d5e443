"""
Edit orchestration: stored photo to filtered, re-uploaded photo.

The existing record is only replaced once the new image is stored; any
failure before that leaves the record exactly as it was.
"""

import asyncio
from datetime import datetime

from filmcam.ui.handlers.error import (
    DatabaseError,
    EditFailedError,
    EncodingFailedError,
    ImageProcessingError,
    NetworkError,
    StorageError,
    UploadFailedAfterRetriesError,
    ValidationError,
)
from ..logging_config import get_logger, log_context, log_performance, log_user_action
from ..models.filter_profile import FilterProfile, get_filter_profile
from ..models.histogram import Histogram
from ..models.photo import PhotoRecord
from ..models.pixel_buffer import PixelBuffer
from .capture import CaptureOutcome, OutcomeStatus, PathBuilder
from .filters import FilterCompositor, get_filter_compositor
from .image_processor import EDIT_JPEG_QUALITY, ImageProcessor, get_image_processor
from .metadata import MetadataService
from .storage import ImageLoader
from .upload import ProgressCallback, ProgressMilestone, UploadManager, UploadTask

logger = get_logger(__name__)


class EditOutcome(CaptureOutcome):
    """Result of one edit request."""


def edit_filename(edited_at: datetime) -> str:
    return f"edited-{int(edited_at.timestamp() * 1000)}.jpg"


class EditOrchestrator:
    """Sequences load, filter, encode, upload and record update for one photo."""

    def __init__(
        self,
        image_loader: ImageLoader,
        upload_manager: UploadManager,
        metadata_service: MetadataService,
        path_builder: PathBuilder,
        progress_callback: ProgressCallback | None = None,
        compositor: FilterCompositor | None = None,
        image_processor: ImageProcessor | None = None,
    ) -> None:
        self.image_loader = image_loader
        self.upload_manager = upload_manager
        self.metadata_service = metadata_service
        self.path_builder = path_builder
        self.progress_callback = progress_callback
        self.compositor = compositor or get_filter_compositor()
        self.image_processor = image_processor or get_image_processor()
        self._busy = False

    async def load_image(self, url: str) -> PixelBuffer:
        """
        Fetch and decode the image behind ``url``.

        Raises:
            EditFailedError: If the image cannot be fetched or decoded
        """
        try:
            data = await asyncio.to_thread(self.image_loader.load, url)
            return await asyncio.to_thread(self.image_processor.decode, data)
        except (StorageError, NetworkError, ImageProcessingError) as e:
            raise EditFailedError(
                f"Could not load image {url}: {e}",
                details={"url": url, "cause": e.code},
                original_exception=e,
            ) from e

    async def load_histogram(self, url: str) -> Histogram:
        """Histogram of the image behind ``url``. Nothing is stored."""
        buffer = await self.load_image(url)
        return self.image_processor.analyze_histogram(buffer)

    async def edit(
        self,
        photo_id: str,
        profile_id: str | None,
        adjustments: FilterProfile | None = None,
    ) -> EditOutcome:
        """
        Apply a catalog filter (then optional manual adjustments) and save.

        Returns:
            EditOutcome: ``rejected`` for unknown photos or filters and when
            another edit is in flight, ``failed`` with the specific error, or
            ``succeeded`` with the updated record
        """
        if self._busy:
            logger.warning("edit_rejected", photo_id=photo_id)
            return EditOutcome(status=OutcomeStatus.REJECTED, user_message="An edit is already being saved.")

        try:
            profile = get_filter_profile(profile_id)
        except KeyError:
            error = ValidationError(
                f"Unknown filter: {profile_id}", code="unknown_filter", details={"profile_id": profile_id}
            )
            return EditOutcome.failure(OutcomeStatus.REJECTED, error)

        try:
            record = self.metadata_service.get_photo(photo_id)
        except DatabaseError as e:
            return EditOutcome.failure(OutcomeStatus.FAILED, e)
        if record is None:
            error = ValidationError(
                f"Photo not found: {photo_id}", code="photo_not_found", details={"photo_id": photo_id}
            )
            return EditOutcome.failure(OutcomeStatus.REJECTED, error)

        self._busy = True
        start_time = datetime.now()
        with log_context(operation="edit", photo_id=photo_id, profile_id=profile.id):
            try:
                updated = await self._run(record, profile, adjustments)
            except (EditFailedError, EncodingFailedError, UploadFailedAfterRetriesError, DatabaseError) as e:
                logger.warning("edit_failed", error_code=e.code)
                return EditOutcome.failure(OutcomeStatus.FAILED, e)
            finally:
                self._busy = False

        log_performance("edit", (datetime.now() - start_time).total_seconds(), photo_id=photo_id, profile_id=profile.id)
        log_user_action(updated.user_id, "photo_filter_applied", photo_id=photo_id, profile_id=profile.id)
        return EditOutcome(status=OutcomeStatus.SUCCEEDED, record=updated)

    async def _run(self, record: PhotoRecord, profile: FilterProfile, adjustments: FilterProfile | None) -> PhotoRecord:
        buffer = await self.load_image(record.image_url)

        buffer = self.compositor.apply(buffer, profile)
        if adjustments is not None:
            buffer = self.compositor.apply(buffer, adjustments)

        data = await asyncio.to_thread(self.image_processor.encode, buffer, EDIT_JPEG_QUALITY)

        task = UploadTask(
            data=data,
            destination_path=self.path_builder(record.user_id, edit_filename(datetime.now())),
            progress_callback=self.progress_callback,
        )
        task.report(ProgressMilestone.ENCODED, "encoded")
        task.report(ProgressMilestone.BLOB_READY, "blob_ready")

        url = await self.upload_manager.upload(task)

        updated = self.metadata_service.update_photo_image(
            record.id,
            image_url=url,
            thumbnail_url=url,
            filter_applied=profile.id,
            edited=True,
        )
        task.report(ProgressMilestone.RECORDED, "recorded")
        return updated
