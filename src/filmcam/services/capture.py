"""
Capture orchestration: camera frame to stored photo record.

One ``CaptureOrchestrator`` owns one camera stream and runs at most one
capture at a time through the stages

    IDLE -> CAPTURING -> ENCODING -> UPLOADING -> FINALIZING -> SUCCEEDED

with FAILED reachable from every stage. Whatever the outcome, the
orchestrator is back in IDLE when ``capture`` returns. Only the upload
step retries on its own; a failed capture is never retried end to end.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from filmcam.ui.handlers.error import (
    CaptureCancelledError,
    DatabaseError,
    EncodingFailedError,
    FilmCamError,
    SourceUnavailableError,
    UploadFailedAfterRetriesError,
    ValidationError,
)
from ..logging_config import get_logger, log_context, log_performance, log_user_action
from ..models.photo import CameraSettings, PhotoRecord, PrivacyPreferences
from .frame_source import FACING_ENVIRONMENT, FACING_USER, FrameSource
from .image_processor import (
    CAPTURE_JPEG_QUALITY,
    MAX_CAPTURE_HEIGHT,
    MAX_CAPTURE_WIDTH,
    MAX_EXPOSURE,
    MIN_EXPOSURE,
    ImageProcessor,
    get_image_processor,
)
from .metadata import MetadataService
from .upload import ProgressCallback, ProgressMilestone, UploadManager, UploadTask

logger = get_logger(__name__)

SourceFactory = Callable[[str], FrameSource]
PathBuilder = Callable[[str, str], str]
StateCallback = Callable[["CaptureState"], None]


class CaptureState(Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    ENCODING = "encoding"
    UPLOADING = "uploading"
    FINALIZING = "finalizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OutcomeStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass
class CaptureOutcome:
    """Result of one capture request."""

    status: OutcomeStatus
    record: PhotoRecord | None = None
    error: FilmCamError | None = None
    user_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED

    @classmethod
    def failure(cls, status: OutcomeStatus, error: FilmCamError) -> "CaptureOutcome":
        return cls(status=status, error=error, user_message=error.user_message)


def capture_filename(captured_at: datetime) -> str:
    return f"photo-{int(captured_at.timestamp() * 1000)}.jpg"


class CaptureOrchestrator:
    """
    Sequences frame grab, exposure, encode, upload and record creation.

    Args:
        source_factory: Builds a frame source for a facing mode
        upload_manager: Uploads encoded photos with retry
        metadata_service: Reads privacy preferences and creates records
        path_builder: Maps ``(user_id, filename)`` to a storage path
        user_id: Owner of captured photos
        progress_callback: Receives ``(percent, stage)`` milestones
        state_callback: Receives every state transition
    """

    def __init__(
        self,
        source_factory: SourceFactory,
        upload_manager: UploadManager,
        metadata_service: MetadataService,
        path_builder: PathBuilder,
        user_id: str,
        progress_callback: ProgressCallback | None = None,
        state_callback: StateCallback | None = None,
        image_processor: ImageProcessor | None = None,
        camera_settings: CameraSettings | None = None,
    ) -> None:
        self.source_factory = source_factory
        self.upload_manager = upload_manager
        self.metadata_service = metadata_service
        self.path_builder = path_builder
        self.user_id = user_id
        self.progress_callback = progress_callback
        self.state_callback = state_callback
        self.image_processor = image_processor or get_image_processor()
        self.camera_settings = camera_settings or CameraSettings()

        self.state = CaptureState.IDLE
        self.facing_mode = FACING_ENVIRONMENT
        self._source: FrameSource | None = None
        self._task: UploadTask | None = None
        self._closed = False

    @property
    def is_streaming(self) -> bool:
        return self._source is not None and self._source.is_open

    @property
    def closed(self) -> bool:
        return self._closed

    def _set_state(self, state: CaptureState) -> None:
        previous = self.state
        self.state = state
        logger.debug("capture_state_changed", previous=previous.value, state=state.value, user_id=self.user_id)
        if self.state_callback and not self._closed:
            self.state_callback(state)

    def _check_cancelled(self) -> None:
        if self._closed:
            raise CaptureCancelledError(
                "Capture cancelled: orchestrator was closed",
                details={"state": self.state.value, "user_id": self.user_id},
            )

    async def _stop_stream(self) -> None:
        source, self._source = self._source, None
        if source is not None:
            await source.close()

    async def start_camera(self, facing_mode: str = FACING_ENVIRONMENT) -> None:
        """
        Open a stream for ``facing_mode``, stopping any current stream first.

        Raises:
            SourceUnavailableError: If the device cannot be opened
            CaptureCancelledError: If the orchestrator has been closed
        """
        self._check_cancelled()
        await self._stop_stream()

        source = self.source_factory(facing_mode)
        await source.open()
        if self._closed:
            await source.close()
            self._check_cancelled()

        self._source = source
        self.facing_mode = facing_mode
        logger.info("camera_started", facing_mode=facing_mode, user_id=self.user_id)

    async def flip_camera(self) -> None:
        """Switch between the rear and the front camera."""
        facing_mode = FACING_USER if self.facing_mode == FACING_ENVIRONMENT else FACING_ENVIRONMENT
        await self.start_camera(facing_mode)

    async def stop_camera(self) -> None:
        await self._stop_stream()
        logger.info("camera_stopped", user_id=self.user_id)

    async def capture(self, exposure: float = 0.0) -> CaptureOutcome:
        """
        Capture one photo and store it.

        Returns:
            CaptureOutcome: ``rejected`` when a capture is already in flight or
            the exposure is out of range, ``cancelled`` when the orchestrator
            was closed meanwhile, ``failed`` with the specific error, or
            ``succeeded`` with the created record
        """
        if self._closed:
            return CaptureOutcome.failure(
                OutcomeStatus.CANCELLED, CaptureCancelledError("Capture requested after close")
            )

        if self.state is not CaptureState.IDLE:
            logger.warning("capture_rejected", state=self.state.value, user_id=self.user_id)
            return CaptureOutcome(status=OutcomeStatus.REJECTED, user_message="A capture is already in progress.")

        if not MIN_EXPOSURE <= exposure <= MAX_EXPOSURE:
            error = ValidationError(
                f"Exposure must be between {MIN_EXPOSURE} and {MAX_EXPOSURE}, got {exposure}",
                code="invalid_exposure",
                details={"exposure": exposure},
            )
            return CaptureOutcome.failure(OutcomeStatus.REJECTED, error)

        self._set_state(CaptureState.CAPTURING)
        start_time = datetime.now()

        with log_context(operation="capture", user_id=self.user_id, exposure=exposure):
            try:
                record = await self._run(exposure)
            except CaptureCancelledError as e:
                logger.info("capture_cancelled", state=self.state.value, user_id=self.user_id)
                return CaptureOutcome.failure(OutcomeStatus.CANCELLED, e)
            except (
                SourceUnavailableError,
                EncodingFailedError,
                UploadFailedAfterRetriesError,
                DatabaseError,
            ) as e:
                self._set_state(CaptureState.FAILED)
                logger.warning("capture_failed", error_code=e.code, user_id=self.user_id)
                return CaptureOutcome.failure(OutcomeStatus.FAILED, e)
            finally:
                self._task = None
                self.state = CaptureState.IDLE
                logger.debug("capture_state_changed", state=CaptureState.IDLE.value, user_id=self.user_id)

        log_performance("capture", (datetime.now() - start_time).total_seconds(), photo_id=record.id)
        log_user_action(self.user_id, "photo_captured", photo_id=record.id, exposure=exposure)
        return CaptureOutcome(status=OutcomeStatus.SUCCEEDED, record=record)

    async def _run(self, exposure: float) -> PhotoRecord:
        if self._source is None:
            raise SourceUnavailableError("No camera stream has been started")

        frame = await self._source.grab(MAX_CAPTURE_WIDTH, MAX_CAPTURE_HEIGHT)
        self._check_cancelled()
        frame = self.image_processor.adjust_exposure(frame, exposure)

        self._set_state(CaptureState.ENCODING)
        data = await asyncio.to_thread(self.image_processor.encode, frame, CAPTURE_JPEG_QUALITY)
        self._check_cancelled()

        captured_at = datetime.now()
        task = UploadTask(
            data=data,
            destination_path=self.path_builder(self.user_id, capture_filename(captured_at)),
            progress_callback=self.progress_callback,
        )
        self._task = task
        task.report(ProgressMilestone.ENCODED, "encoded")
        task.report(ProgressMilestone.BLOB_READY, "blob_ready")

        self._set_state(CaptureState.UPLOADING)
        url = await self.upload_manager.upload(task)
        if self._closed:
            # The object may already be stored; only the record is skipped
            logger.info("capture_result_discarded", destination_path=task.destination_path, user_id=self.user_id)
            self._check_cancelled()

        self._set_state(CaptureState.FINALIZING)
        record = PhotoRecord.create_capture(
            user_id=self.user_id,
            image_url=url,
            preferences=self._privacy_preferences(),
            camera_settings=self.camera_settings,
            captured_at=captured_at,
        )
        self.metadata_service.create_photo(record)
        task.report(ProgressMilestone.RECORDED, "recorded")
        self._set_state(CaptureState.SUCCEEDED)
        return record

    def _privacy_preferences(self) -> PrivacyPreferences:
        try:
            return self.metadata_service.get_privacy_preferences(self.user_id)
        except DatabaseError as e:
            logger.warning("privacy_settings_unavailable", user_id=self.user_id, error=str(e))
            return PrivacyPreferences()

    async def close(self) -> None:
        """
        Tear down: stop the stream at once and cancel any capture in flight.

        A capture still grabbing or encoding ends as ``cancelled``. An upload
        already on the wire may finish, but no record is created for it and
        progress is no longer reported.
        """
        if self._closed:
            return
        self._closed = True
        if self._task is not None:
            self._task.detach()
        await self._stop_stream()
        logger.info("capture_orchestrator_closed", state=self.state.value, user_id=self.user_id)
