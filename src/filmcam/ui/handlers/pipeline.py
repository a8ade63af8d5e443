"""
Wiring of the capture and edit pipelines for the Streamlit pages and the CLI.

Streamlit scripts are synchronous, so each request runs its orchestrator
to completion on a fresh event loop.
"""

import asyncio
from pathlib import Path

from filmcam.models.filter_profile import FilterProfile
from filmcam.models.histogram import Histogram
from filmcam.models.pixel_buffer import PixelBuffer
from filmcam.services.capture import CaptureOrchestrator, CaptureOutcome, OutcomeStatus, SourceFactory, StateCallback
from filmcam.services.edit import EditOrchestrator, EditOutcome
from filmcam.services.frame_source import FACING_ENVIRONMENT, OpenCVFrameSource, StaticImageFrameSource
from filmcam.services.metadata import get_metadata_service
from filmcam.services.storage import ImageLoader, get_storage_service
from filmcam.services.upload import ProgressCallback, UploadManager
from filmcam.ui.handlers.error import SourceUnavailableError
from ...logging_config import get_logger

logger = get_logger(__name__)


def build_capture_orchestrator(
    user_id: str,
    source_factory: SourceFactory,
    progress_callback: ProgressCallback | None = None,
    state_callback: StateCallback | None = None,
) -> CaptureOrchestrator:
    storage_service = get_storage_service()
    return CaptureOrchestrator(
        source_factory=source_factory,
        upload_manager=UploadManager(storage_service),
        metadata_service=get_metadata_service(),
        path_builder=storage_service.build_photo_path,
        user_id=user_id,
        progress_callback=progress_callback,
        state_callback=state_callback,
    )


def build_edit_orchestrator(progress_callback: ProgressCallback | None = None) -> EditOrchestrator:
    storage_service = get_storage_service()
    return EditOrchestrator(
        image_loader=ImageLoader(storage_service),
        upload_manager=UploadManager(storage_service),
        metadata_service=get_metadata_service(),
        path_builder=storage_service.build_photo_path,
        progress_callback=progress_callback,
    )


async def _capture_once(orchestrator: CaptureOrchestrator, facing_mode: str, exposure: float) -> CaptureOutcome:
    try:
        try:
            await orchestrator.start_camera(facing_mode)
        except SourceUnavailableError as e:
            logger.warning("camera_start_failed", facing_mode=facing_mode, error_code=e.code)
            return CaptureOutcome.failure(OutcomeStatus.FAILED, e)
        return await orchestrator.capture(exposure)
    finally:
        await orchestrator.close()


def capture_still(
    image: bytes | str | Path,
    user_id: str,
    exposure: float = 0.0,
    facing_mode: str = FACING_ENVIRONMENT,
    progress_callback: ProgressCallback | None = None,
) -> CaptureOutcome:
    """
    Run the capture pipeline on a still image (browser camera snapshot or file).

    An unreadable image ends as a ``failed`` outcome.
    """
    orchestrator = build_capture_orchestrator(
        user_id,
        source_factory=lambda mode: StaticImageFrameSource(image, facing_mode=mode),
        progress_callback=progress_callback,
    )
    return asyncio.run(_capture_once(orchestrator, facing_mode, exposure))


def capture_webcam(
    user_id: str,
    exposure: float = 0.0,
    facing_mode: str = FACING_ENVIRONMENT,
    progress_callback: ProgressCallback | None = None,
) -> CaptureOutcome:
    """
    Run the capture pipeline on one frame of a local webcam.

    A device that cannot be opened ends as a ``failed`` outcome.
    """
    orchestrator = build_capture_orchestrator(
        user_id,
        source_factory=OpenCVFrameSource,
        progress_callback=progress_callback,
    )
    return asyncio.run(_capture_once(orchestrator, facing_mode, exposure))


def save_edit(
    photo_id: str,
    profile_id: str | None,
    adjustments: FilterProfile | None = None,
    progress_callback: ProgressCallback | None = None,
) -> EditOutcome:
    orchestrator = build_edit_orchestrator(progress_callback)
    return asyncio.run(orchestrator.edit(photo_id, profile_id, adjustments))


def load_photo(url: str) -> PixelBuffer:
    """
    Load a stored photo for previewing.

    Raises:
        EditFailedError: If it cannot be fetched or decoded
    """
    return asyncio.run(build_edit_orchestrator().load_image(url))


def load_histogram(url: str) -> Histogram:
    return asyncio.run(build_edit_orchestrator().load_histogram(url))
