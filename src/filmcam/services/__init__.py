"""
Services module for filmcam.

This module contains the capture and edit pipeline services:
- FrameSource: camera streams (OpenCV webcam or still image)
- ImageProcessor: resize, exposure, histogram and JPEG codec
- FilterCompositor: film filter kernels
- StorageService / ImageLoader: Google Cloud Storage and image fetching
- UploadManager: uploads with bounded retry and progress milestones
- MetadataService: DuckDB photo records and privacy preferences
- CaptureOrchestrator / EditOrchestrator: the two pipelines
"""

from .capture import CaptureOrchestrator, CaptureOutcome, CaptureState, OutcomeStatus
from .edit import EditOrchestrator, EditOutcome
from .filters import FilterCompositor, get_filter_compositor
from .frame_source import FrameSource, OpenCVFrameSource, StaticImageFrameSource
from .image_processor import ImageProcessor, get_image_processor
from .metadata import MetadataService, get_metadata_service
from .storage import ImageLoader, StorageService, get_storage_service
from .upload import ProgressMilestone, RetryPolicy, UploadManager, UploadTask

__all__ = [
    "CaptureOrchestrator",
    "CaptureOutcome",
    "CaptureState",
    "OutcomeStatus",
    "EditOrchestrator",
    "EditOutcome",
    "FilterCompositor",
    "get_filter_compositor",
    "FrameSource",
    "OpenCVFrameSource",
    "StaticImageFrameSource",
    "ImageProcessor",
    "get_image_processor",
    "MetadataService",
    "get_metadata_service",
    "ImageLoader",
    "StorageService",
    "get_storage_service",
    "ProgressMilestone",
    "RetryPolicy",
    "UploadManager",
    "UploadTask",
]
