"""
Retrying uploads of encoded photos.

The retry behaviour lives in ``RetryPolicy`` so it can be tested on its own;
``UploadManager`` drives a policy against any object with an
``upload_photo(data, path, content_type)`` method (``StorageService`` in
production).
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Protocol

from filmcam.ui.handlers.error import UploadFailedAfterRetriesError
from ..logging_config import get_logger, log_performance

logger = get_logger(__name__)

MAX_UPLOAD_ATTEMPTS = 3
UPLOAD_BACKOFF_SECONDS = 1.0


class ProgressMilestone(IntEnum):
    """Coarse progress checkpoints reported as pipeline stages complete."""

    STARTED = 0
    ENCODED = 30
    BLOB_READY = 50
    UPLOADED = 80
    RECORDED = 100


ProgressCallback = Callable[[int, str], None]
SleepFunction = Callable[[float], Awaitable[None]]


class PhotoUploader(Protocol):
    def upload_photo(self, file_data: bytes, gcs_path: str, content_type: str = "image/jpeg") -> str: ...


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with a fixed delay between attempts."""

    max_attempts: int = MAX_UPLOAD_ATTEMPTS
    backoff_seconds: float = UPLOAD_BACKOFF_SECONDS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must not be negative")

    def should_retry(self, attempts_made: int) -> bool:
        """Whether another attempt is allowed after ``attempts_made`` failures."""
        return attempts_made < self.max_attempts

    def delay_for(self, attempts_made: int) -> float:
        """Delay before the next attempt; fixed regardless of attempt number."""
        return self.backoff_seconds


@dataclass
class UploadTask:
    """
    One upload of one encoded photo, created per capture or edit save.

    Progress only moves forward: a milestone lower than the current one is
    ignored, so observers always see non-decreasing percentages.
    """

    data: bytes
    destination_path: str
    progress_callback: ProgressCallback | None = None
    attempts: int = 0
    progress: int = 0
    url: str | None = None
    error: Exception | None = None
    progress_history: list[int] = field(default_factory=list)

    def report(self, percent: int, stage: str) -> None:
        percent = int(percent)
        if not 0 <= percent <= 100:
            raise ValueError(f"Progress must be between 0 and 100, got {percent}")
        if percent < self.progress:
            logger.debug("progress_regression_ignored", current=self.progress, requested=percent, stage=stage)
            return
        self.progress = percent
        self.progress_history.append(percent)
        if self.progress_callback:
            self.progress_callback(percent, stage)

    def detach(self) -> None:
        """Stop notifying the originating view (it has been torn down)."""
        self.progress_callback = None

    @property
    def succeeded(self) -> bool:
        return self.url is not None

    @property
    def resolved(self) -> bool:
        return self.url is not None or self.error is not None


class UploadManager:
    """Uploads encoded photos with bounded retry."""

    def __init__(
        self,
        uploader: PhotoUploader,
        policy: RetryPolicy | None = None,
        sleep: SleepFunction = asyncio.sleep,
    ) -> None:
        self.uploader = uploader
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def upload(self, task: UploadTask) -> str:
        """
        Upload ``task.data`` to ``task.destination_path``.

        Each failed attempt except the last waits the policy delay before
        retrying. On success the task reaches the UPLOADED milestone; the
        final milestone belongs to whoever records the photo.

        Returns:
            str: Public URL of the stored photo

        Raises:
            UploadFailedAfterRetriesError: When every attempt failed
        """
        start_time = datetime.now()
        last_error: Exception | None = None

        while self.policy.should_retry(task.attempts):
            task.attempts += 1
            try:
                url = await asyncio.to_thread(self.uploader.upload_photo, task.data, task.destination_path)
            except Exception as e:
                last_error = e
                logger.warning(
                    "upload_attempt_failed",
                    destination_path=task.destination_path,
                    attempt=task.attempts,
                    max_attempts=self.policy.max_attempts,
                    error=str(e),
                )
                if self.policy.should_retry(task.attempts):
                    await self._sleep(self.policy.delay_for(task.attempts))
                continue

            task.url = url
            task.report(ProgressMilestone.UPLOADED, "uploaded")
            log_performance(
                "upload",
                (datetime.now() - start_time).total_seconds(),
                destination_path=task.destination_path,
                attempts=task.attempts,
                file_size=len(task.data),
            )
            return url

        error = UploadFailedAfterRetriesError(
            f"Failed to upload photo after {task.attempts} attempts: {last_error}",
            attempts=task.attempts,
            details={"destination_path": task.destination_path},
            original_exception=last_error,
        )
        task.error = error
        raise error from last_error

    async def upload_bytes(
        self, data: bytes, destination_path: str, progress_callback: ProgressCallback | None = None
    ) -> str:
        """Convenience wrapper creating a one-off task."""
        return await self.upload(UploadTask(data, destination_path, progress_callback=progress_callback))
