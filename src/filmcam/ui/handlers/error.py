"""
Centralized error handling and classification for filmcam.

This module provides the error taxonomy of the capture and edit pipeline,
classification of arbitrary exceptions into it, and user-facing messages.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from filmcam.logging_config import get_logger, log_error

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification and handling."""

    CAMERA = "camera"
    UPLOAD = "upload"
    IMAGE_PROCESSING = "image_processing"
    DATABASE = "database"
    STORAGE = "storage"
    VALIDATION = "validation"
    NETWORK = "network"
    SYSTEM = "system"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorInfo:
    """Structured error information."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    details: dict[str, Any]
    timestamp: datetime
    recoverable: bool = True
    retry_suggested: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert error info to dictionary."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
        }


CATEGORY_USER_MESSAGES = {
    ErrorCategory.CAMERA: "Could not access camera. Please check permissions.",
    ErrorCategory.UPLOAD: "Could not save photo. Please try again.",
    ErrorCategory.IMAGE_PROCESSING: "Something went wrong while processing the photo.",
    ErrorCategory.DATABASE: "Could not save photo details.",
    ErrorCategory.STORAGE: "A storage error occurred. Please try again later.",
    ErrorCategory.VALIDATION: "The request was not valid.",
    ErrorCategory.NETWORK: "A network error occurred. Please check your connection.",
    ErrorCategory.SYSTEM: "A system error occurred.",
    ErrorCategory.UNKNOWN: "An unexpected error occurred.",
}


class FilmCamError(Exception):
    """
    Base exception class for filmcam.

    Subclasses describe themselves through class attributes; any of them can
    be overridden per instance through the matching keyword argument. Every
    instance is logged once, when it is created.
    """

    category = ErrorCategory.UNKNOWN
    severity = ErrorSeverity.MEDIUM
    default_code: str | None = None
    default_user_message: str | None = None
    recoverable = True
    retry_suggested = False

    def __init__(
        self,
        message: str,
        category: ErrorCategory | None = None,
        severity: ErrorSeverity | None = None,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool | None = None,
        retry_suggested: bool | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        if category is not None:
            self.category = category
        if severity is not None:
            self.severity = severity
        if recoverable is not None:
            self.recoverable = recoverable
        if retry_suggested is not None:
            self.retry_suggested = retry_suggested

        self.code = code or self.default_code or f"{self.category.value}_error"
        self.user_message = (
            user_message or self.default_user_message or CATEGORY_USER_MESSAGES.get(self.category, "An error occurred.")
        )
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        self._log_error()

    def _log_error(self) -> None:
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
            **self.details,
        }
        if self.original_exception:
            error_context["original_exception"] = str(self.original_exception)

        log_error(self, error_context)

    def get_error_info(self) -> ErrorInfo:
        """Get structured error information."""
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            details=self.details,
            timestamp=self.timestamp,
            recoverable=self.recoverable,
            retry_suggested=self.retry_suggested,
        )


class SourceUnavailableError(FilmCamError):
    """Camera device or stream is not accessible."""

    category = ErrorCategory.CAMERA
    severity = ErrorSeverity.HIGH
    default_code = "source_unavailable"
    retry_suggested = True


class ImageProcessingError(FilmCamError):
    category = ErrorCategory.IMAGE_PROCESSING
    default_code = "image_processing_failed"


class EncodingFailedError(ImageProcessingError):
    """Pixel buffer could not be encoded. Never retried."""

    default_code = "encoding_failed"
    default_user_message = "Could not encode the photo."


class EditFailedError(ImageProcessingError):
    """Edited image could not be produced (load, decode or filter failure)."""

    default_code = "edit_failed"
    default_user_message = "Could not apply edit."
    retry_suggested = True


class UploadError(FilmCamError):
    category = ErrorCategory.UPLOAD
    default_code = "upload_failed"
    retry_suggested = True


class UploadFailedAfterRetriesError(UploadError):
    """Upload kept failing until the retry policy was exhausted."""

    default_code = "upload_failed_after_retries"
    default_user_message = "Could not save photo after multiple attempts. Please try again."

    def __init__(self, message: str, attempts: int, details: dict[str, Any] | None = None, **kwargs: Any):
        self.attempts = attempts
        super().__init__(message, details={"attempts": attempts, **(details or {})}, **kwargs)


class DatabaseError(FilmCamError):
    category = ErrorCategory.DATABASE
    severity = ErrorSeverity.HIGH
    default_code = "database_error"
    retry_suggested = True


class MetadataWriteFailedError(DatabaseError):
    """Photo record write was rejected after the image may already be stored."""

    default_code = "metadata_write_failed"
    default_user_message = "Photo was stored but its details could not be saved."


class StorageError(FilmCamError):
    category = ErrorCategory.STORAGE
    severity = ErrorSeverity.HIGH
    default_code = "storage_error"
    retry_suggested = True


class ValidationError(FilmCamError):
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.LOW
    default_code = "validation_failed"


class NetworkError(FilmCamError):
    category = ErrorCategory.NETWORK
    default_code = "network_error"
    retry_suggested = True


class CaptureCancelledError(FilmCamError):
    """Orchestrator was closed while a request was in flight."""

    category = ErrorCategory.SYSTEM
    severity = ErrorSeverity.LOW
    default_code = "capture_cancelled"
    default_user_message = "Capture was cancelled."


class ErrorHandler:
    """Centralized error handler for the application."""

    def __init__(self) -> None:
        self.error_counts: dict[str, int] = {}
        self.logger = get_logger(__name__)

    def handle_error(
        self,
        error: Exception | FilmCamError,
        context: dict[str, Any] | None = None,
    ) -> ErrorInfo:
        """
        Handle and classify errors.

        Args:
            error: Exception to handle
            context: Additional context information

        Returns:
            ErrorInfo: Structured error information
        """
        context = context or {}

        if isinstance(error, FilmCamError):
            error_info = error.get_error_info()
            self._track_error(error_info.code)
            return error_info

        classified_error = self._classify_error(error, context)
        error_info = classified_error.get_error_info()
        self._track_error(error_info.code)

        return error_info

    def _classify_error(
        self,
        error: Exception,
        context: dict[str, Any],
    ) -> FilmCamError:
        """Classify an exception into appropriate FilmCamError."""
        error_type = type(error).__name__
        error_message = str(error)
        lowered = error_message.lower()
        details = {"original_type": error_type, **context}

        if any(keyword in lowered for keyword in ["camera", "device", "videocapture", "stream"]):
            return SourceUnavailableError(message=error_message, details=details, original_exception=error)

        if "upload" in lowered:
            return UploadError(message=error_message, details=details, original_exception=error)

        if any(keyword in lowered for keyword in ["image", "pixel", "pillow", "jpeg", "decode", "encode"]):
            return ImageProcessingError(message=error_message, details=details, original_exception=error)

        if any(keyword in lowered for keyword in ["database", "duckdb", "sql", "query"]):
            return DatabaseError(message=error_message, details=details, original_exception=error)

        if any(keyword in lowered for keyword in ["storage", "gcs", "bucket", "blob", "download"]):
            return StorageError(message=error_message, details=details, original_exception=error)

        if any(keyword in lowered for keyword in ["network", "connection", "timeout", "unreachable"]):
            return NetworkError(message=error_message, details=details, original_exception=error)

        if any(keyword in lowered for keyword in ["validation", "invalid", "required", "missing"]):
            return ValidationError(message=error_message, details=details, original_exception=error)

        return FilmCamError(message=error_message, details=details, original_exception=error)

    def _track_error(self, error_code: str) -> None:
        """Track error occurrence for monitoring."""
        self.error_counts[error_code] = self.error_counts.get(error_code, 0) + 1

        if self.error_counts[error_code] % 10 == 0:
            self.logger.warning("frequent_error_detected", error_code=error_code, count=self.error_counts[error_code])

    def get_error_statistics(self) -> dict[str, int]:
        """Get error occurrence statistics."""
        return self.error_counts.copy()

    def reset_statistics(self) -> None:
        """Reset error statistics."""
        self.error_counts.clear()


# Global error handler instance
error_handler = ErrorHandler()


def handle_error(
    error: Exception | FilmCamError,
    context: dict[str, Any] | None = None,
) -> ErrorInfo:
    """Global error handling function."""
    return error_handler.handle_error(error, context)


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    return error_handler
