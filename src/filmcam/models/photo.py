"""
Photo record model for filmcam.

This module contains the PhotoRecord dataclass persisted by the metadata
service, plus the camera settings and privacy preferences attached to it.
"""

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

VISIBILITY_OPTIONS = ("private", "friends_only", "public")


@dataclass(frozen=True)
class CameraSettings:
    """Camera settings recorded at capture time and never recomputed."""

    iso: str = "AUTO"
    aperture: str = "f/2.8"
    shutter_speed: str = "1/60"

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CameraSettings":
        if not data:
            return cls()
        return cls(
            iso=str(data.get("iso", "AUTO")),
            aperture=str(data.get("aperture", "f/2.8")),
            shutter_speed=str(data.get("shutter_speed", "1/60")),
        )


@dataclass(frozen=True)
class PrivacyPreferences:
    """A user's stored defaults for new photos."""

    default_photo_visibility: str = "private"
    watermark_photos: bool = False
    allow_downloads: bool = False

    def __post_init__(self) -> None:
        if self.default_photo_visibility not in VISIBILITY_OPTIONS:
            raise ValueError(f"Unknown visibility: {self.default_photo_visibility}")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PrivacyPreferences":
        """Build preferences from stored settings, falling back per missing or unknown field."""
        if not data:
            return cls()
        visibility = data.get("default_photo_visibility")
        return cls(
            default_photo_visibility=visibility if visibility in VISIBILITY_OPTIONS else "private",
            watermark_photos=bool(data.get("watermark_photos") or False),
            allow_downloads=bool(data.get("allow_downloads") or False),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PhotoRecord:
    """
    Represents a stored photo and the metadata the pipeline owns.

    The pipeline writes ``image_url``, ``thumbnail_url``, ``filter_applied``,
    ``edited`` and ``camera_settings``. Visibility, watermark, download and
    access log fields are copied from the user's preferences at creation
    and otherwise left untouched.
    """

    id: str
    user_id: str
    title: str
    image_url: str
    thumbnail_url: str
    filter_applied: str = "none"
    edited: bool = False
    visibility: str = "private"
    allow_download: bool = False
    has_watermark: bool = False
    access_log: list[dict[str, Any]] = field(default_factory=list)
    camera_settings: CameraSettings = field(default_factory=CameraSettings)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create_capture(
        cls,
        user_id: str,
        image_url: str,
        preferences: PrivacyPreferences,
        camera_settings: CameraSettings | None = None,
        captured_at: datetime | None = None,
    ) -> "PhotoRecord":
        """
        Create the record for a freshly captured photo.

        The thumbnail is the uploaded image itself; the capture path never
        applies filters, so the record starts unedited with ``none``.
        """
        now = datetime.now(UTC)
        local_time = captured_at or datetime.now()
        return cls(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=f"Photo {local_time.strftime('%Y-%m-%d %H:%M:%S')}",
            image_url=image_url,
            thumbnail_url=image_url,
            filter_applied="none",
            edited=False,
            visibility=preferences.default_photo_visibility,
            allow_download=preferences.allow_downloads,
            has_watermark=preferences.watermark_photos,
            access_log=[],
            camera_settings=camera_settings or CameraSettings(),
            created_at=now,
            updated_at=now,
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert PhotoRecord to dictionary for database storage.

        Returns:
            Dictionary representation with JSON-encoded nested fields
        """
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "image_url": self.image_url,
            "thumbnail_url": self.thumbnail_url,
            "filter_applied": self.filter_applied,
            "edited": self.edited,
            "visibility": self.visibility,
            "allow_download": self.allow_download,
            "has_watermark": self.has_watermark,
            "access_log": json.dumps(self.access_log),
            "camera_settings": json.dumps(self.camera_settings.to_dict()),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PhotoRecord":
        """
        Create PhotoRecord from dictionary (e.g., a database row).

        Nested fields may arrive JSON-encoded or already decoded, and
        timestamps as strings or datetimes.
        """
        access_log = data.get("access_log") or []
        if isinstance(access_log, str):
            access_log = json.loads(access_log)

        camera_settings = data.get("camera_settings")
        if isinstance(camera_settings, str):
            camera_settings = json.loads(camera_settings)

        created_at = data["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)

        updated_at = data.get("updated_at") or created_at
        if isinstance(updated_at, str):
            updated_at = datetime.fromisoformat(updated_at)

        return cls(
            id=data["id"],
            user_id=data["user_id"],
            title=data.get("title", ""),
            image_url=data["image_url"],
            thumbnail_url=data.get("thumbnail_url") or data["image_url"],
            filter_applied=data.get("filter_applied") or "none",
            edited=bool(data.get("edited", False)),
            visibility=data.get("visibility") or "private",
            allow_download=bool(data.get("allow_download", False)),
            has_watermark=bool(data.get("has_watermark", False)),
            access_log=list(access_log),
            camera_settings=CameraSettings.from_dict(camera_settings),
            created_at=created_at,
            updated_at=updated_at,
        )

    def validate(self) -> bool:
        """Check required fields and enumerations."""
        if not self.id or not self.user_id or not self.image_url:
            return False

        if self.visibility not in VISIBILITY_OPTIONS:
            return False

        return True
