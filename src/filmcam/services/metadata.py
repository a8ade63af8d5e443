"""
Metadata service for photo records and privacy preferences, backed by DuckDB.

The capture and edit pipelines only ever:

1. read a user's privacy preferences (defaults for new photos),
2. create a record for a captured photo,
3. read a record and replace its image fields after an edit.

Write failures surface as ``MetadataWriteFailedError`` because the image
itself has usually been stored already by then.
"""

import json
from datetime import UTC, datetime
from typing import Any

import duckdb

from filmcam.ui.handlers.error import DatabaseError, MetadataWriteFailedError
from ..config import get_database_path
from ..logging_config import get_logger, log_user_action
from ..models.database import DatabaseManager, get_database_manager
from ..models.photo import PhotoRecord, PrivacyPreferences
from ..models.schema import PHOTO_RECORD_COLUMNS

logger = get_logger(__name__)

_SELECT_COLUMNS = ", ".join(PHOTO_RECORD_COLUMNS)


def _to_db_timestamp(value: datetime) -> datetime:
    """Stored timestamps are naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def _from_db_timestamp(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class MetadataService:
    """Service for reading and writing photo records."""

    def __init__(self, db_manager: DatabaseManager | None = None) -> None:
        self.db_manager = db_manager or get_database_manager(get_database_path())

    def _row_to_record(self, row: tuple) -> PhotoRecord:
        data: dict[str, Any] = dict(zip(PHOTO_RECORD_COLUMNS, row, strict=True))
        data["created_at"] = _from_db_timestamp(data["created_at"])
        data["updated_at"] = _from_db_timestamp(data["updated_at"])
        return PhotoRecord.from_dict(data)

    def create_photo(self, record: PhotoRecord) -> PhotoRecord:
        """
        Persist a new photo record.

        Raises:
            MetadataWriteFailedError: If the record is invalid or the insert is rejected
        """
        if not record.validate():
            raise MetadataWriteFailedError(
                f"Invalid photo record: {record.id}",
                details={"photo_id": record.id, "image_url": record.image_url},
            )

        parameters = [
            record.id,
            record.user_id,
            record.title,
            record.image_url,
            record.thumbnail_url,
            record.filter_applied,
            record.edited,
            record.visibility,
            record.allow_download,
            record.has_watermark,
            json.dumps(record.access_log),
            json.dumps(record.camera_settings.to_dict()),
            _to_db_timestamp(record.created_at),
            _to_db_timestamp(record.updated_at),
        ]
        placeholders = ", ".join("?" for _ in PHOTO_RECORD_COLUMNS)

        try:
            self.db_manager.execute_query(
                f"INSERT INTO photo_records ({_SELECT_COLUMNS}) VALUES ({placeholders})",  # nosec B608
                parameters,
            )
        except duckdb.Error as e:
            raise MetadataWriteFailedError(
                f"Failed to create photo record: {e}",
                details={"photo_id": record.id, "image_url": record.image_url},
                original_exception=e,
            ) from e

        log_user_action(record.user_id, "photo_created", photo_id=record.id, image_url=record.image_url)
        return record

    def get_photo(self, photo_id: str) -> PhotoRecord | None:
        """
        Get a photo record by id.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            rows = self.db_manager.execute_query(
                f"SELECT {_SELECT_COLUMNS} FROM photo_records WHERE id = ?",  # nosec B608
                (photo_id,),
            )
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to load photo {photo_id}: {e}", original_exception=e) from e

        if not rows:
            return None
        return self._row_to_record(rows[0])

    def list_user_photos(self, user_id: str, limit: int = 100) -> list[PhotoRecord]:
        """
        List a user's photos, newest first.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            rows = self.db_manager.execute_query(
                f"SELECT {_SELECT_COLUMNS} FROM photo_records WHERE user_id = ? "  # nosec B608
                f"ORDER BY created_at DESC LIMIT {int(limit)}",
                (user_id,),
            )
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to list photos for {user_id}: {e}", original_exception=e) from e

        return [self._row_to_record(row) for row in rows]

    def update_photo_image(
        self,
        photo_id: str,
        image_url: str,
        thumbnail_url: str,
        filter_applied: str,
        edited: bool = True,
    ) -> PhotoRecord:
        """
        Replace the image fields of a record after an edit, in one statement.

        Sharing and privacy fields are left untouched.

        Raises:
            MetadataWriteFailedError: If the record is missing or the update is rejected
        """
        if self.get_photo(photo_id) is None:
            raise MetadataWriteFailedError(
                f"Photo record not found: {photo_id}",
                details={"photo_id": photo_id, "image_url": image_url},
            )

        updated_at = datetime.now(UTC)
        try:
            self.db_manager.execute_query(
                "UPDATE photo_records SET image_url = ?, thumbnail_url = ?, filter_applied = ?, "
                "edited = ?, updated_at = ? WHERE id = ?",
                (image_url, thumbnail_url, filter_applied, edited, _to_db_timestamp(updated_at), photo_id),
            )
        except duckdb.Error as e:
            raise MetadataWriteFailedError(
                f"Failed to update photo record {photo_id}: {e}",
                details={"photo_id": photo_id, "image_url": image_url},
                original_exception=e,
            ) from e

        record = self.get_photo(photo_id)
        if record is None:
            raise MetadataWriteFailedError(f"Photo record vanished after update: {photo_id}")

        log_user_action(record.user_id, "photo_edited", photo_id=photo_id, filter_applied=filter_applied)
        return record

    def get_privacy_preferences(self, user_id: str) -> PrivacyPreferences:
        """
        Get a user's stored privacy preferences, or the defaults when none are stored.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            rows = self.db_manager.execute_query(
                "SELECT default_photo_visibility, watermark_photos, allow_downloads "
                "FROM privacy_settings WHERE user_id = ?",
                (user_id,),
            )
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to load privacy settings for {user_id}: {e}", original_exception=e) from e

        if not rows:
            logger.debug("privacy_settings_defaulted", user_id=user_id)
            return PrivacyPreferences()

        visibility, watermark, allow_downloads = rows[0]
        return PrivacyPreferences.from_dict(
            {
                "default_photo_visibility": visibility,
                "watermark_photos": watermark,
                "allow_downloads": allow_downloads,
            }
        )

    def save_privacy_preferences(self, user_id: str, preferences: PrivacyPreferences) -> None:
        """
        Store a user's privacy preferences, replacing any previous ones.

        Raises:
            DatabaseError: If the write fails
        """
        try:
            self.db_manager.execute_query(
                "INSERT OR REPLACE INTO privacy_settings "
                "(user_id, default_photo_visibility, watermark_photos, allow_downloads) VALUES (?, ?, ?, ?)",
                (
                    user_id,
                    preferences.default_photo_visibility,
                    preferences.watermark_photos,
                    preferences.allow_downloads,
                ),
            )
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to save privacy settings for {user_id}: {e}", original_exception=e) from e

        log_user_action(user_id, "privacy_settings_saved", **preferences.to_dict())


_metadata_service: MetadataService | None = None


def get_metadata_service() -> MetadataService:
    """Get the global metadata service instance."""
    global _metadata_service
    if _metadata_service is None:
        _metadata_service = MetadataService()
    return _metadata_service
