"""
Database schema definitions for filmcam.

This module contains SQL schema definitions for photo records and
per-user privacy settings.
"""

from typing import List

PHOTO_RECORDS_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS photo_records (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    image_url TEXT NOT NULL,
    thumbnail_url TEXT NOT NULL,
    filter_applied TEXT NOT NULL DEFAULT 'none',
    edited BOOLEAN NOT NULL DEFAULT FALSE,
    visibility TEXT NOT NULL DEFAULT 'private',
    allow_download BOOLEAN NOT NULL DEFAULT FALSE,
    has_watermark BOOLEAN NOT NULL DEFAULT FALSE,
    access_log TEXT NOT NULL DEFAULT '[]',
    camera_settings TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
);
"""

PRIVACY_SETTINGS_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS privacy_settings (
    user_id TEXT PRIMARY KEY,
    default_photo_visibility TEXT NOT NULL DEFAULT 'private',
    watermark_photos BOOLEAN NOT NULL DEFAULT FALSE,
    allow_downloads BOOLEAN NOT NULL DEFAULT FALSE
);
"""

PHOTO_RECORDS_TABLE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_photo_records_user_id ON photo_records(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_photo_records_user_created ON photo_records(user_id, created_at DESC);",
]

ALL_SCHEMA_STATEMENTS = [PHOTO_RECORDS_TABLE_SCHEMA, PRIVACY_SETTINGS_TABLE_SCHEMA] + PHOTO_RECORDS_TABLE_INDEXES

PHOTO_RECORD_COLUMNS = (
    "id",
    "user_id",
    "title",
    "image_url",
    "thumbnail_url",
    "filter_applied",
    "edited",
    "visibility",
    "allow_download",
    "has_watermark",
    "access_log",
    "camera_settings",
    "created_at",
    "updated_at",
)


def get_schema_statements() -> List[str]:
    """
    Get all database schema creation statements.

    Returns:
        List of SQL statements to create tables and indexes
    """
    return ALL_SCHEMA_STATEMENTS


def validate_schema_compatibility() -> bool:
    """
    Validate that the schema is compatible with the PhotoRecord model.

    Returns:
        True if every PhotoRecord column appears in the table definition
    """
    schema_lower = PHOTO_RECORDS_TABLE_SCHEMA.lower()
    return all(column in schema_lower for column in PHOTO_RECORD_COLUMNS)
