"""
Models module for filmcam.

This module contains data models and schemas:
- PixelBuffer: RGBA pixel data passed between pipeline stages
- Histogram: per-channel intensity distribution
- FilterProfile: named film filter chains and the static catalog
- PhotoRecord: stored photo metadata with camera settings and privacy defaults
- DatabaseManager: DuckDB connection and schema management
"""

from .database import DatabaseManager, create_database, get_database_manager
from .filter_profile import (
    FILTER_CATALOG,
    FilterOperation,
    FilterProfile,
    adjustment_profile,
    get_filter_profile,
    list_filter_profiles,
    parse_effect,
)
from .histogram import Histogram
from .photo import CameraSettings, PhotoRecord, PrivacyPreferences
from .pixel_buffer import PixelBuffer

__all__ = [
    "PixelBuffer",
    "Histogram",
    "FilterOperation",
    "FilterProfile",
    "FILTER_CATALOG",
    "adjustment_profile",
    "get_filter_profile",
    "list_filter_profiles",
    "parse_effect",
    "CameraSettings",
    "PhotoRecord",
    "PrivacyPreferences",
    "DatabaseManager",
    "create_database",
    "get_database_manager",
]
