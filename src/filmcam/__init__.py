"""
filmcam - Film-style photo capture and editing pipeline

Client-side image pipeline for a photo capture and editing application:
- Camera frame capture with exposure correction
- Film filter composition and histogram inspection
- JPEG encoding and retrying uploads to Google Cloud Storage
- Photo metadata records in DuckDB
"""

__version__ = "0.1.0"
__author__ = "filmcam"
__description__ = "Film-style photo capture and editing pipeline"
