"""
Media infrastructure module.
Provides upload staging and the Cloudinary media-upload client.
"""

from .media_upload_service import MediaUploadService, media_upload_service, stage_upload

__all__ = [
    "MediaUploadService",
    "media_upload_service",
    "stage_upload",
]
