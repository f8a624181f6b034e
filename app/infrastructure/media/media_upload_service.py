"""
Media Upload Service for avatars and cover images.
Stages incoming files on local disk and uploads them to Cloudinary.
"""

import hashlib
import os
import time
import uuid
from typing import Dict, Optional

import httpx
from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import BadRequestError
from app.core.logging import get_logger, log_upload_operation

logger = get_logger(__name__)

_CHUNK_SIZE = 1024 * 1024


def _discard_staged_file(local_file_path: str) -> None:
    """Remove a staged file; a missing file is not an error."""
    try:
        os.remove(local_file_path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove staged file {local_file_path}: {e}")


async def stage_upload(
    upload: Optional[UploadFile], temp_dir: Optional[str] = None
) -> Optional[str]:
    """
    Write an uploaded file to the local temp directory.

    Args:
        upload: Uploaded file from a multipart request
        temp_dir: Target directory (defaults to UPLOAD_TEMP_DIR)

    Returns:
        Local file path, or None when no file (or an empty file) was sent
    """
    if upload is None or not upload.filename:
        return None

    target_dir = temp_dir or settings.UPLOAD_TEMP_DIR
    os.makedirs(target_dir, exist_ok=True)

    _, extension = os.path.splitext(os.path.basename(upload.filename))
    local_path = os.path.join(target_dir, f"{uuid.uuid4().hex}{extension}")

    max_size = settings.MAX_UPLOAD_SIZE
    size = 0
    try:
        with open(local_path, "wb") as buffer:
            while True:
                chunk = await upload.read(_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    break
                buffer.write(chunk)
    except Exception:
        _discard_staged_file(local_path)
        raise
    finally:
        await upload.close()

    if size > max_size:
        os.remove(local_path)
        log_upload_operation("stage", file_name=upload.filename, status="too_large")
        raise BadRequestError(f"File too large (max: {max_size} bytes)")

    if size == 0:
        os.remove(local_path)
        log_upload_operation("stage", file_name=upload.filename, status="empty")
        return None

    log_upload_operation("stage", file_name=upload.filename, file_size=size)
    return local_path


class MediaUploadService:
    """Service for Cloudinary media uploads."""

    def __init__(
        self,
        upload_url: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize media upload service."""
        self.upload_url = upload_url or settings.get_media_upload_url()
        self.api_key = api_key or settings.CLOUDINARY_API_KEY
        self.api_secret = api_secret or settings.CLOUDINARY_API_SECRET
        self.timeout = timeout or settings.MEDIA_UPLOAD_TIMEOUT
        self._transport = transport

    def _sign(self, params: Dict[str, str]) -> str:
        """Compute the Cloudinary request signature for the given params."""
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    async def upload(self, local_file_path: Optional[str]) -> Optional[Dict[str, str]]:
        """
        Upload a local file and remove it afterwards.

        Args:
            local_file_path: Path of a staged file

        Returns:
            Dict with "url" and "public_id", or None if failed
        """
        if not local_file_path:
            return None

        try:
            if not self.upload_url or not self.api_key or not self.api_secret:
                logger.error("Media upload is not configured")
                return None

            params = {"timestamp": str(int(time.time()))}
            data = {
                **params,
                "api_key": self.api_key,
                "signature": self._sign(params),
            }

            with open(local_file_path, "rb") as f:
                content = f.read()

            files = {"file": (os.path.basename(local_file_path), content)}

            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.upload_url, data=data, files=files)

            if response.status_code != 200:
                logger.error(
                    f"Failed to upload media: {response.status_code} - {response.text}"
                )
                log_upload_operation(
                    "upload", file_name=local_file_path, status="failed"
                )
                return None

            result = response.json()
            url = result.get("secure_url") or result.get("url")
            if not url:
                logger.error("Media upload response carried no URL")
                return None

            log_upload_operation(
                "upload", file_name=local_file_path, file_size=len(content), url=url
            )
            return {"url": url, "public_id": result.get("public_id", "")}

        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.error(f"Error uploading media: {e}", exc_info=True)
            log_upload_operation("upload", file_name=local_file_path, status="error")
            return None

        finally:
            _discard_staged_file(local_file_path)

    async def upload_file(self, upload: Optional[UploadFile]) -> Optional[Dict[str, str]]:
        """Stage an uploaded file locally, then upload it."""
        local_file_path = await stage_upload(upload)
        return await self.upload(local_file_path)


# Global media upload service instance
media_upload_service = MediaUploadService()
