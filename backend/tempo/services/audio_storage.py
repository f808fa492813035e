"""Audio storage — recordings and teacher audio feedback.

Backends:
  - Vercel Blob, when BLOB_READ_WRITE_TOKEN is set (returns a public URL)
  - local filesystem under UPLOAD_DIR otherwise (returns a file path)

The bytes are never inspected; they are stored and served back as-is.
"""

import base64
import binascii
import logging
import mimetypes
import time
from pathlib import Path, PurePosixPath
from typing import Optional

import httpx

from tempo.config import settings
from tempo.middleware.error_handling import AudioNotFoundError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".webm"

CONTENT_TYPES = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
}


def decode_audio_payload(data: str) -> bytes:
    """Decode base64 audio, accepting a ``data:audio/...;base64,`` prefix."""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("audio data is not valid base64") from e


def audio_extension(file_name: Optional[str]) -> str:
    ext = PurePosixPath(file_name or "").suffix.lower()
    return ext or DEFAULT_EXTENSION


def content_type_for(ref: str) -> str:
    ext = audio_extension(ref)
    return CONTENT_TYPES.get(ext) or mimetypes.guess_type(f"x{ext}")[0] or "audio/mpeg"


def is_remote(ref: str) -> bool:
    return ref.startswith("http://") or ref.startswith("https://")


def segment_audio_path(student_id: str, session_id: str, file_name: str) -> str:
    return f"audio/segments/{student_id}/{session_id}/{int(time.time() * 1000)}{audio_extension(file_name)}"


def session_audio_path(student_id: str, session_id: str, file_name: str) -> str:
    return f"audio/{student_id}/{session_id}/recording{audio_extension(file_name)}"


def feedback_audio_path(target_id: str, file_name: Optional[str]) -> str:
    return f"audio/feedback/{target_id}/teacher-feedback{audio_extension(file_name)}"


def _local_path(pathname: str) -> Path:
    root = Path(settings.UPLOAD_DIR).resolve()
    target = (root / pathname).resolve()
    if root not in target.parents:
        raise StorageError(f"Refusing to write outside upload dir: {pathname}")
    return target


async def _put_blob(data: bytes, pathname: str, content_type: str) -> str:
    url = f"{settings.BLOB_API_URL.rstrip('/')}/{pathname}"
    headers = {
        "authorization": f"Bearer {settings.BLOB_READ_WRITE_TOKEN}",
        "x-api-version": "7",
        "x-content-type": content_type,
        "x-add-random-suffix": "0",
    }
    try:
        async with httpx.AsyncClient(timeout=60.0) as client:
            response = await client.put(url, content=data, headers=headers)
            response.raise_for_status()
    except httpx.HTTPError as e:
        raise StorageError(f"Blob upload failed for {pathname}: {e}") from e
    return response.json()["url"]


async def save_audio(data: bytes, pathname: str, content_type: Optional[str] = None) -> str:
    """Store ``data`` and return a reference usable by ``read_audio``."""
    if len(data) > settings.MAX_AUDIO_BYTES:
        raise StorageError(
            f"Audio exceeds {settings.MAX_AUDIO_BYTES // (1024 * 1024)}MB limit",
            status_code=413,
        )
    content_type = content_type or content_type_for(pathname)

    if settings.BLOB_READ_WRITE_TOKEN:
        return await _put_blob(data, pathname, content_type)

    path = _local_path(pathname)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise StorageError(f"Could not write {pathname}: {e}") from e
    return str(path)


async def read_audio(ref: str) -> tuple[bytes, str]:
    """Return ``(bytes, content_type)`` for a stored reference."""
    if is_remote(ref):
        try:
            async with httpx.AsyncClient(timeout=60.0, follow_redirects=True) as client:
                response = await client.get(ref)
        except httpx.HTTPError as e:
            raise StorageError(f"Could not fetch audio: {e}") from e
        if response.status_code == 404:
            raise AudioNotFoundError("Audio file not found")
        if response.is_error:
            raise StorageError(f"Audio fetch returned {response.status_code}")
        return response.content, response.headers.get("content-type", "audio/webm")

    path = Path(ref)
    if not path.is_file():
        raise AudioNotFoundError("Audio file not found")
    return path.read_bytes(), content_type_for(ref)


async def delete_audio(ref: Optional[str]) -> bool:
    """Best-effort removal. Returns False when nothing was deleted."""
    if not ref:
        return False

    if is_remote(ref):
        if not settings.BLOB_READ_WRITE_TOKEN:
            return False
        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(
                    f"{settings.BLOB_API_URL.rstrip('/')}/delete",
                    json={"urls": [ref]},
                    headers={"authorization": f"Bearer {settings.BLOB_READ_WRITE_TOKEN}", "x-api-version": "7"},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Could not delete blob %s: %s", ref, e)
            return False
        return True

    try:
        Path(ref).unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Could not delete audio file %s: %s", ref, e)
        return False
    return True
