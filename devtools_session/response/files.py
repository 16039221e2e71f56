"""Persistence of snapshots and screenshots."""
import asyncio
import logging
import tempfile
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..core.errors import FileSaveError

logger = logging.getLogger(__name__)

TEMP_DIR_PREFIX = "devtools-session-"
SCREENSHOT_BASENAME = "screenshot"


class ImageFormat(str, Enum):
    """Supported screenshot formats."""
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @classmethod
    def from_mime_type(cls, mime_type: str) -> "ImageFormat":
        for fmt in cls:
            if fmt.mime_type == mime_type:
                return fmt
        raise ValueError(f"No mapping for Mime type {mime_type}.")


def screenshot_quality(fmt: Union[ImageFormat, str], quality: Optional[int]) -> Optional[int]:
    """Quality to pass to the encoder, or None when it does not apply.

    PNG is lossless, so any quality given for it is dropped.

    Raises:
        ValueError: If quality is outside 0-100.
    """
    if ImageFormat(fmt) is ImageFormat.PNG or quality is None:
        return None
    if not 0 <= quality <= 100:
        raise ValueError(f"Quality must be between 0 and 100, got {quality}")
    return quality


async def _write(path: Path, data: bytes) -> None:
    await asyncio.to_thread(path.write_bytes, data)


async def save_temporary_file(data: bytes, mime_type: str) -> Path:
    """Write image bytes to a fresh temporary directory.

    Returns:
        Path of the written file.

    Raises:
        FileSaveError: If the file cannot be written.
    """
    try:
        extension = ImageFormat.from_mime_type(mime_type).value
        directory = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX))
        path = directory / f"{SCREENSHOT_BASENAME}.{extension}"
        await _write(path, data)
    except (OSError, ValueError) as e:
        logger.error(f"Could not save temporary file: {e}")
        raise FileSaveError() from e
    return path


async def save_file(data: bytes, filename: Union[str, Path]) -> Path:
    """Write bytes to ``filename`` (resolved against the working directory).

    Raises:
        FileSaveError: If the file cannot be written.
    """
    path = Path(filename).resolve()
    try:
        await _write(path, data)
    except OSError as e:
        logger.error(f"Could not save {path}: {e}")
        raise FileSaveError() from e
    return path
