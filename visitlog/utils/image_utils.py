"""
Image processing utilities for student photos.
"""
import base64
import binascii
import logging
import re
from typing import Tuple

import cv2
import numpy as np

from visitlog.config.settings import Config
from visitlog.exceptions.base import ValidationError

logger = logging.getLogger(__name__)

_DATA_URL = re.compile(r'^data:(image/[a-zA-Z0-9.+-]+);base64,(.+)$', re.DOTALL)


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """
    Split an image data URL into its MIME type and raw bytes.

    Args:
        data_url: String like 'data:image/png;base64,....'

    Returns:
        Tuple of (MIME type, decoded bytes)

    Raises:
        ValidationError: The string is not a base64 image data URL
    """
    match = _DATA_URL.match(data_url or '')
    if not match:
        raise ValidationError("Invalid photo format. Expected data URL or file upload.")

    try:
        data = base64.b64decode(match.group(2), validate=False)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid photo format. Expected data URL or file upload.")
    return match.group(1), data


def encode_data_url(data: bytes, mime: str = "image/png") -> str:
    """Build a base64 data URL."""
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def resize_frame(frame: np.ndarray, max_w: int = None, max_h: int = None) -> np.ndarray:
    """
    Resize the frame to fit within max_w x max_h while maintaining aspect ratio.
    Frames that already fit are returned unchanged.
    """
    max_w = max_w or Config.PHOTO_MAX_WIDTH
    max_h = max_h or Config.PHOTO_MAX_HEIGHT

    height, width = frame.shape[:2]

    # Calculate scale to fit both dimensions
    scale = min(max_w / width, max_h / height, 1.0)

    if scale < 1.0:
        new_width = max(1, int(width * scale))
        new_height = max(1, int(height * scale))
        return cv2.resize(frame, (new_width, new_height), interpolation=cv2.INTER_AREA)

    return frame


def prepare_photo(data: bytes) -> bytes:
    """
    Decode an uploaded photo, shrink it to the configured bounds and re-encode as JPEG.

    Args:
        data: Raw image file content

    Returns:
        JPEG bytes

    Raises:
        ValidationError: The content is not a decodable image
    """
    if not data:
        raise ValidationError("Photo missing")

    frame = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if frame is None or frame.size == 0:
        raise ValidationError("Uploaded file is not a valid image")

    frame = resize_frame(frame)
    success, buffer = cv2.imencode(
        ".jpg",
        frame,
        [int(cv2.IMWRITE_JPEG_QUALITY), Config.PHOTO_JPEG_QUALITY]
    )
    if not success:
        raise ValidationError("Could not encode photo")

    logger.debug(f"Prepared photo {frame.shape[1]}x{frame.shape[0]}, {buffer.nbytes / 1024:.1f}KB")
    return buffer.tobytes()
