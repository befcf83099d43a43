"""
qr_reader.py - Decode QR codes from images with OpenCV.

Image in (PIL image, encoded bytes or a file path), decoded text out, or None
when no QR code can be read. Nothing here knows about otpauth URIs.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
from PIL import Image

from twofa.core import clipboard

logger = logging.getLogger(__name__)


def _decode_array(img: np.ndarray) -> Optional[str]:
    # the classic detector misses most version 5+ codes (any realistic otpauth URI)
    for detector in (cv2.QRCodeDetector(), cv2.QRCodeDetectorAruco()):
        data, points, _ = detector.detectAndDecode(img)
        if data:
            return data
        logger.debug("%s found no QR code (detected=%s)", type(detector).__name__, points is not None)
    return None


def decode_image(image: Image.Image) -> Optional[str]:
    # PIL is RGB, OpenCV expects BGR
    rgb = np.array(image.convert("RGB"))
    return _decode_array(cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))


def decode_bytes(data: bytes) -> Optional[str]:
    """Decode from an encoded image (PNG, JPEG, ...)."""
    img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        logger.debug("Could not decode %d bytes as an image", len(data))
        return None
    return _decode_array(img)


def decode_path(path: Union[str, Path]) -> Optional[str]:
    """
    Decode from an image file.

    Raises:
        FileNotFoundError: path does not exist
    """
    # read the bytes ourselves: cv2.imread cannot open non-ASCII paths on Windows
    with open(path, "rb") as f:
        return decode_bytes(f.read())


def read_from_clipboard() -> Optional[str]:
    """Decode the QR code in the clipboard image (e.g. a screenshot)."""
    image = clipboard.grab_image()
    if image is None:
        logger.debug("Clipboard does not contain an image")
        return None
    return decode_image(image)
