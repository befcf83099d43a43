"""
clipboard.py - Clipboard text and image access.

- Text goes through pyperclip (pbcopy/pbpaste, xclip/xsel/wl-clipboard, win32).
- Images come from Pillow's ImageGrab.grabclipboard(); on Linux it needs
  wl-paste or xclip on PATH.
"""

import logging
from typing import Optional

import pyperclip
from PIL import Image, ImageGrab, UnidentifiedImageError

logger = logging.getLogger(__name__)


class ClipboardError(RuntimeError):
    """The clipboard could not be written."""


def copy_text(text: str) -> None:
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise ClipboardError(f"Cannot write to the clipboard: {e}") from e


def read_text() -> Optional[str]:
    """Trimmed clipboard text, or None when it is empty or unreadable."""
    try:
        text = pyperclip.paste()
    except pyperclip.PyperclipException as e:
        logger.debug("Clipboard text unavailable: %s", e)
        return None
    text = (text or "").strip()
    return text or None


def grab_image() -> Optional[Image.Image]:
    """
    Image currently on the clipboard, or None.

    When the clipboard holds copied files (macOS / Windows) the first one that
    opens as an image is used.
    """
    try:
        content = ImageGrab.grabclipboard()
    except (OSError, NotImplementedError) as e:
        logger.debug("Clipboard image unavailable: %s", e)
        return None

    if isinstance(content, Image.Image):
        return content
    if isinstance(content, list):
        for filename in content:
            try:
                with Image.open(filename) as img:
                    img.load()
                    return img.copy()
            except (OSError, UnidentifiedImageError):
                logger.debug("Skipping non-image clipboard file %s", filename)
    return None
