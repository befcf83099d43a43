import pyperclip
import pytest
from PIL import Image

from twofa.core import clipboard
from twofa.core.clipboard import ClipboardError


def test_copy_text(monkeypatch):
    copied = []
    monkeypatch.setattr(clipboard.pyperclip, "copy", copied.append)
    clipboard.copy_text("123456")
    assert copied == ["123456"]


def test_copy_text_without_backend(monkeypatch):
    def boom(text):
        raise pyperclip.PyperclipException("no clipboard")
    monkeypatch.setattr(clipboard.pyperclip, "copy", boom)
    with pytest.raises(ClipboardError):
        clipboard.copy_text("123456")


def test_read_text(monkeypatch):
    monkeypatch.setattr(clipboard.pyperclip, "paste", lambda: "  otpauth://totp/x?secret=AB \n")
    assert clipboard.read_text() == "otpauth://totp/x?secret=AB"

    monkeypatch.setattr(clipboard.pyperclip, "paste", lambda: "   ")
    assert clipboard.read_text() is None

    def boom():
        raise pyperclip.PyperclipException("no clipboard")
    monkeypatch.setattr(clipboard.pyperclip, "paste", boom)
    assert clipboard.read_text() is None


def test_grab_image(monkeypatch, tmp_path):
    image = Image.new("RGB", (10, 10), "white")
    monkeypatch.setattr(clipboard.ImageGrab, "grabclipboard", lambda: image)
    assert clipboard.grab_image() is image

    monkeypatch.setattr(clipboard.ImageGrab, "grabclipboard", lambda: None)
    assert clipboard.grab_image() is None


def test_grab_image_from_copied_files(monkeypatch, tmp_path):
    text_file = tmp_path / "notes.txt"
    text_file.write_text("hello")
    png = tmp_path / "shot.png"
    Image.new("RGB", (12, 8), "black").save(png)

    monkeypatch.setattr(clipboard.ImageGrab, "grabclipboard", lambda: [str(text_file), str(png)])
    grabbed = clipboard.grab_image()
    assert grabbed is not None
    assert grabbed.size == (12, 8)


def test_grab_image_without_backend(monkeypatch):
    def boom():
        raise NotImplementedError("wl-paste or xclip is required")
    monkeypatch.setattr(clipboard.ImageGrab, "grabclipboard", boom)
    assert clipboard.grab_image() is None
