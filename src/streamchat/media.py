"""Helpers that turn local files into inline base64 parts."""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path

_AUDIO_FALLBACK = "audio/webm"
_IMAGE_FALLBACK = "image/jpeg"


def encode_file(path: str | Path, fallback_mime: str) -> tuple[str, str]:
    """Read *path* and return ``(mime_type, base64_data)``."""
    p = Path(path).expanduser()
    mime_type, _ = mimetypes.guess_type(p.name)
    data = base64.b64encode(p.read_bytes()).decode("ascii")
    return mime_type or fallback_mime, data


def encode_image(path: str | Path) -> tuple[str, str]:
    mime_type, data = encode_file(path, _IMAGE_FALLBACK)
    if not mime_type.startswith("image/"):
        raise ValueError(f"not an image file: {path}")
    return mime_type, data


def encode_audio(path: str | Path) -> tuple[str, str]:
    mime_type, data = encode_file(path, _AUDIO_FALLBACK)
    if mime_type == "video/webm":  # recorder output, audio track only
        mime_type = "audio/webm"
    if not mime_type.startswith("audio/"):
        raise ValueError(f"not an audio file: {path}")
    return mime_type, data
