"""파일 확장자 기반 MIME 타입 추정 (내용 스니핑 없음)."""

from __future__ import annotations

import mimetypes
from pathlib import Path

OCTET_STREAM = "application/octet-stream"

# Gemini 가 기대하는 표기가 mimetypes 기본값과 다른 확장자
_GEMINI_MIME_TYPES = {
    ".md": "text/md",
    ".py": "application/x-python",
    ".js": "application/x-javascript",
    ".rtf": "text/rtf",
    ".xml": "text/xml",
    ".mp3": "audio/mp3",
    ".wav": "audio/wav",
    ".aiff": "audio/aiff",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".webp": "image/webp",
    ".mkv": "video/x-matroska",
    ".flv": "video/x-flv",
    ".wmv": "video/x-ms-wmv",
    ".3gp": "video/3gpp",
    ".3gpp": "video/3gpp",
    ".webm": "video/webm",
}

VIDEO_EXTENSIONS = frozenset(
    {".mp4", ".mpeg", ".mov", ".avi", ".flv", ".mpg", ".webm", ".wmv", ".3gp", ".3gpp"}
)


def guess_mime_type(path: str | Path, default: str = OCTET_STREAM) -> str:
    """
    확장자로 MIME 타입을 추정한다.

    Args:
        path: 파일 경로 또는 URL
        default: 추정 실패 시 반환값 (오디오는 audio/mp3, 영상은 video/mp4 등)
    """
    suffix = Path(str(path)).suffix.lower()
    if suffix in _GEMINI_MIME_TYPES:
        return _GEMINI_MIME_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(f"file{suffix}")
    return guessed or default
