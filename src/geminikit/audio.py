"""오디오 전사 (inline base64 또는 업로드된 file_uri)."""

from __future__ import annotations

import base64
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ._mime import guess_mime_type
from .response import GeminiResponse

if TYPE_CHECKING:
    from .client import GeminiClient

DEFAULT_TRANSCRIBE_PROMPT = "Transcribe this audio clip"


class Audio:
    def __init__(self, client: GeminiClient):
        self._client = client

    async def transcribe(
        self,
        file_path: str | Path | None = None,
        *,
        file_uri: str | None = None,
        mime_type: str | None = None,
        model: str = "gemini-2.5-flash",
        language: str | None = None,
        prompt: str = DEFAULT_TRANSCRIBE_PROMPT,
        **extra: Any,
    ) -> GeminiResponse:
        """
        오디오 전사

        file_uri 가 있으면 업로드된 파일을 참조하고,
        없으면 file_path 내용을 base64 inline_data 로 보낸다.
        """
        if file_path is None and file_uri is None:
            raise ValueError("file_path 또는 file_uri 가 필요합니다.")

        text = f"{prompt} in {language}" if language else prompt

        if file_uri is not None:
            media: dict[str, Any] = {
                "file_data": {
                    "mime_type": mime_type or guess_mime_type(file_uri, default="audio/mp3"),
                    "file_uri": file_uri,
                }
            }
        else:
            path = Path(file_path)
            media = {
                "inline_data": {
                    "mime_type": mime_type or guess_mime_type(path, default="audio/mp3"),
                    "data": base64.b64encode(path.read_bytes()).decode("ascii"),
                }
            }

        body = {"contents": [{"parts": [{"text": text}, media]}], **extra}
        data = await self._client.json_post(f"models/{model}:generateContent", body)
        return GeminiResponse.from_api_response(data)
