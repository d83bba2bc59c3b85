"""문서(PDF, 텍스트 등) 업로드 후 질의 / 캐시 저장."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from ._mime import guess_mime_type
from .response import GeminiResponse

if TYPE_CHECKING:
    from .client import GeminiClient


class DocumentResult(BaseModel):
    response: GeminiResponse
    file_uri: str
    file_name: str


class Documents:
    def __init__(self, client: GeminiClient):
        self._client = client

    async def process(
        self,
        file_path: str | Path,
        prompt: str,
        model: str = "gemini-2.5-flash",
        mime_type: str | None = None,
        **kwargs: Any,
    ) -> DocumentResult:
        """업로드한 문서를 참조해 prompt 에 답한다."""
        mime_type = mime_type or guess_mime_type(file_path)
        ref = await self._client.files.upload(file_path, mime_type=mime_type)

        response = await self._client.generate_content(
            [
                {"type": "text", "text": prompt},
                {"type": "file_data", "file_data": {"mime_type": mime_type, "file_uri": ref.uri}},
            ],
            model=model,
            **kwargs,
        )
        return DocumentResult(response=response, file_uri=ref.uri, file_name=ref.name)

    async def cache(
        self,
        file_path: str | Path,
        system_instruction: str | None = None,
        model: str = "gemini-2.5-flash",
        ttl: str = "86400s",
        mime_type: str | None = None,
        **kwargs: Any,
    ) -> GeminiResponse:
        """문서를 업로드하고 cachedContents 로 등록"""
        return await self._client.cached_content.create(
            file_path=file_path,
            mime_type=mime_type or guess_mime_type(file_path),
            system_instruction=system_instruction,
            model=model,
            ttl=ttl,
            **kwargs,
        )
