"""
Context caching (cachedContents)
- 업로드된 파일을 캐시에 올려 이후 generate_content_with_cache() 로 재사용
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ._mime import OCTET_STREAM, guess_mime_type
from .response import GeminiResponse

if TYPE_CHECKING:
    from .client import GeminiClient

CACHED_CONTENTS_PATH = "cachedContents"
DEFAULT_TTL = "86400s"


def _camel(key: str) -> str:
    return re.sub(r"_([a-z])", lambda m: m.group(1).upper(), key)


def _model_name(model: str) -> str:
    return model if model.startswith("models/") else f"models/{model}"


def _cache_name(name: str) -> str:
    return name if name.startswith(f"{CACHED_CONTENTS_PATH}/") else f"{CACHED_CONTENTS_PATH}/{name}"


class CachedContent:
    def __init__(self, client: GeminiClient):
        self._client = client

    async def create(
        self,
        *,
        file_path: str | Path | None = None,
        file_uri: str | None = None,
        mime_type: str | None = None,
        system_instruction: str | None = None,
        model: str = "gemini-2.5-flash",
        ttl: str = DEFAULT_TTL,
        **extra: Any,
    ) -> GeminiResponse:
        """
        캐시 생성. file_uri 가 없으면 file_path 를 먼저 업로드한다.

        extra 의 snake_case 키는 camelCase 로 바꿔 body 에 넣는다.
        """
        if file_path is not None and file_uri is None:
            ref = await self._client.files.upload(file_path, mime_type=mime_type)
            file_uri = ref.uri
            mime_type = mime_type or ref.mime_type
        if not file_uri:
            raise ValueError("file_uri 또는 file_path 가 필요합니다.")

        if mime_type is None:
            mime_type = guess_mime_type(file_path) if file_path else OCTET_STREAM

        body: dict[str, Any] = {
            "model": _model_name(model),
            "contents": [
                {
                    "role": "user",
                    "parts": [{"file_data": {"mime_type": mime_type, "file_uri": file_uri}}],
                }
            ],
            "ttl": ttl,
        }
        if system_instruction:
            body["systemInstruction"] = {
                "role": "system",
                "parts": [{"text": system_instruction}],
            }
        for key, value in extra.items():
            body[_camel(key)] = value

        data = await self._client.json_post(CACHED_CONTENTS_PATH, body)
        return GeminiResponse.from_api_response(data)

    async def list(self, **params: Any) -> dict[str, Any]:
        query = {_camel(k): v for k, v in params.items()}
        return await self._client.get(CACHED_CONTENTS_PATH, params=query)

    async def get(self, name: str) -> dict[str, Any]:
        return await self._client.get(_cache_name(name))

    async def update(self, name: str, ttl: str = DEFAULT_TTL) -> dict[str, Any]:
        return await self._client.patch(_cache_name(name), {"ttl": ttl})

    async def delete(self, name: str) -> dict[str, Any]:
        return await self._client.delete(_cache_name(name))
