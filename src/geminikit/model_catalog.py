"""사용 가능한 모델 목록 조회 (models 엔드포인트)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .client import GeminiClient


class Models:
    def __init__(self, client: GeminiClient):
        self._client = client

    async def list(
        self, page_size: int | None = None, page_token: str | None = None
    ) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if page_size:
            params["pageSize"] = page_size
        if page_token:
            params["pageToken"] = page_token
        return await self._client.get("models", params=params)

    async def retrieve(self, name: str) -> dict[str, Any]:
        path = name if name.startswith("models/") else f"models/{name}"
        return await self._client.get(path)
