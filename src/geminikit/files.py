"""
Files API
- resumable 업로드 (start → upload, finalize 2단계)
- 메타데이터 조회 / 목록 / 삭제
- 영상 등 처리 시간이 필요한 파일의 ACTIVE 상태 대기
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any

from pydantic import BaseModel

from ._mime import guess_mime_type
from .errors import GeminiError, ProviderError

if TYPE_CHECKING:
    from .client import GeminiClient

logger = logging.getLogger(__name__)

FILE_API_BASE_PATH = "files"


class FileRef(BaseModel):
    """업로드된 파일 참조 (file_data part 구성에 필요한 정보)"""
    name: str
    uri: str
    mime_type: str
    display_name: str | None = None
    state: str | None = None


def _normalize_name(name: str) -> str:
    return name if name.startswith("files/") else f"files/{name}"


class Files:
    """
    Gemini Files API

    사용법:
        ref = await client.files.upload("sample.pdf")
        info = await client.files.get(ref.name)
    """

    def __init__(self, client: GeminiClient):
        self._client = client

    async def upload(
        self,
        file: str | Path | IO[bytes],
        display_name: str | None = None,
        mime_type: str | None = None,
    ) -> FileRef:
        """
        파일 업로드

        Args:
            file: 파일 경로 또는 바이너리 파일 객체
            display_name: 표시 이름 (기본: 파일명)
            mime_type: 지정하지 않으면 확장자로 추정
        """
        if file is None:
            raise ValueError("업로드할 파일이 지정되지 않았습니다.")

        if isinstance(file, (str, Path)):
            path = Path(file)
            data = path.read_bytes()
            filename = path.name
        else:
            if hasattr(file, "seek"):
                file.seek(0)
            data = file.read()
            filename = Path(getattr(file, "name", "") or "").name

        mime_type = mime_type or guess_mime_type(filename)
        display_name = display_name or filename or "uploaded_file"

        # 1단계: 업로드 세션 시작 → 업로드 URL 획득
        start = await self._client.request(
            "POST",
            self._client.config.upload_url,
            json_body={"file": {"display_name": display_name}},
            headers={
                "X-Goog-Upload-Protocol": "resumable",
                "X-Goog-Upload-Command": "start",
                "X-Goog-Upload-Header-Content-Length": str(len(data)),
                "X-Goog-Upload-Header-Content-Type": mime_type,
            },
        )
        upload_url = start.headers.get("x-goog-upload-url")
        if not upload_url:
            raise ProviderError(
                status_code=start.status_code,
                message="업로드 URL 을 받지 못했습니다 (x-goog-upload-url 헤더 없음)",
                retryable=False,
            )

        # 2단계: 본문 전송 + finalize
        finished = await self._client.request(
            "POST",
            upload_url,
            content=data,
            headers={
                "Content-Length": str(len(data)),
                "X-Goog-Upload-Offset": "0",
                "X-Goog-Upload-Command": "upload, finalize",
            },
        )
        data = self._client._decode(finished)
        payload = data.get("file") if isinstance(data, dict) else None
        if not isinstance(payload, dict) or not payload.get("name") or not payload.get("uri"):
            raise ProviderError(
                status_code=finished.status_code,
                message="업로드 응답에 file.name / file.uri 가 없습니다",
                retryable=False,
                body=data,
            )
        logger.debug(f"[files] 업로드 완료: {payload.get('name')} ({len(data)} bytes)")

        return FileRef(
            name=payload["name"],
            uri=payload["uri"],
            mime_type=payload.get("mimeType", mime_type),
            display_name=payload.get("displayName", display_name),
            state=payload.get("state"),
        )

    async def get(self, name: str) -> dict[str, Any]:
        return await self._client.get(_normalize_name(name))

    async def list(
        self, page_size: int | None = None, page_token: str | None = None
    ) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if page_size:
            params["pageSize"] = page_size
        if page_token:
            params["pageToken"] = page_token
        return await self._client.get(FILE_API_BASE_PATH, params=params)

    async def delete(self, name: str) -> dict[str, Any]:
        return await self._client.delete(_normalize_name(name))

    async def wait_until_active(
        self, name: str, max_attempts: int = 30, interval: float = 2.0
    ) -> dict[str, Any]:
        """
        파일 state 가 ACTIVE 가 될 때까지 폴링

        Raises:
            GeminiError: FAILED 상태이거나 max_attempts 소진
        """
        state = None
        for attempt in range(max_attempts):
            info = await self.get(name)
            state = info.get("state")
            if state == "ACTIVE":
                return info
            if state == "FAILED":
                message = (info.get("error") or {}).get("message", "Unknown error")
                raise GeminiError(f"파일 처리 실패: {name}: {message}")
            logger.debug(f"[files] {name} 상태 {state}, 대기 {attempt + 1}/{max_attempts}")
            await asyncio.sleep(interval)

        raise GeminiError(
            f"파일 처리 시간 초과: {name} 가 {max_attempts * interval:.0f}초 후에도 {state} 상태입니다."
        )
