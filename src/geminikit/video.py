"""
영상 분석
- Files API 업로드 후 분석 (대용량, 재사용)
- 20MB 미만은 inline_data 로 직접 전송
- 공개 YouTube URL, 구간(videoMetadata) 분석
"""

from __future__ import annotations

import base64
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from ._mime import VIDEO_EXTENSIONS, guess_mime_type
from .response import GeminiResponse

if TYPE_CHECKING:
    from .client import GeminiClient

DEFAULT_VIDEO_MODEL = "gemini-2.5-flash"
INLINE_SIZE_LIMIT = 20 * 1024 * 1024

_YOUTUBE_PATTERNS = [
    re.compile(r"^https?://(?:www\.)?youtube\.com/watch\?v=[\w-]+"),
    re.compile(r"^https?://youtu\.be/[\w-]+"),
    re.compile(r"^https?://(?:www\.)?youtube\.com/embed/[\w-]+"),
    re.compile(r"^https?://(?:www\.)?youtube\.com/v/[\w-]+"),
    re.compile(r"^https?://(?:www\.)?youtube\.com/shorts/[\w-]+"),
]

_DESCRIBE_PROMPTS = {
    "ja": "この動画の内容を詳しく説明してください。",
    "ko": "이 영상의 내용을 자세히 설명해 주세요.",
    "en": "Describe this video in detail.",
}


def is_youtube_url(url: str) -> bool:
    return any(p.match(url) for p in _YOUTUBE_PATTERNS)


def is_supported_video(path: str | Path) -> bool:
    return Path(str(path)).suffix.lower() in VIDEO_EXTENSIONS


class VideoAnalysis(BaseModel):
    """analyze() 결과 (업로드된 파일 정보 포함)"""
    response: GeminiResponse
    file_uri: str
    file_name: str


class Video:
    """
    영상 분석 리소스

    사용법:
        result = await client.video.analyze("clip.mp4", prompt="요약해줘")
        print(result.response.text)
    """

    def __init__(self, client: GeminiClient):
        self._client = client

    async def _generate(
        self, model: str, prompt: str, media: dict[str, Any], extra: dict[str, Any]
    ) -> GeminiResponse:
        body = {
            "contents": [{"parts": [{"text": prompt}, media]}],
            **{k: v for k, v in extra.items() if k != "contents"},
        }
        data = await self._client.json_post(f"models/{model}:generateContent", body)
        return GeminiResponse.from_api_response(data)

    async def analyze(
        self,
        file_path: str | Path,
        prompt: str,
        model: str = DEFAULT_VIDEO_MODEL,
        mime_type: str | None = None,
        **extra: Any,
    ) -> VideoAnalysis:
        """업로드 → ACTIVE 대기 → 분석"""
        mime_type = mime_type or guess_mime_type(file_path, default="video/mp4")
        ref = await self._client.files.upload(file_path, mime_type=mime_type)
        await self._client.files.wait_until_active(ref.name)

        response = await self.analyze_with_file_uri(
            ref.uri, prompt, model=model, mime_type=mime_type, **extra
        )
        return VideoAnalysis(response=response, file_uri=ref.uri, file_name=ref.name)

    async def analyze_with_file_uri(
        self,
        file_uri: str,
        prompt: str,
        model: str = DEFAULT_VIDEO_MODEL,
        mime_type: str = "video/mp4",
        **extra: Any,
    ) -> GeminiResponse:
        media = {"file_data": {"mime_type": mime_type, "file_uri": file_uri}}
        return await self._generate(model, prompt, media, extra)

    async def analyze_inline(
        self,
        file_path: str | Path,
        prompt: str,
        model: str = DEFAULT_VIDEO_MODEL,
        mime_type: str | None = None,
        **extra: Any,
    ) -> GeminiResponse:
        """20MB 미만 영상을 inline_data 로 분석"""
        path = Path(file_path)
        if path.stat().st_size > INLINE_SIZE_LIMIT:
            raise ValueError("파일 크기가 20MB 를 초과합니다. analyze() 로 업로드 후 분석하세요.")

        media = {
            "inline_data": {
                "mime_type": mime_type or guess_mime_type(path, default="video/mp4"),
                "data": base64.b64encode(path.read_bytes()).decode("ascii"),
            }
        }
        return await self._generate(model, prompt, media, extra)

    async def analyze_youtube(
        self, url: str, prompt: str, model: str = DEFAULT_VIDEO_MODEL, **extra: Any
    ) -> GeminiResponse:
        """공개 YouTube 영상 분석"""
        if not is_youtube_url(url):
            raise ValueError("유효하지 않은 YouTube URL 입니다. 공개 영상만 지원합니다.")
        return await self._generate(model, prompt, {"file_data": {"file_uri": url}}, extra)

    async def analyze_segment(
        self,
        file_uri: str,
        prompt: str,
        start_offset: str | None = None,
        end_offset: str | None = None,
        model: str = DEFAULT_VIDEO_MODEL,
        mime_type: str = "video/mp4",
        **extra: Any,
    ) -> GeminiResponse:
        """startOffset / endOffset (예: "30s") 구간만 분석"""
        file_data: dict[str, Any] = {"mime_type": mime_type, "file_uri": file_uri}
        video_metadata = {}
        if start_offset:
            video_metadata["startOffset"] = start_offset
        if end_offset:
            video_metadata["endOffset"] = end_offset
        if video_metadata:
            file_data["video_metadata"] = video_metadata
        return await self._generate(model, prompt, {"file_data": file_data}, extra)

    async def ask(
        self,
        question: str,
        *,
        file_path: str | Path | None = None,
        file_uri: str | None = None,
        youtube_url: str | None = None,
        model: str = DEFAULT_VIDEO_MODEL,
        **extra: Any,
    ) -> GeminiResponse:
        """영상 소스 하나(youtube_url > file_uri > file_path)에 대해 질문"""
        if youtube_url:
            return await self.analyze_youtube(youtube_url, question, model=model, **extra)
        if file_uri:
            return await self.analyze_with_file_uri(file_uri, question, model=model, **extra)
        if file_path:
            result = await self.analyze(file_path, question, model=model, **extra)
            return result.response
        raise ValueError("file_path, file_uri, youtube_url 중 하나가 필요합니다.")

    async def describe(self, language: str = "en", **source: Any) -> GeminiResponse:
        prompt = _DESCRIBE_PROMPTS.get(language, _DESCRIBE_PROMPTS["en"])
        return await self.ask(prompt, **source)

    async def extract_timestamps(self, query: str, **source: Any) -> GeminiResponse:
        prompt = (
            f'Extract every timestamp where "{query}" appears in the video. '
            "Answer in MM:SS format."
        )
        return await self.ask(prompt, **source)
