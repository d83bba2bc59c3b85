"""
Google Gemini REST API 클라이언트
- httpx.AsyncClient 기반 (google-genai SDK 미사용, 의존성 최소화)
- generateContent / streamGenerateContent / embedContent 지원
- threads / messages / runs 등 하위 리소스 accessor 제공
- HTTP 에러는 ProviderError 계열로 래핑, 재시도는 하지 않는다
"""

from __future__ import annotations

import base64
import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncIterator

import httpx
from pydantic import BaseModel

from ._mime import guess_mime_type
from ._types import ClientConfig, Interceptor
from .errors import ConfigurationError, GeminiError, ProviderError, error_for_status
from .files import FileRef
from .logging import log_message
from .models import MessageList, RunObject
from .response import GeminiResponse, StreamChunk

if TYPE_CHECKING:
    from .audio import Audio
    from .cached_content import CachedContent
    from .documents import Documents
    from .files import Files
    from .images import Images
    from .messages import Messages
    from .model_catalog import Models
    from .runs import Runs
    from .threads import Threads
    from .video import Video

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "gemini-2.0-flash-lite"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_EMBEDDING_MODEL = "text-embedding-004"


class MultimodalResult(BaseModel):
    """chat_with_multimodal() 결과"""
    thread_id: str
    messages: MessageList
    run: RunObject
    file_infos: list[FileRef]


class UploadedFileResult(BaseModel):
    """upload_and_process_file() 결과"""
    response: GeminiResponse
    file_uri: str
    file_name: str


class GeminiClient:
    """
    Gemini API 비동기 클라이언트

    사용법:
        async with GeminiClient(api_key="...") as client:
            response = await client.generate_content("안녕")
            print(response.text)

            thread = client.threads.create()
            client.messages.create(thread.id, role="user", content="Hello")
            run = await client.runs.create(thread.id)
    """

    def __init__(
        self,
        api_key: str | None = None,
        config: ClientConfig | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        extra_headers: dict[str, str] | None = None,
        log_errors: bool | None = None,
        interceptors: list[Interceptor] | None = None,
    ):
        base = config if config is not None else ClientConfig.from_env()
        self._config = base.with_overrides(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            extra_headers=extra_headers,
            log_errors=log_errors,
            interceptors=interceptors,
        )
        if not self._config.api_key and os.environ.get("GEMINI_API_KEY"):
            self._config = self._config.with_overrides(
                api_key=os.environ["GEMINI_API_KEY"]
            )
        if not self._config.api_key:
            raise ConfigurationError(
                "api_key가 필요합니다. 직접 전달하거나 GEMINI_API_KEY 환경변수를 설정하세요."
            )
        self._interceptors: list[Interceptor] = list(self._config.interceptors)
        self._http: httpx.AsyncClient | None = None
        self._resources: dict[str, Any] = {}

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def api_key(self) -> str:
        return self._config.api_key or ""

    def __repr__(self) -> str:
        return (
            f"<GeminiClient base_url={self._config.base_url!r} "
            f"timeout={self._config.timeout} api_key=[REDACTED]>"
        )

    # --- HTTP ---

    async def _get_http(self) -> httpx.AsyncClient:
        """httpx 클라이언트 lazy 초기화"""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                headers={
                    "Content-Type": "application/json",
                    **self._config.extra_headers,
                },
                timeout=httpx.Timeout(
                    self._config.timeout, connect=self._config.connect_timeout
                ),
            )
        return self._http

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _raise_for_response(self, response: httpx.Response) -> None:
        """non-2xx 응답을 ProviderError 계열로 변환"""
        try:
            body: Any = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = response.text
        message = response.reason_phrase or "HTTP error"
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                message = str(error["message"])
        elif isinstance(body, str) and body:
            message = body

        if self._config.log_errors:
            log_message(
                "Gemini HTTP Error",
                body,
                logging.ERROR,
                status_code=response.status_code,
                path=response.request.url.path,
            )
        raise error_for_status(response.status_code, message, body=body)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
    ) -> httpx.Response:
        """
        단일 HTTP 요청. API 키는 key 쿼리 파라미터로 붙인다.

        Raises:
            ProviderError: non-2xx 응답 또는 네트워크 에러
        """
        http = await self._get_http()
        url = self._url(path)
        query = {"key": self.api_key, **(params or {})}

        logger.debug(f"[gemini] {method} {url}")
        try:
            response = await http.request(
                method,
                url,
                json=json_body,
                params=query,
                headers=headers,
                content=content,
            )
        except httpx.TransportError as e:
            if self._config.log_errors:
                log_message(
                    "Gemini transport error", str(e), logging.ERROR, status_code=0, path=url
                )
            raise ProviderError(
                status_code=0, message=f"{type(e).__name__}: {e}", retryable=True
            ) from e

        if response.is_error:
            self._raise_for_response(response)
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise ProviderError(
                status_code=response.status_code,
                message=f"응답 JSON 파싱 실패: {e}",
                retryable=False,
                body=response.text,
            ) from e

    async def json_post(
        self,
        path: str,
        body: dict[str, Any],
        params: dict[str, Any] | None = None,
    ) -> Any:
        """interceptor 체인을 거쳐 JSON POST 후 파싱된 본문 반환"""
        for i in self._interceptors:
            if hasattr(i, "before_request"):
                path, body = await i.before_request(path, body)

        response = await self.request("POST", path, json_body=body, params=params)
        data = self._decode(response)

        for i in self._interceptors:
            if hasattr(i, "after_response"):
                data = await i.after_response(path, data)
        return data

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self._decode(await self.request("GET", path, params=params))

    async def patch(
        self,
        path: str,
        body: dict[str, Any],
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await self.request("PATCH", path, json_body=body, params=params)
        return self._decode(response)

    async def delete(self, path: str) -> Any:
        return self._decode(await self.request("DELETE", path))

    async def stream_post(
        self, path: str, body: dict[str, Any]
    ) -> AsyncIterator[dict[str, Any]]:
        """SSE(alt=sse) 스트림을 data: 라인 단위 JSON 으로 yield"""
        http = await self._get_http()
        url = self._url(path)
        query = {"key": self.api_key, "alt": "sse"}

        logger.debug(f"[gemini] stream POST {url}")
        try:
            async with http.stream("POST", url, json=body, params=query) as response:
                if response.is_error:
                    await response.aread()
                    self._raise_for_response(response)

                async for line in response.aiter_lines():
                    if not line or not line.startswith("data:"):
                        continue
                    raw = line.removeprefix("data:").strip()
                    if not raw:
                        continue
                    try:
                        yield json.loads(raw)
                    except json.JSONDecodeError:
                        logger.debug(f"[gemini] 파싱 불가 청크 무시: {raw[:80]}")
                        continue
        except httpx.TransportError as e:
            raise ProviderError(
                status_code=0, message=f"{type(e).__name__}: {e}", retryable=True
            ) from e

    # --- 텍스트 생성 ---

    async def chat(
        self, body: dict[str, Any], model: str = DEFAULT_CHAT_MODEL
    ) -> GeminiResponse:
        """generateContent 호출. body 는 API 포맷 그대로 전달된다."""
        data = await self.json_post(f"models/{model}:generateContent", body)
        result = GeminiResponse.from_api_response(data)
        logger.debug(
            f"[gemini] response: model={model}, candidates={len(result.candidates)}, "
            f"usage=({result.prompt_tokens}in/{result.completion_tokens}out)"
        )
        return result

    async def chat_stream(
        self, body: dict[str, Any], model: str = DEFAULT_CHAT_MODEL
    ) -> AsyncIterator[StreamChunk]:
        """streamGenerateContent 호출. 청크마다 StreamChunk 를 yield 한다."""
        async for data in self.stream_post(f"models/{model}:streamGenerateContent", body):
            yield StreamChunk.from_api_chunk(data)

    def _build_generate_body(
        self,
        prompt: Any,
        system_instruction: Any = None,
        response_mime_type: str | None = None,
        response_schema: dict[str, Any] | None = None,
        temperature: float | None = 0.5,
        tools: list[dict[str, Any]] | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"contents": [self.format_content(prompt)]}
        if system_instruction is not None:
            body["systemInstruction"] = self.format_content(system_instruction)

        generation_config: dict[str, Any] = dict(extra.pop("generation_config", {}) or {})
        if temperature is not None:
            generation_config["temperature"] = temperature
        if response_mime_type:
            generation_config["responseMimeType"] = response_mime_type
        if response_schema:
            generation_config["responseSchema"] = response_schema
        if generation_config:
            body["generationConfig"] = generation_config
        if tools:
            body["tools"] = tools
        body.update(extra)
        return body

    async def generate_content(
        self,
        prompt: Any,
        model: str = DEFAULT_CHAT_MODEL,
        system_instruction: Any = None,
        response_mime_type: str | None = None,
        response_schema: dict[str, Any] | None = None,
        temperature: float | None = 0.5,
        tools: list[dict[str, Any]] | None = None,
        **extra: Any,
    ) -> GeminiResponse:
        """
        단일 프롬프트 텍스트 생성

        Args:
            prompt: 문자열, part 리스트, 또는 {"parts": [...]} dict
            system_instruction: 시스템 프롬프트 (prompt 와 같은 형식)
            response_mime_type: "application/json" 등 구조화 출력
            response_schema: responseSchema (OpenAPI 서브셋)
            tools: [ToolDefinition.to_dict()] 등 tools 배열
            extra: body 최상위에 그대로 병합 (safetySettings 등)
        """
        body = self._build_generate_body(
            prompt,
            system_instruction=system_instruction,
            response_mime_type=response_mime_type,
            response_schema=response_schema,
            temperature=temperature,
            tools=tools,
            **extra,
        )
        return await self.chat(body, model=model)

    async def generate_content_stream(
        self,
        prompt: Any,
        model: str = DEFAULT_CHAT_MODEL,
        system_instruction: Any = None,
        response_mime_type: str | None = None,
        response_schema: dict[str, Any] | None = None,
        temperature: float | None = 0.5,
        **extra: Any,
    ) -> AsyncIterator[StreamChunk]:
        """generate_content() 의 스트리밍 버전"""
        body = self._build_generate_body(
            prompt,
            system_instruction=system_instruction,
            response_mime_type=response_mime_type,
            response_schema=response_schema,
            temperature=temperature,
            **extra,
        )
        async for chunk in self.chat_stream(body, model=model):
            yield chunk

    async def generate_content_with_cache(
        self,
        prompt: str,
        cached_content: str,
        model: str = DEFAULT_MODEL,
        **extra: Any,
    ) -> GeminiResponse:
        """cachedContents 로 저장해 둔 컨텍스트를 참조해 생성"""
        model_name = model if model.startswith("models/") else f"models/{model}"
        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "cachedContent": cached_content,
            **extra,
        }
        data = await self.json_post(f"{model_name}:generateContent", body)
        return GeminiResponse.from_api_response(data)

    async def embeddings(
        self, content: Any, model: str = DEFAULT_EMBEDDING_MODEL, **extra: Any
    ) -> dict[str, Any]:
        """embedContent 호출. {"embedding": {"values": [...]}} 를 그대로 반환"""
        body = {"content": self.format_content(content), **extra}
        return await self.json_post(f"models/{model}:embedContent", body)

    # --- 멀티모달 헬퍼 ---

    async def chat_with_multimodal(
        self,
        file_paths: list[str | Path],
        prompt: str,
        model: str = DEFAULT_MODEL,
        system_instruction: str | None = None,
    ) -> MultimodalResult:
        """
        파일 업로드 → 스레드 생성 → 파일/프롬프트 메시지 추가 → run 실행

        업로드나 run 실패 시 예외는 그대로 전파된다.
        """
        thread = self.threads.create(model=model)
        file_infos: list[FileRef] = []

        for path in file_paths:
            ref = await self.files.upload(path)
            file_infos.append(ref)
            self.messages.create(
                thread.id,
                role="user",
                content=[{"file_data": {"mime_type": ref.mime_type, "file_uri": ref.uri}}],
            )

        self.messages.create(thread.id, role="user", content=prompt)
        run = await self.runs.create(thread.id, system_instruction=system_instruction)

        return MultimodalResult(
            thread_id=thread.id,
            messages=self.messages.list(thread.id),
            run=run,
            file_infos=file_infos,
        )

    async def chat_with_file(
        self, file_path: str | Path, prompt: str, model: str = DEFAULT_MODEL, **kwargs: Any
    ) -> MultimodalResult:
        return await self.chat_with_multimodal([file_path], prompt, model=model, **kwargs)

    async def upload_and_process_file(
        self,
        file_path: str | Path,
        prompt: str,
        content_type: str | None = None,
        model: str = DEFAULT_MODEL,
        **kwargs: Any,
    ) -> UploadedFileResult:
        """파일 업로드 후 단발성 generate_content"""
        mime_type = content_type or guess_mime_type(file_path)
        ref = await self.files.upload(file_path, mime_type=mime_type)
        response = await self.generate_content(
            [
                {"type": "text", "text": prompt},
                {"type": "file_data", "file_data": {"mime_type": mime_type, "file_uri": ref.uri}},
            ],
            model=model,
            **kwargs,
        )
        return UploadedFileResult(response=response, file_uri=ref.uri, file_name=ref.name)

    # --- content 포맷 변환 ---

    def format_content(self, value: Any) -> dict[str, Any]:
        """
        다양한 입력을 Gemini content({"parts": [...]}) 로 변환

        str                      → {"parts": [{"text": ...}]}
        list                     → 원소마다 part 변환
        {"parts": [...]}         → 그대로
        그 외 dict               → 단일 part 로 래핑
        """
        if isinstance(value, str):
            return {"parts": [{"text": value}]}
        if isinstance(value, list):
            return {"parts": [self._format_part(p) for p in value]}
        if isinstance(value, dict):
            return value if "parts" in value else {"parts": [value]}
        return {"parts": [{"text": str(value)}]}

    def _format_part(self, part: Any) -> dict[str, Any]:
        if not isinstance(part, dict):
            return {"text": str(part)}

        kind = part.get("type")
        if kind == "text":
            return {"text": part["text"]}
        if kind == "image_file":
            path = part["image_file"]["file_path"]
            return {
                "inline_data": {
                    "mime_type": guess_mime_type(path, default="image/jpeg"),
                    "data": _encode_file(path),
                }
            }
        if kind == "image_base64":
            info = part["image_base64"]
            return {"inline_data": {"mime_type": info["mime_type"], "data": info["data"]}}
        if kind == "image_url":
            # 원격 이미지는 file_data 로 넘긴다 (다운로드하지 않음)
            url = part["image_url"]["url"]
            return {
                "file_data": {
                    "mime_type": guess_mime_type(url, default="image/jpeg"),
                    "file_uri": url,
                }
            }
        if kind == "file_data":
            return {"file_data": part["file_data"]}
        if kind in ("document", "audio"):
            info = part[kind]
            mime_type = info.get("mime_type") or guess_mime_type(info.get("file_path", ""))
            return {"file_data": {"mime_type": mime_type, "file_uri": info["file_uri"]}}
        if kind is not None:
            return part

        for key in ("file_data", "inline_data", "text"):
            if key in part:
                return {key: part[key]}
        return part

    # --- 하위 리소스 ---

    def _resource(self, name: str, factory: Any) -> Any:
        if name not in self._resources:
            self._resources[name] = factory()
        return self._resources[name]

    @property
    def threads(self) -> Threads:
        from .threads import Threads

        return self._resource("threads", Threads)

    @property
    def messages(self) -> Messages:
        from .messages import Messages

        return self._resource("messages", lambda: Messages(self.threads))

    @property
    def runs(self) -> Runs:
        from .chat import GeminiChatInvoker
        from .runs import Runs

        return self._resource(
            "runs", lambda: Runs(self.threads, GeminiChatInvoker(self))
        )

    @property
    def models(self) -> Models:
        from .model_catalog import Models

        return self._resource("models", lambda: Models(self))

    @property
    def files(self) -> Files:
        from .files import Files

        return self._resource("files", lambda: Files(self))

    @property
    def images(self) -> Images:
        from .images import Images

        return self._resource("images", lambda: Images(self))

    @property
    def audio(self) -> Audio:
        from .audio import Audio

        return self._resource("audio", lambda: Audio(self))

    @property
    def video(self) -> Video:
        from .video import Video

        return self._resource("video", lambda: Video(self))

    @property
    def documents(self) -> Documents:
        from .documents import Documents

        return self._resource("documents", lambda: Documents(self))

    @property
    def cached_content(self) -> CachedContent:
        from .cached_content import CachedContent

        return self._resource("cached_content", lambda: CachedContent(self))

    # --- 리소스 정리 ---

    async def close(self) -> None:
        """HTTP 클라이언트 종료"""
        if self._http and not self._http.is_closed:
            await self._http.aclose()

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()


def _encode_file(path: str | Path) -> str:
    try:
        return base64.b64encode(Path(path).read_bytes()).decode("ascii")
    except OSError as e:
        raise GeminiError(f"파일을 읽을 수 없습니다: {path}: {e}") from e

