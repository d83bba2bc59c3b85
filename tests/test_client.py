"""
GeminiClient 테스트
- httpx MockTransport로 네트워크 호출 없이 검증
python -m pytest tests/test_client.py -v
"""

import json

import httpx
import pytest

from geminikit import ClientConfig, GeminiClient
from geminikit.errors import (
    AuthenticationError,
    ConfigurationError,
    InvalidRequestError,
    ProviderError,
    RateLimitError,
)


def _make_mock_transport(response_body, status_code: int = 200):
    """테스트용 httpx MockTransport 생성"""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=status_code, json=response_body)

    return httpx.MockTransport(handler)


MOCK_TEXT_RESPONSE = {
    "candidates": [
        {
            "content": {"role": "model", "parts": [{"text": "모의 응답입니다."}]},
            "finishReason": "STOP",
        }
    ],
    "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 5, "totalTokenCount": 15},
}

MOCK_STREAM_RESPONSE = "\n".join(
    [
        'data: {"candidates":[{"content":{"role":"model","parts":[{"text":"안"}]}}]}',
        "",
        'data: {"candidates":[{"content":{"role":"model","parts":[{"text":"녕"}]}}]}',
        "",
        'data: {"candidates":[{"content":{"role":"model","parts":[{"text":""}]},"finishReason":"STOP"}],"usageMetadata":{"totalTokenCount":3}}',
        "",
    ]
)


class TestClientConfig:
    def test_missing_api_key_raises(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError, match="api_key"):
            GeminiClient()

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key-123")
        client = GeminiClient()
        assert client.api_key == "test-key-123"

    def test_env_fallback_with_explicit_config(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        client = GeminiClient(config=ClientConfig(timeout=5.0))
        assert client.api_key == "env-key"
        assert client.config.timeout == 5.0

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "k")
        monkeypatch.setenv("GEMINI_BASE_URL", "http://localhost:8080/v1beta/")
        monkeypatch.setenv("GEMINI_REQUEST_TIMEOUT", "30")
        monkeypatch.setenv("GEMINI_LOG_ERRORS", "true")
        config = ClientConfig.from_env()
        assert config.api_key == "k"
        assert config.base_url == "http://localhost:8080/v1beta"
        assert config.timeout == 30.0
        assert config.log_errors is True

    def test_explicit_arguments_win(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        client = GeminiClient(api_key="explicit", timeout=7.0)
        assert client.api_key == "explicit"
        assert client.config.timeout == 7.0

    def test_repr_redacts_key(self):
        client = GeminiClient(api_key="secret-key")
        assert "secret-key" not in repr(client)
        assert "REDACTED" in repr(client)


class TestGenerateContent:
    @pytest.mark.asyncio
    async def test_generate_text(self):
        client = GeminiClient(api_key="fake-key")
        # mock transport 주입
        client._http = httpx.AsyncClient(transport=_make_mock_transport(MOCK_TEXT_RESPONSE))

        response = await client.generate_content("안녕")
        assert response.text == "모의 응답입니다."
        assert response.finish_reason == "STOP"
        assert response.total_tokens == 15
        await client.close()

    @pytest.mark.asyncio
    async def test_sends_correct_request(self):
        """URL, key 쿼리 파라미터, body 구성 검증"""
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json=MOCK_TEXT_RESPONSE)

        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        await client.generate_content(
            "테스트",
            model="gemini-2.5-flash",
            system_instruction="시스템 프롬프트",
            response_mime_type="application/json",
            tools=[{"function_declarations": []}],
        )

        request = captured[0]
        assert request.url.path == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert request.url.params["key"] == "fake-key"
        body = json.loads(request.content)
        assert body["contents"] == [{"parts": [{"text": "테스트"}]}]
        assert body["systemInstruction"] == {"parts": [{"text": "시스템 프롬프트"}]}
        assert body["generationConfig"] == {
            "temperature": 0.5,
            "responseMimeType": "application/json",
        }
        assert body["tools"] == [{"function_declarations": []}]
        await client.close()

    @pytest.mark.asyncio
    async def test_no_system_no_tools(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(json.loads(request.content))
            return httpx.Response(200, json=MOCK_TEXT_RESPONSE)

        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        await client.generate_content("안녕", temperature=None)

        body = captured[0]
        assert "systemInstruction" not in body
        assert "tools" not in body
        assert "generationConfig" not in body
        await client.close()

    @pytest.mark.asyncio
    async def test_context_manager(self):
        async with GeminiClient(api_key="fake-key") as client:
            client._http = httpx.AsyncClient(transport=_make_mock_transport(MOCK_TEXT_RESPONSE))
            response = await client.chat({"contents": [{"role": "user", "parts": [{"text": "hi"}]}]})
            assert response.valid
        assert client._http.is_closed

    @pytest.mark.asyncio
    async def test_empty_candidates(self):
        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(transport=_make_mock_transport({"candidates": []}))
        response = await client.chat({"contents": []})
        assert response.valid is False
        assert response.text is None
        await client.close()

    @pytest.mark.asyncio
    async def test_format_content_parts(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(json.loads(request.content))
            return httpx.Response(200, json=MOCK_TEXT_RESPONSE)

        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        await client.generate_content(
            [
                {"type": "text", "text": "이 이미지는?"},
                {"type": "image_base64", "image_base64": {"mime_type": "image/png", "data": "AAAA"}},
                {"type": "image_url", "image_url": {"url": "https://example.com/cat.png"}},
            ]
        )

        parts = captured[0]["contents"][0]["parts"]
        assert parts[0] == {"text": "이 이미지는?"}
        assert parts[1] == {"inline_data": {"mime_type": "image/png", "data": "AAAA"}}
        assert parts[2] == {
            "file_data": {"mime_type": "image/png", "file_uri": "https://example.com/cat.png"}
        }
        await client.close()

    @pytest.mark.asyncio
    async def test_embeddings(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"embedding": {"values": [0.1, 0.2]}})

        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        result = await client.embeddings("hello")
        assert result["embedding"]["values"] == [0.1, 0.2]
        assert captured[0].url.path.endswith("models/text-embedding-004:embedContent")
        await client.close()


class TestStreaming:
    @pytest.mark.asyncio
    async def test_stream_chunks(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=MOCK_STREAM_RESPONSE.encode("utf-8"),
            )

        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        chunks = [c async for c in client.generate_content_stream("안녕")]

        assert "".join(c.delta_text for c in chunks) == "안녕"
        assert len(chunks) == 3
        assert captured[0].url.params["alt"] == "sse"
        assert captured[0].url.path.endswith(":streamGenerateContent")
        await client.close()

    @pytest.mark.asyncio
    async def test_stream_http_error(self):
        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(
            transport=_make_mock_transport({"error": {"message": "bad"}}, status_code=400)
        )
        with pytest.raises(InvalidRequestError):
            async for _ in client.generate_content_stream("안녕"):
                pass
        await client.close()


class TestErrors:
    @pytest.mark.asyncio
    async def test_http_error_raises_provider_error(self):
        error_response = {"error": {"code": 401, "message": "API key not valid", "status": "UNAUTHENTICATED"}}
        client = GeminiClient(api_key="bad-key")
        client._http = httpx.AsyncClient(transport=_make_mock_transport(error_response, status_code=401))

        with pytest.raises(AuthenticationError) as exc_info:
            await client.generate_content("hi")
        assert exc_info.value.status_code == 401
        assert exc_info.value.provider == "gemini"
        assert exc_info.value.retryable is False
        assert exc_info.value.message == "API key not valid"
        assert exc_info.value.body == error_response
        await client.close()

    @pytest.mark.asyncio
    async def test_429_is_not_retried(self):
        call_count = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal call_count
            call_count += 1
            return httpx.Response(429, json={"error": {"message": "quota"}})

        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        with pytest.raises(RateLimitError) as exc_info:
            await client.generate_content("hi")
        assert exc_info.value.retryable is True
        assert call_count == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_500_plain_text_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream exploded")

        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        with pytest.raises(ProviderError) as exc_info:
            await client.generate_content("hi")
        assert type(exc_info.value) is ProviderError
        assert exc_info.value.retryable is True
        assert exc_info.value.message == "upstream exploded"
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        with pytest.raises(ProviderError) as exc_info:
            await client.generate_content("hi")
        assert exc_info.value.status_code == 0
        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        await client.close()

    @pytest.mark.asyncio
    async def test_log_errors(self, caplog):
        client = GeminiClient(api_key="fake-key", log_errors=True)
        client._http = httpx.AsyncClient(
            transport=_make_mock_transport({"error": {"message": "bad request"}}, status_code=400)
        )
        with caplog.at_level("ERROR", logger="geminikit"):
            with pytest.raises(InvalidRequestError):
                await client.generate_content("hi")
        assert any("Gemini HTTP Error" in r.getMessage() for r in caplog.records)
        await client.close()


class TestInterceptors:
    @pytest.mark.asyncio
    async def test_interceptor_chain(self):
        seen = []

        class Recorder:
            async def before_request(self, path, body):
                body = {**body, "safetySettings": []}
                seen.append(("before", path))
                return path, body

            async def after_response(self, path, data):
                seen.append(("after", path))
                data["intercepted"] = True
                return data

        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(json.loads(request.content))
            return httpx.Response(200, json=MOCK_TEXT_RESPONSE)

        client = GeminiClient(api_key="fake-key", interceptors=[Recorder()])
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        response = await client.generate_content("hi")

        assert captured[0]["safetySettings"] == []
        assert response.raw["intercepted"] is True
        assert [s[0] for s in seen] == ["before", "after"]
        await client.close()


class TestThreadsOverClient:
    @pytest.mark.asyncio
    async def test_run_through_client(self):
        """client.runs 는 GeminiChatInvoker 로 generateContent 를 호출한다"""
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(json.loads(request.content))
            return httpx.Response(200, json=MOCK_TEXT_RESPONSE)

        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        thread = client.threads.create(model="gemini-2.5-flash")
        client.messages.create(thread.id, role="user", content="Hello")
        run = await client.runs.create(thread.id, system_instruction="친절하게")

        assert run.status == "completed"
        assert captured[0]["contents"] == [{"role": "user", "parts": [{"text": "Hello"}]}]
        assert captured[0]["systemInstruction"] == {"parts": [{"text": "친절하게"}]}
        assert client.messages.list(thread.id).data[-1].content == "모의 응답입니다."
        assert client.runs is client.runs
        await client.close()

    @pytest.mark.asyncio
    async def test_provider_error_through_client(self):
        client = GeminiClient(api_key="fake-key")
        client._http = httpx.AsyncClient(
            transport=_make_mock_transport({"error": {"message": "overloaded"}}, status_code=503)
        )
        thread = client.threads.create()
        client.messages.create(thread.id, content="Hello")

        with pytest.raises(ProviderError):
            await client.runs.create(thread.id)

        assert len(client.messages.list(thread.id)) == 1
        assert client.runs.list(thread.id).data == []
        await client.close()
