"""
Chat Invoker
- (model, 순서 있는 role/parts 턴 목록) → generateContent 1회 호출
- 결과를 ChatResult 로 정규화: text=None 은 candidates 없음, "" 은 빈 응답
- 재시도하지 않는다. 실패는 ProviderError 로 전파
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .response import GeminiResponse

if TYPE_CHECKING:
    from .client import GeminiClient


@dataclass(frozen=True, slots=True)
class ChatResult:
    """Chat Invoker 호출 결과"""

    text: str | None
    response: GeminiResponse

    @property
    def has_reply(self) -> bool:
        return bool(self.text)


@runtime_checkable
class ChatInvoker(Protocol):
    """Runs 가 사용하는 텍스트 생성 경계."""

    async def invoke(
        self,
        model: str,
        turns: list[dict[str, Any]],
        system_instruction: str | None = None,
    ) -> ChatResult:
        ...


class GeminiChatInvoker:
    """GeminiClient.chat() 을 사용하는 기본 ChatInvoker 구현"""

    def __init__(self, client: GeminiClient):
        self._client = client

    async def invoke(
        self,
        model: str,
        turns: list[dict[str, Any]],
        system_instruction: str | None = None,
    ) -> ChatResult:
        body: dict[str, Any] = {"contents": turns}
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        response = await self._client.chat(body, model=model)
        return ChatResult(text=response.text, response=response)
