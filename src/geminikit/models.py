"""
Thread / Message / Run 디스크립터 모델
- OpenAI Assistants 스타일 객체 포맷을 Pydantic 으로 표현
- 레지스트리 내부 상태가 아니라 호출자에게 돌려주는 스냅샷
- Message.to_turn() 으로 generateContent 의 contents 항목 변환
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

Role = Literal["user", "model"]
RunStatus = Literal["completed"]

# 텍스트 또는 Gemini parts 리스트 (file_data, inline_data 등)
MessageContent = str | list[dict[str, Any]]


class ThreadObject(BaseModel):
    """스레드 디스크립터"""
    id: str
    object: Literal["thread"] = "thread"
    created_at: int
    metadata: dict[str, Any] = Field(default_factory=dict)
    model: str


class ThreadDeleted(BaseModel):
    """스레드 삭제 결과"""
    id: str
    object: Literal["thread.deleted"] = "thread.deleted"
    deleted: bool = True


class MessageObject(BaseModel):
    """스레드에 속한 메시지 한 건"""
    id: str
    object: Literal["thread.message"] = "thread.message"
    created_at: int
    thread_id: str
    role: Role
    content: MessageContent

    def to_turn(self) -> dict[str, Any]:
        """generateContent contents 항목 포맷으로 직렬화"""
        if isinstance(self.content, str):
            parts: list[dict[str, Any]] = [{"text": self.content}]
        else:
            parts = list(self.content)
        return {"role": self.role, "parts": parts}

    def text(self) -> str:
        """텍스트 part 만 합쳐서 반환"""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(p["text"] for p in self.content if "text" in p)


class MessageList(BaseModel):
    """메시지 목록 (삽입 순서)"""
    object: Literal["list"] = "list"
    data: list[MessageObject]

    def __len__(self) -> int:
        return len(self.data)

    @property
    def first_id(self) -> str | None:
        return self.data[0].id if self.data else None

    @property
    def last_id(self) -> str | None:
        return self.data[-1].id if self.data else None


class RunObject(BaseModel):
    """
    런 디스크립터

    response 는 Runs.create() 가 돌려주는 객체에만 채워지고,
    retrieve()/list() 결과에는 포함되지 않는다.
    """
    id: str
    object: Literal["thread.run"] = "thread.run"
    created_at: int
    thread_id: str
    status: RunStatus = "completed"
    model: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    response: dict[str, Any] | None = Field(default=None, exclude=True)


class RunList(BaseModel):
    """런 목록 (생성 순서)"""
    object: Literal["list"] = "list"
    data: list[RunObject]
