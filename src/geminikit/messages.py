"""
스레드 메시지 저장소
- Threads 레지스트리에 속한 append-only 메시지 로그의 공개 인터페이스
"""

from __future__ import annotations

from typing import Any, get_args

from .errors import NotFoundError
from .models import MessageContent, MessageList, MessageObject, Role
from .threads import Threads

_ROLES = get_args(Role)


class Messages:
    """
    사용법:
        messages = Messages(threads)
        messages.create(thread.id, role="user", content="Hello")
        for m in messages.list(thread.id).data:
            print(m.role, m.text())
    """

    def __init__(self, threads: Threads):
        self._threads = threads

    def create(
        self,
        thread_id: str,
        role: Role = "user",
        content: MessageContent = "",
    ) -> MessageObject:
        """메시지를 로그 끝에 추가"""
        if role not in _ROLES:
            raise ValueError(f"role 은 {_ROLES} 중 하나여야 합니다: {role!r}")
        return self._threads._append_message(thread_id, role, content)

    def list(self, thread_id: str) -> MessageList:
        """전체 히스토리 (삽입 순서)"""
        return MessageList(data=self._threads._messages(thread_id))

    def retrieve(self, thread_id: str, id: str) -> MessageObject:
        for message in self._threads._messages(thread_id):
            if message.id == id:
                return message
        raise NotFoundError("message", id)

    def turns(self, thread_id: str) -> list[dict[str, Any]]:
        """generateContent contents 포맷 히스토리"""
        return [m.to_turn() for m in self._threads._messages(thread_id)]
