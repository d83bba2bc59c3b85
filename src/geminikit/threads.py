"""
인메모리 Thread 레지스트리
- thread id → 스레드 상태(생성 시각, metadata, model, 메시지 로그, 런 기록)
- 메시지 로그는 append-only, 삽입 순서 = 대화 히스토리 순서
- 외부에는 ThreadObject 스냅샷만 노출 (내부 상태 직접 변경 불가)
- 스레드별 asyncio.Lock 으로 run 실행을 직렬화
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from .errors import NotFoundError
from .models import MessageObject, RunObject, ThreadDeleted, ThreadObject

logger = logging.getLogger(__name__)

DEFAULT_THREAD_MODEL = "gemini-2.5-flash"


def _now() -> int:
    return int(time.time())


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


@dataclass
class _ThreadState:
    """레지스트리 내부 스레드 상태"""

    id: str
    created_at: int
    metadata: dict[str, Any]
    model: str
    messages: list[MessageObject] = field(default_factory=list)
    runs: dict[str, RunObject] = field(default_factory=dict)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def describe(self) -> ThreadObject:
        return ThreadObject(
            id=self.id,
            created_at=self.created_at,
            metadata=copy.deepcopy(self.metadata),
            model=self.model,
        )


class Threads:
    """
    스레드 레지스트리

    사용법:
        threads = Threads()
        thread = threads.create(metadata={"user": "123"}, model="gemini-2.5-pro")
        threads.modify(thread.id, metadata={"user": "456"})
        threads.delete(thread.id)

    같은 프로세스 내 단일 이벤트 루프에서 공유된다고 가정한다.
    동기 메서드는 중간에 suspend 하지 않으므로 루프 안에서 원자적이다.
    """

    def __init__(self, default_model: str = DEFAULT_THREAD_MODEL):
        self.default_model = default_model
        self._threads: dict[str, _ThreadState] = {}
        # run id → 소유 thread id (스레드 삭제 시 함께 제거)
        self._run_owners: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._threads)

    def __contains__(self, thread_id: object) -> bool:
        return thread_id in self._threads

    # --- public API ---

    def create(
        self,
        metadata: dict[str, Any] | None = None,
        model: str | None = None,
    ) -> ThreadObject:
        """새 스레드 생성. metadata 기본값 {}, model 기본값 default_model"""
        thread_id = _new_id("thread")
        while thread_id in self._threads:
            thread_id = _new_id("thread")

        state = _ThreadState(
            id=thread_id,
            created_at=_now(),
            metadata=copy.deepcopy(metadata) if metadata is not None else {},
            model=model or self.default_model,
        )
        self._threads[thread_id] = state
        logger.debug(f"[threads] created {thread_id} (model={state.model})")
        return state.describe()

    def retrieve(self, id: str) -> ThreadObject:
        return self._state(id).describe()

    def modify(
        self,
        id: str,
        metadata: dict[str, Any] | None = None,
        model: str | None = None,
    ) -> ThreadObject:
        """
        metadata / model 갱신

        None 인 필드는 그대로 둔다. metadata 는 병합이 아니라 교체된다.
        """
        state = self._state(id)
        if metadata is not None:
            state.metadata = copy.deepcopy(metadata)
        if model is not None:
            state.model = model
        return state.describe()

    def delete(self, id: str) -> ThreadDeleted:
        """스레드와 메시지 로그, 런 기록을 모두 제거"""
        state = self._threads.pop(id, None)
        if state is None:
            raise NotFoundError("thread", id)
        for run_id in state.runs:
            self._run_owners.pop(run_id, None)
        logger.debug(
            f"[threads] deleted {id} ({len(state.messages)} messages, {len(state.runs)} runs)"
        )
        return ThreadDeleted(id=id)

    def get_model(self, id: str) -> str:
        return self._state(id).model

    # --- Messages / Runs 전용 내부 API ---

    def _state(self, id: str) -> _ThreadState:
        state = self._threads.get(id)
        if state is None:
            raise NotFoundError("thread", id)
        return state

    def _append_message(self, thread_id: str, role: str, content: Any) -> MessageObject:
        state = self._state(thread_id)
        message = MessageObject(
            id=_new_id("msg"),
            created_at=_now(),
            thread_id=thread_id,
            role=role,
            content=copy.deepcopy(content),
        )
        state.messages.append(message)
        return message

    def _messages(self, thread_id: str) -> list[MessageObject]:
        return [m.model_copy(deep=True) for m in self._state(thread_id).messages]

    def _record_run(self, run: RunObject) -> None:
        state = self._state(run.thread_id)
        state.runs[run.id] = run
        self._run_owners[run.id] = run.thread_id

    def _run_owner(self, run_id: str) -> str | None:
        return self._run_owners.get(run_id)

    def _lock(self, thread_id: str) -> asyncio.Lock:
        return self._state(thread_id).lock
