"""
Run 오케스트레이터
- 스레드 히스토리 → ChatInvoker 1회 호출 → model 메시지 추가 → RunObject 기록
- 동기적 실행: create() 가 반환되면 항상 status="completed"
- candidates 가 없거나 텍스트가 비면 메시지를 추가하지 않는다 (에러 아님)
- ProviderError 발생 시 run 도 메시지도 남기지 않는다
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from .chat import ChatInvoker
from .errors import NotFoundError, OwnershipMismatchError
from .models import RunList, RunObject
from .threads import Threads, _new_id, _now

logger = logging.getLogger(__name__)


class Runs:
    """
    사용법:
        runs = Runs(threads, GeminiChatInvoker(client))
        run = await runs.create(thread.id)
        runs.retrieve(thread.id, run.id)

    같은 스레드에 대한 create() 호출은 스레드 락으로 직렬화되어
    히스토리 읽기 → 호출 → 메시지 추가가 끼어들지 않는다.
    """

    def __init__(self, threads: Threads, invoker: ChatInvoker):
        self._threads = threads
        self._invoker = invoker

    async def create(
        self,
        thread_id: str,
        metadata: dict[str, Any] | None = None,
        model: str | None = None,
        system_instruction: str | None = None,
    ) -> RunObject:
        """
        스레드에 대해 한 턴을 실행

        Args:
            thread_id: 대상 스레드
            metadata: run 에 붙일 metadata (기본 {})
            model: 지정 시 스레드 model 대신 사용
            system_instruction: systemInstruction 으로 전달

        Raises:
            NotFoundError: 스레드가 없음
            ProviderError: generateContent 호출 실패
        """
        lock = self._threads._lock(thread_id)
        async with lock:
            effective_model = model or self._threads.get_model(thread_id)
            turns = [m.to_turn() for m in self._threads._messages(thread_id)]

            logger.debug(
                f"[runs] invoke: thread={thread_id}, model={effective_model}, "
                f"turns={len(turns)}",
                extra={"thread_id": thread_id, "model": effective_model},
            )
            result = await self._invoker.invoke(
                effective_model, turns, system_instruction=system_instruction
            )

            if result.has_reply:
                self._threads._append_message(thread_id, "model", result.text)
            else:
                logger.info(
                    f"[runs] thread={thread_id}: 응답 텍스트 없음, 메시지를 추가하지 않습니다.",
                    extra={"thread_id": thread_id, "model": effective_model},
                )

            run = RunObject(
                id=_new_id("run"),
                created_at=_now(),
                thread_id=thread_id,
                model=effective_model,
                metadata=copy.deepcopy(metadata) if metadata is not None else {},
            )
            self._threads._record_run(run)
            logger.debug(
                f"[runs] completed {run.id}",
                extra={"thread_id": thread_id, "run_id": run.id, "model": effective_model},
            )

        return run.model_copy(update={"response": result.response.raw}, deep=True)

    def retrieve(self, thread_id: str, id: str) -> RunObject:
        """
        Raises:
            NotFoundError: run id 가 없음
            OwnershipMismatchError: run 이 다른 스레드 소속
        """
        owner = self._threads._run_owner(id)
        if owner is None:
            raise NotFoundError("run", id)
        if owner != thread_id:
            raise OwnershipMismatchError(run_id=id, thread_id=thread_id, owner_thread_id=owner)
        return self._threads._state(thread_id).runs[id].model_copy(deep=True)

    def list(self, thread_id: str) -> RunList:
        runs = self._threads._state(thread_id).runs.values()
        return RunList(data=[r.model_copy(deep=True) for r in runs])
