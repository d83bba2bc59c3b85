"""
Threads 레지스트리 테스트
python -m pytest tests/test_threads.py -v
"""

import pytest

from geminikit.errors import NotFoundError
from geminikit.threads import DEFAULT_THREAD_MODEL, Threads


class TestThreadsCreate:
    def test_create_defaults(self):
        threads = Threads()
        thread = threads.create()
        assert thread.id.startswith("thread_")
        assert thread.object == "thread"
        assert thread.metadata == {}
        assert thread.model == DEFAULT_THREAD_MODEL
        assert isinstance(thread.created_at, int)

    def test_create_with_metadata_and_model(self):
        threads = Threads()
        thread = threads.create(metadata={"user": "123"}, model="gemini-2.5-pro")
        fetched = threads.retrieve(thread.id)
        assert fetched.metadata == {"user": "123"}
        assert fetched.model == "gemini-2.5-pro"
        assert threads.get_model(thread.id) == "gemini-2.5-pro"

    def test_retrieve_round_trip_keeps_created_at(self):
        threads = Threads()
        thread = threads.create(metadata={"user": "123"}, model="gemini-2.5-pro")
        fetched = threads.retrieve(thread.id)
        assert fetched.id == thread.id
        assert fetched.created_at == thread.created_at
        assert fetched == thread

    def test_unknown_id_raises_everywhere(self):
        """한 번도 생성되지 않은 id 는 모든 조회/변경에서 NotFoundError"""
        threads = Threads()
        threads.create()
        for operation in (
            threads.retrieve,
            threads.delete,
            threads.get_model,
            lambda id: threads.modify(id, metadata={"a": 1}),
        ):
            with pytest.raises(NotFoundError) as exc_info:
                operation("thread_never_created")
            assert exc_info.value.id == "thread_never_created"

    def test_custom_default_model(self):
        threads = Threads(default_model="gemini-2.0-flash")
        assert threads.create().model == "gemini-2.0-flash"

    def test_ids_are_unique(self):
        threads = Threads()
        ids = {threads.create().id for _ in range(50)}
        assert len(ids) == 50
        assert len(threads) == 50

    def test_metadata_is_copied(self):
        """호출자가 넘긴 dict 를 바꿔도 레지스트리에 영향 없음"""
        threads = Threads()
        metadata = {"tags": ["a"]}
        thread = threads.create(metadata=metadata)
        metadata["tags"].append("b")
        assert threads.retrieve(thread.id).metadata == {"tags": ["a"]}

    def test_returned_snapshot_is_detached(self):
        threads = Threads()
        thread = threads.create(metadata={"k": "v"})
        thread.metadata["k"] = "changed"
        assert threads.retrieve(thread.id).metadata == {"k": "v"}


class TestThreadsModify:
    def test_modify_replaces_metadata(self):
        threads = Threads()
        thread = threads.create(metadata={"a": 1, "b": 2})
        updated = threads.modify(thread.id, metadata={"c": 3})
        assert updated.metadata == {"c": 3}
        assert threads.retrieve(thread.id).metadata == {"c": 3}

    def test_modify_model_only_keeps_metadata(self):
        threads = Threads()
        thread = threads.create(metadata={"a": 1})
        updated = threads.modify(thread.id, model="gemini-2.5-pro")
        assert updated.model == "gemini-2.5-pro"
        assert updated.metadata == {"a": 1}

    def test_modify_unknown_thread(self):
        with pytest.raises(NotFoundError) as exc_info:
            Threads().modify("thread_missing", metadata={})
        assert exc_info.value.kind == "thread"
        assert exc_info.value.id == "thread_missing"


class TestThreadsDelete:
    def test_delete(self):
        threads = Threads()
        thread = threads.create()
        result = threads.delete(thread.id)
        assert result.id == thread.id
        assert result.deleted is True
        assert result.object == "thread.deleted"
        assert thread.id not in threads

    def test_retrieve_after_delete_raises(self):
        threads = Threads()
        thread = threads.create()
        threads.delete(thread.id)
        with pytest.raises(NotFoundError):
            threads.retrieve(thread.id)
        with pytest.raises(NotFoundError):
            threads.get_model(thread.id)

    def test_delete_twice_raises(self):
        threads = Threads()
        thread = threads.create()
        threads.delete(thread.id)
        with pytest.raises(NotFoundError, match="thread not found"):
            threads.delete(thread.id)

    def test_delete_does_not_touch_other_threads(self):
        threads = Threads()
        keep = threads.create(metadata={"keep": True})
        drop = threads.create()
        threads.delete(drop.id)
        assert threads.retrieve(keep.id).metadata == {"keep": True}
