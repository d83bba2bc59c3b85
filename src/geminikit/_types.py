"""Interceptor 프로토콜 및 클라이언트 설정 타입 정의."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, runtime_checkable

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_UPLOAD_URL = "https://generativelanguage.googleapis.com/upload/v1beta/files"
DEFAULT_REQUEST_TIMEOUT = 120.0
DEFAULT_CONNECT_TIMEOUT = 10.0

_TRUTHY = {"1", "true", "yes", "on"}


@runtime_checkable
class Interceptor(Protocol):
    """JSON 요청 전후 가로채기 프로토콜.

    before_request / after_response 중 필요한 것만 구현하면 된다.
    """

    async def before_request(
        self,
        path: str,
        body: dict[str, Any],
    ) -> tuple[str, dict[str, Any]]:
        """요청 전 path 와 body 를 변환할 수 있다."""
        ...

    async def after_response(self, path: str, data: Any) -> Any:
        """응답 JSON 을 변환하거나 로깅할 수 있다."""
        ...


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """클라이언트 공통 설정."""

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    upload_url: str = DEFAULT_UPLOAD_URL
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    extra_headers: dict[str, str] = field(default_factory=dict)
    log_errors: bool = False
    interceptors: list[Interceptor] = field(default_factory=list)

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """GEMINI_* 환경변수에서 설정을 읽는다. overrides 가 우선한다."""
        values: dict[str, Any] = {}
        if os.environ.get("GEMINI_API_KEY"):
            values["api_key"] = os.environ["GEMINI_API_KEY"]
        if os.environ.get("GEMINI_BASE_URL"):
            values["base_url"] = os.environ["GEMINI_BASE_URL"].rstrip("/")
        if os.environ.get("GEMINI_REQUEST_TIMEOUT"):
            values["timeout"] = float(os.environ["GEMINI_REQUEST_TIMEOUT"])
        if os.environ.get("GEMINI_LOG_ERRORS"):
            values["log_errors"] = (
                os.environ["GEMINI_LOG_ERRORS"].lower() in _TRUTHY
            )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> ClientConfig:
        """None 이 아닌 값만 덮어쓴 새 설정을 반환한다."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values) if values else self
