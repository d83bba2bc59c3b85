"""
geminikit 에러 클래스
- 스레드/런/메시지 조회 실패 (NotFoundError, OwnershipMismatchError)
- Gemini API HTTP 에러를 의미 있는 예외로 래핑 (ProviderError 계열)
- 재시도 가능 여부(retryable) 판별 포함 (재시도 자체는 호출자 몫)
"""

from __future__ import annotations

# 재시도 대상 HTTP 상태 코드
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class GeminiError(Exception):
    """geminikit 에서 발생하는 모든 예외의 베이스"""


class ConfigurationError(GeminiError):
    """API 키 누락 등 클라이언트 설정 오류"""


class NotFoundError(GeminiError):
    """
    존재하지 않는 thread / run / message 식별자 조회

    Attributes:
        kind: 'thread', 'run', 'message' 중 하나
        id: 찾지 못한 식별자
    """

    def __init__(self, kind: str, id: str):
        self.kind = kind
        self.id = id
        super().__init__(f"{kind} not found: {id}")


class OwnershipMismatchError(GeminiError):
    """run 은 존재하지만 요청한 thread 소속이 아님"""

    def __init__(self, run_id: str, thread_id: str, owner_thread_id: str):
        self.run_id = run_id
        self.thread_id = thread_id
        self.owner_thread_id = owner_thread_id
        super().__init__(
            f"run {run_id} does not belong to thread {thread_id}"
            f" (owner: {owner_thread_id})"
        )


class ProviderError(GeminiError):
    """
    Gemini API 호출 실패 시 발생하는 예외

    Attributes:
        status_code: HTTP 상태 코드 (네트워크 에러는 0)
        message: 에러 메시지
        retryable: 재시도 가능 여부 (429, 5xx, 네트워크 에러)
        body: 에러 응답 원문 (있으면)
    """

    provider = "gemini"

    def __init__(
        self,
        status_code: int,
        message: str,
        retryable: bool | None = None,
        body: object = None,
    ):
        self.status_code = status_code
        self.message = message
        self.body = body
        self.retryable = (
            retryable
            if retryable is not None
            else status_code in RETRYABLE_STATUS_CODES
        )
        super().__init__(
            f"[{self.provider}] API error {status_code}: {message}"
            f" (retryable={self.retryable})"
        )


class AuthenticationError(ProviderError):
    """401 / 403"""


class RateLimitError(ProviderError):
    """429"""


class InvalidRequestError(ProviderError):
    """400 / 404 / 422"""


def error_for_status(
    status_code: int, message: str, body: object = None
) -> ProviderError:
    """상태 코드에 맞는 ProviderError 서브클래스 인스턴스 생성"""
    if status_code in (401, 403):
        cls: type[ProviderError] = AuthenticationError
    elif status_code == 429:
        cls = RateLimitError
    elif status_code in (400, 404, 422):
        cls = InvalidRequestError
    else:
        cls = ProviderError
    return cls(status_code=status_code, message=message, body=body)
