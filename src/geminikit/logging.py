"""
geminikit 로깅 설정
- setup_logging(): geminikit 로거 + httpx/httpcore 전송 로거를 한 번에 설정
- API 키는 key 쿼리 파라미터로 전송되므로 로그 출력 전에 마스킹
- JSON 포맷은 thread_id / run_id / model / status_code 등 extra 필드를 함께 기록
- log_message(): ClientConfig.log_errors 가 켜졌을 때 업스트림 에러 본문 기록
"""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import IO, Literal

GEMINIKIT_LOGGER_NAME = "geminikit"

# httpx 는 INFO 레벨에서 요청 URL(…?key=…)을 그대로 남긴다
TRANSPORT_LOGGER_NAMES = ("httpx", "httpcore")

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# JSON 로그에 그대로 옮겨 담는 LogRecord extra 필드
CONTEXT_FIELDS = ("thread_id", "run_id", "model", "status_code", "path")

_KEY_PATTERN = re.compile(r"([?&]key=)[^&\s'\"]+")
REDACTED = "[REDACTED]"


def redact(text: str) -> str:
    """URL 의 key=… 쿼리 값을 가린다."""
    return _KEY_PATTERN.sub(rf"\1{REDACTED}", text)


class RedactKeyFilter(logging.Filter):
    """포맷 전에 메시지의 API 키를 가리는 필터 (항상 통과)"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = redact(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """한 줄 JSON 로그. extra 로 넘긴 컨텍스트 필드를 포함한다."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": self.formatTime(record, DEFAULT_DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _to_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _build_handler(format: str, stream: IO[str] | None) -> logging.Handler:
    handler = logging.StreamHandler(stream or sys.stderr)
    if format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT))
    handler.addFilter(RedactKeyFilter())
    return handler


def setup_logging(
    level: int | str = logging.INFO,
    format: Literal["text", "json"] = "text",
    stream: IO[str] | None = None,
    *,
    transport_level: int | str = logging.WARNING,
) -> logging.Logger:
    """
    geminikit 로거와 httpx/httpcore 로거를 같은 핸들러로 설정한다.

    Args:
        level: geminikit 로그 레벨 (예: logging.DEBUG, "DEBUG")
        format: "text" 또는 "json"
        stream: 출력 스트림 (기본: sys.stderr)
        transport_level: httpx/httpcore 로그 레벨. 요청 URL 까지 보려면 "INFO"

    Returns:
        geminikit 로거
    """
    handler = _build_handler(format, stream)

    logger = logging.getLogger(GEMINIKIT_LOGGER_NAME)
    logger.setLevel(_to_level(level))
    logger.handlers = [handler]

    for name in TRANSPORT_LOGGER_NAMES:
        transport = logging.getLogger(name)
        transport.setLevel(_to_level(transport_level))
        transport.handlers = [handler]
        # 루트 로거로 중복 출력하지 않음
        transport.propagate = False

    return logger


def log_message(
    prefix: str,
    message: object,
    level: int = logging.WARNING,
    logger_name: str = GEMINIKIT_LOGGER_NAME,
    **context: object,
) -> None:
    """
    업스트림 에러 본문 등을 prefix 와 함께 기록한다.

    dict/list 본문은 JSON 으로 직렬화한다. context(status_code, path 등)는
    LogRecord extra 로 붙어 JSON 포맷에서 별도 필드가 된다.
    """
    if isinstance(message, (dict, list)):
        message = json.dumps(message, ensure_ascii=False)
    logging.getLogger(logger_name).log(
        level, "%s: %s", prefix, message, extra={k: v for k, v in context.items() if v is not None}
    )
