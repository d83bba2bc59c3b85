"""
geminikit: Gemini API 비동기 클라이언트와 인메모리 Thread/Message/Run 대화 관리
"""

from ._types import ClientConfig, Interceptor
from .chat import ChatInvoker, ChatResult, GeminiChatInvoker
from .client import GeminiClient, MultimodalResult, UploadedFileResult
from .errors import (
    AuthenticationError,
    ConfigurationError,
    GeminiError,
    InvalidRequestError,
    NotFoundError,
    OwnershipMismatchError,
    ProviderError,
    RateLimitError,
)
from .files import FileRef
from .logging import setup_logging
from .messages import Messages
from .models import (
    MessageList,
    MessageObject,
    RunList,
    RunObject,
    ThreadDeleted,
    ThreadObject,
)
from .response import GeminiResponse, StreamChunk
from .runs import Runs
from .threads import Threads
from .tools import ToolDefinition

__version__ = "0.1.0"

__all__ = [
    "GeminiClient",
    "ClientConfig",
    "Interceptor",
    "MultimodalResult",
    "UploadedFileResult",
    "Threads",
    "Messages",
    "Runs",
    "ChatInvoker",
    "ChatResult",
    "GeminiChatInvoker",
    "GeminiResponse",
    "StreamChunk",
    "FileRef",
    "ThreadObject",
    "ThreadDeleted",
    "MessageObject",
    "MessageList",
    "RunObject",
    "RunList",
    "ToolDefinition",
    "GeminiError",
    "ConfigurationError",
    "NotFoundError",
    "OwnershipMismatchError",
    "ProviderError",
    "AuthenticationError",
    "RateLimitError",
    "InvalidRequestError",
    "setup_logging",
    "__version__",
]
