"""
generateContent / predict 응답 래퍼
- raw JSON 을 그대로 보관하고 편의 프로퍼티로 꺼내 쓴다
- candidates 가 비어 있으면 valid=False, text=None (빈 문자열과 구분)
- 이미지 응답(inlineData, Imagen predictions) 추출 및 파일 저장
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _inline_data(part: dict[str, Any]) -> dict[str, Any] | None:
    """inlineData / inline_data 양쪽 표기를 흡수"""
    data = part.get("inlineData") or part.get("inline_data")
    return data if isinstance(data, dict) else None


def _mime_of(inline: dict[str, Any]) -> str:
    return str(inline.get("mimeType") or inline.get("mime_type") or "")


class GeminiResponse(BaseModel):
    """
    Gemini API 응답 구조체

    사용법:
        response = await client.generate_content("안녕")
        print(response.text)
    """
    raw: Any = None

    @classmethod
    def from_api_response(cls, data: Any) -> GeminiResponse:
        return cls(raw=data)

    # --- 유효성 ---

    @property
    def valid(self) -> bool:
        """candidates 또는 predictions 가 하나 이상 있는지"""
        if not isinstance(self.raw, dict):
            return False
        return bool(self.raw.get("candidates")) or bool(self.raw.get("predictions"))

    @property
    def success(self) -> bool:
        return self.valid and "error" not in self.raw

    @property
    def error(self) -> str | None:
        """에러 메시지. 유효한 응답이거나 빈 응답이면 None"""
        if self.valid or not self.raw:
            return None
        if isinstance(self.raw, dict):
            err = self.raw.get("error")
            if isinstance(err, dict) and err.get("message"):
                return str(err["message"])
        return "Unknown error"

    # --- candidates / parts ---

    @property
    def candidates(self) -> list[dict[str, Any]]:
        if not isinstance(self.raw, dict):
            return []
        return self.raw.get("candidates") or []

    @property
    def first_candidate(self) -> dict[str, Any] | None:
        candidates = self.candidates
        return candidates[0] if candidates else None

    @property
    def parts(self) -> list[dict[str, Any]]:
        candidate = self.first_candidate
        if not candidate:
            return []
        return (candidate.get("content") or {}).get("parts") or []

    @property
    def text_parts(self) -> list[str]:
        return [p["text"] for p in self.parts if "text" in p]

    @property
    def text(self) -> str | None:
        """첫 번째 candidate 의 텍스트 part 를 개행으로 합친 값"""
        if not self.valid:
            return None
        return "\n".join(self.text_parts)

    @property
    def role(self) -> str | None:
        candidate = self.first_candidate
        if not candidate:
            return None
        return (candidate.get("content") or {}).get("role")

    @property
    def finish_reason(self) -> str | None:
        candidate = self.first_candidate
        return candidate.get("finishReason") if candidate else None

    @property
    def safety_blocked(self) -> bool:
        return self.finish_reason == "SAFETY"

    @property
    def safety_ratings(self) -> list[dict[str, Any]]:
        candidate = self.first_candidate
        return (candidate.get("safetyRatings") or []) if candidate else []

    @property
    def function_calls(self) -> list[dict[str, Any]]:
        return [p["functionCall"] for p in self.parts if "functionCall" in p]

    # --- usage ---

    @property
    def usage(self) -> dict[str, Any]:
        if not isinstance(self.raw, dict):
            return {}
        return self.raw.get("usageMetadata") or {}

    @property
    def prompt_tokens(self) -> int:
        return int(self.usage.get("promptTokenCount", 0))

    @property
    def completion_tokens(self) -> int:
        return int(self.usage.get("candidatesTokenCount", 0))

    @property
    def total_tokens(self) -> int:
        return int(self.usage.get("totalTokenCount", 0))

    # --- 이미지 ---

    @property
    def image_parts(self) -> list[dict[str, Any]]:
        """이미지 inline data part 목록"""
        if not self.valid:
            return []
        return [
            part
            for part in self.parts
            if (inline := _inline_data(part)) and _mime_of(inline).startswith("image/")
        ]

    @property
    def image_urls(self) -> list[str]:
        if not self.valid:
            return []
        return [
            part["image_url"]["url"]
            for part in self.parts
            if isinstance(part.get("image_url"), dict) and part["image_url"].get("url")
        ]

    @property
    def full_content(self) -> str:
        """모든 part 를 문자열로 표현 (이미지는 [IMAGE: mime] 자리표시)"""
        lines = []
        for part in self.parts:
            inline = _inline_data(part)
            if "text" in part:
                lines.append(part["text"])
            elif inline and _mime_of(inline).startswith("image/"):
                lines.append(f"[IMAGE: {_mime_of(inline)}]")
            else:
                lines.append("[UNKNOWN CONTENT]")
        return "\n".join(lines)

    @property
    def images(self) -> list[str]:
        """base64 이미지 데이터 목록 (Gemini inlineData 또는 Imagen predictions)"""
        found: list[str] = []
        for part in self.parts:
            inline = _inline_data(part)
            if inline and _mime_of(inline).startswith("image/") and inline.get("data"):
                found.append(inline["data"])
        if found or not isinstance(self.raw, dict):
            return found
        for prediction in self.raw.get("predictions") or []:
            if prediction.get("bytesBase64Encoded"):
                found.append(prediction["bytesBase64Encoded"])
        return found

    @property
    def image(self) -> str | None:
        images = self.images
        return images[0] if images else None

    @property
    def image_mime_types(self) -> list[str]:
        mimes = []
        for part in self.parts:
            inline = _inline_data(part)
            if inline and _mime_of(inline).startswith("image/"):
                mimes.append(_mime_of(inline))
        if mimes:
            return mimes
        # Imagen 은 PNG 고정
        return ["image/png"] * len(self.images)

    def save_images(self, filepaths: list[str | Path]) -> list[Path | None]:
        """
        이미지를 순서대로 파일에 저장

        경로와 이미지 개수가 다르면 짧은 쪽에 맞춘다.
        디코딩 실패한 항목은 None.
        """
        saved: list[Path | None] = []
        for path, data in zip(filepaths, self.images):
            if "base64," in data:
                data = data.split("base64,", 1)[1]
            try:
                decoded = base64.b64decode(data, validate=True)
            except (binascii.Error, ValueError) as e:
                logger.warning(f"이미지 디코딩 실패 ({path}): {e}")
                saved.append(None)
                continue
            target = Path(path)
            target.write_bytes(decoded)
            saved.append(target)
        return saved

    def save_image(self, filepath: str | Path) -> Path | None:
        saved = self.save_images([filepath])
        return saved[0] if saved else None

    # --- 구조화 출력 ---

    def json_data(self) -> Any:
        """텍스트가 JSON 객체/배열이면 파싱 결과, 아니면 None"""
        text = self.text
        if not text:
            return None
        stripped = text.strip()
        if not stripped.startswith(("{", "[")):
            return None
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            return None

    def as_model(self, model_cls: type[ModelT]) -> ModelT | None:
        """JSON 텍스트를 Pydantic 모델로 검증. 실패 시 None"""
        data = self.json_data()
        if not isinstance(data, dict):
            return None
        try:
            return model_cls.model_validate(data)
        except ValidationError as e:
            logger.debug(f"{model_cls.__name__} 검증 실패: {e}")
            return None

    def as_model_list(self, model_cls: type[ModelT]) -> list[ModelT]:
        data = self.json_data()
        if not isinstance(data, list):
            return []
        try:
            return [model_cls.model_validate(item) for item in data]
        except ValidationError as e:
            logger.debug(f"{model_cls.__name__} 목록 검증 실패: {e}")
            return []

    @property
    def is_json(self) -> bool:
        return self.json_data() is not None

    def as_json_with_keys(self, *keys: str) -> list[dict[str, Any]]:
        """JSON 배열의 각 객체에서 keys 에 해당하는 항목만 남긴다. 배열이 아니면 []"""
        data = self.json_data()
        if not isinstance(data, list):
            return []
        return [
            {key: item[key] for key in keys if key in item}
            for item in data
            if isinstance(item, dict)
        ]

    def to_formatted_json(self, pretty: bool = False) -> str | None:
        data = self.json_data()
        if data is None:
            return None
        if pretty:
            return json.dumps(data, ensure_ascii=False, indent=2)
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"))

    def __str__(self) -> str:
        return self.text or self.error or "Empty response"


class StreamChunk(BaseModel):
    """
    스트리밍 응답 청크

    delta_text 는 텍스트가 없는 청크(메타데이터 등)에서 빈 문자열.
    """
    delta_text: str = ""
    raw: dict[str, Any] = {}

    @classmethod
    def from_api_chunk(cls, data: dict[str, Any]) -> StreamChunk:
        parts = GeminiResponse(raw=data).parts
        text = parts[0].get("text", "") if parts else ""
        return cls(delta_text=text or "", raw=data)
