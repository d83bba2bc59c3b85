"""
이미지 생성 / 편집
- Gemini 이미지 모델: generateContent + responseModalities=["Image"]
- Imagen 모델(imagen-*): :predict 엔드포인트
- 입력 이미지가 있으면 텍스트 + 이미지 part 로 편집 요청
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any

from ._mime import guess_mime_type
from .response import GeminiResponse

if TYPE_CHECKING:
    from .client import GeminiClient

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_IMAGEN_MODEL = "imagen-3.0-generate-002"

# size 문자열 → Imagen aspectRatio
_ASPECT_RATIOS = {
    "1:1": ("256x256", "512x512", "1024x1024"),
    "3:4": ("256x384", "512x768", "1024x1536"),
    "4:3": ("384x256", "768x512", "1536x1024"),
    "9:16": ("256x448", "512x896", "1024x1792"),
    "16:9": ("448x256", "896x512", "1792x1024"),
}


def aspect_ratio_for(size: str | None) -> str | None:
    """'1024x1024' 또는 '16:9' 형태의 size 를 aspectRatio 로 변환 (미지원 값은 1:1)"""
    if not size:
        return None
    if size in _ASPECT_RATIOS:
        return size
    for ratio, sizes in _ASPECT_RATIOS.items():
        if size in sizes:
            return ratio
    return "1:1"


ImageInput = str | Path | IO[bytes] | dict[str, str]


class Images:
    """
    이미지 생성 리소스

    사용법:
        response = await client.images.generate("고양이 픽셀 아트")
        response.save_image("cat.png")

        edited = await client.images.generate(
            "배경을 바다로 바꿔줘", images=["photo.jpg"]
        )
    """

    def __init__(self, client: GeminiClient):
        self._client = client

    async def generate(
        self,
        prompt: str,
        model: str = DEFAULT_IMAGE_MODEL,
        *,
        images: list[ImageInput] | None = None,
        size: str | None = None,
        n: int = 1,
        person_generation: str = "ALLOW_ADULT",
        temperature: float | None = None,
        **extra: Any,
    ) -> GeminiResponse:
        """
        이미지 생성

        Args:
            prompt: 생성/편집 지시문
            model: imagen-* 이면 predict, 그 외는 generateContent
            images: 편집용 입력 이미지 (경로, 파일 객체, {"data", "mime_type"} dict)
            size: Imagen aspectRatio 로 변환되는 크기
            n: Imagen sampleCount (1~4 로 제한)
        """
        if not prompt:
            raise ValueError("prompt 가 필요합니다.")

        if images:
            return await self._generate_with_images(prompt, model, images, temperature, extra)
        if model.startswith("imagen"):
            return await self._imagen_generate(prompt, model, size, n, person_generation)

        body: dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseModalities": ["Image"]},
            **extra,
        }
        data = await self._client.json_post(f"models/{model}:generateContent", body)
        return GeminiResponse.from_api_response(data)

    async def _generate_with_images(
        self,
        prompt: str,
        model: str,
        images: list[ImageInput],
        temperature: float | None,
        extra: dict[str, Any],
    ) -> GeminiResponse:
        parts: list[dict[str, Any]] = [{"text": prompt}]
        parts.extend({"inline_data": _encode_image(image)} for image in images)

        generation_config: dict[str, Any] = {"responseModalities": ["Image"]}
        if temperature is not None:
            generation_config["temperature"] = temperature

        body = {
            "contents": [{"parts": parts}],
            "generationConfig": generation_config,
            **extra,
        }
        data = await self._client.json_post(f"models/{model}:generateContent", body)
        return GeminiResponse.from_api_response(data)

    async def _imagen_generate(
        self,
        prompt: str,
        model: str,
        size: str | None,
        n: int,
        person_generation: str,
    ) -> GeminiResponse:
        parameters: dict[str, Any] = {
            "sampleCount": max(1, min(int(n), 4)),
            "personGeneration": person_generation,
        }
        ratio = aspect_ratio_for(size)
        if ratio:
            parameters["aspectRatio"] = ratio

        body = {"instances": [{"prompt": prompt}], "parameters": parameters}
        data = await self._client.json_post(f"models/{model}:predict", body)
        return GeminiResponse.from_api_response(data)


def _encode_image(image: ImageInput) -> dict[str, str]:
    """입력 이미지를 inline_data({"mime_type", "data"}) 로 변환"""
    if isinstance(image, dict):
        return {
            "mime_type": image.get("mime_type", "image/jpeg"),
            "data": image["data"],
        }
    if isinstance(image, (str, Path)):
        path = Path(image)
        if not path.exists():
            raise ValueError(f"파일이 존재하지 않습니다: {path}")
        raw = path.read_bytes()
        mime_type = guess_mime_type(path, default="image/jpeg")
    elif hasattr(image, "read"):
        if hasattr(image, "seek"):
            image.seek(0)
        raw = image.read()
        mime_type = guess_mime_type(getattr(image, "name", ""), default="image/jpeg")
    else:
        raise ValueError(f"지원하지 않는 이미지 입력입니다: {type(image).__name__}")
    return {"mime_type": mime_type, "data": base64.b64encode(raw).decode("ascii")}
