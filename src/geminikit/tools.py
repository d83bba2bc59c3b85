"""
Function calling 용 tool 정의 빌더
- function_declarations 구성 (직접 property 추가 또는 Pydantic 모델에서 추출)
- 여러 정의를 + 로 병합
"""

from __future__ import annotations

import copy
from typing import Any

from pydantic import BaseModel


def _strip_titles(schema: dict[str, Any]) -> dict[str, Any]:
    """Pydantic 이 붙이는 title 제거 (LLM에 불필요)"""
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        if isinstance(prop, dict):
            prop.pop("title", None)
    return schema


class ToolDefinition:
    """
    사용법:
        tools = ToolDefinition()
        tools.function("get_weather", "지역 날씨 조회")
        tools.property("location", "string", "도시 이름", required=True)

        class SearchInput(BaseModel):
            query: str = Field(description="검색어")

        tools.from_model("web_search", "웹 검색", SearchInput)

        await client.generate_content("서울 날씨?", tools=[tools.to_dict()])
    """

    def __init__(self) -> None:
        self._functions: dict[str, dict[str, Any]] = {}
        self._current: str | None = None

    def function(self, name: str, description: str) -> ToolDefinition:
        """함수 선언 추가. 이후 property() 는 이 함수에 붙는다. 체이닝 가능."""
        self._functions[name] = {
            "name": name,
            "description": description,
            "parameters": {"type": "object", "properties": {}, "required": []},
        }
        self._current = name
        return self

    add_function = function

    def property(
        self,
        name: str,
        type: str,
        description: str,
        required: bool = False,
    ) -> ToolDefinition:
        if self._current is None:
            raise ValueError("property() 는 function() 호출 이후에만 사용할 수 있습니다.")
        params = self._functions[self._current]["parameters"]
        params["properties"][name] = {"type": str(type), "description": description}
        if required:
            params["required"].append(name)
        return self

    def from_model(
        self, name: str, description: str, model: type[BaseModel]
    ) -> ToolDefinition:
        """Pydantic 모델의 JSON Schema 를 parameters 로 사용"""
        schema = _strip_titles(model.model_json_schema())
        schema.setdefault("required", [])
        self._functions[name] = {
            "name": name,
            "description": description,
            "parameters": schema,
        }
        self._current = None
        return self

    def delete_function(self, name: str) -> dict[str, Any] | None:
        if self._current == name:
            self._current = None
        return self._functions.pop(name, None)

    def list_functions(self) -> list[str]:
        return list(self._functions)

    def __len__(self) -> int:
        return len(self._functions)

    def __add__(self, other: ToolDefinition) -> ToolDefinition:
        if not isinstance(other, ToolDefinition):
            return NotImplemented
        merged = ToolDefinition()
        merged._functions = copy.deepcopy(self._functions)
        merged._functions.update(copy.deepcopy(other._functions))
        return merged

    def to_dict(self) -> dict[str, Any]:
        return {"function_declarations": copy.deepcopy(list(self._functions.values()))}
