"""camelCase JSON serialization for API responses."""

from typing import Any, Iterable

from pydantic import BaseModel


def dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def dump_all(models: Iterable[BaseModel]) -> list[dict[str, Any]]:
    return [dump(m) for m in models]
