"""Recovery of JSON objects from free-form model replies."""

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from api.exceptions import StructuredOutputError

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_OPEN = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```\s*$")


def strip_code_fence(text: str) -> str:
    """Remove a leading ```/```json fence and a trailing ``` fence."""
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text)).strip()


def extract_json_object(text: str) -> Any:
    """
    Parse a JSON value out of a model reply.

    Tries the fence-stripped reply as-is first, then the substring between
    the first ``{`` and the last ``}``.

    Raises:
        StructuredOutputError: neither attempt yields valid JSON
    """
    cleaned = strip_code_fence(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as first_error:
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end <= start:
            raise StructuredOutputError(f"no JSON object found ({first_error})", raw=text) from None
        try:
            return json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as e:
            raise StructuredOutputError(f"invalid JSON ({e})", raw=text) from None


def parse_structured_output(text: str, model: type[ModelT]) -> ModelT:
    """
    Recover and validate a structured reply.

    Raises:
        StructuredOutputError: the reply is not JSON or does not match ``model``
    """
    data = extract_json_object(text)
    if not isinstance(data, dict):
        raise StructuredOutputError(f"expected a JSON object, got {type(data).__name__}", raw=text)

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise StructuredOutputError(
            f"{model.__name__} validation failed on: {fields}", raw=text
        ) from e
