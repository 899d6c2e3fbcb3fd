import json
import re
from typing import Iterator, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)

_CODE_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def first_json_object(text: str) -> Optional[str]:
    """Return the first top-level ``{...}`` in ``text`` that decodes as JSON."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            _, end = decoder.raw_decode(text, start)
            return text[start:end]
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
    return None


def json_candidates(text: str) -> Iterator[str]:
    """Yield JSON candidates in priority order: fenced block, embedded object, raw text."""
    block = _CODE_BLOCK.search(text)
    if block:
        yield block.group(1)
    obj = first_json_object(text)
    if obj is not None:
        yield obj
    yield text


def parse_model_output(text: str, schema: Type[T]) -> T:
    """Parse the first candidate in ``text`` that is valid JSON and matches ``schema``.

    Raises ``ValueError`` when no candidate both parses and validates.
    """
    if not text or not text.strip():
        raise ValueError("empty model response")

    last_error: Exception = None
    for candidate in json_candidates(text):
        try:
            return schema.model_validate(json.loads(candidate.strip()))
        except (json.JSONDecodeError, ValidationError) as e:
            last_error = e
    raise ValueError(f"no valid {schema.__name__} in model response: {last_error}")
