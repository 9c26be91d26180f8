"""
Input Record Parsing

Engines accept either pydantic records or plain JSON-shaped dicts; both go
through parse_record so malformed input surfaces as a ValidationError.
"""
from typing import Any, Type, TypeVar

import pydantic

from clinical_scoring.utils import ValidationError

M = TypeVar("M", bound=pydantic.BaseModel)


def parse_record(model: Type[M], payload: Any) -> M:
    """Return ``payload`` as an instance of ``model``."""
    if isinstance(payload, model):
        return payload
    try:
        if isinstance(payload, pydantic.BaseModel):
            payload = payload.model_dump()
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        field_name = ".".join(str(p) for p in first.get("loc", ())) or "unknown"
        raise ValidationError(
            f"Invalid {model.__name__}: {first.get('msg', str(e))}",
            field=field_name,
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e
