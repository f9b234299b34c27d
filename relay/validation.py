"""Schema validation that reports every failing field as a ValidationError."""

from typing import TypeVar

import pydantic

from relay.errors import ValidationError

M = TypeVar("M", bound=pydantic.BaseModel)


def validate_with(model: type[M], data: object, label: str) -> M:
    """Validate decoded data against ``model``, listing every failing field."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        errors = [
            {"loc": list(err["loc"]), "type": err["type"], "msg": err["msg"]}
            for err in e.errors(include_url=False)
        ]
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) or "<root>" for err in errors
        )
        raise ValidationError(f"Not valid {label} data: {fields}", errors=errors) from e
