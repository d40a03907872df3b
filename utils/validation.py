import pydantic
from flask import request

from utils.errors import ValidationError


def _field_errors(exc: pydantic.ValidationError) -> dict:
    errors = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "body"
        message = err["msg"]
        if err["type"] == "value_error" and "error" in err.get("ctx", {}):
            message = str(err["ctx"]["error"])
        errors.setdefault(field, []).append(message)
    return errors


def parse_body(schema):
    """Validate the JSON body against a pydantic schema or raise ValidationError (422)."""
    data = request.get_json(silent=True) or {}
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(_field_errors(exc))
