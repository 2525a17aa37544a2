"""
Schema Validator

Checks raw tool arguments against a list of ToolParameter specs and
produces the normalized argument mapping. All violations are collected in
a single pass so a caller can fix every field from one response.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .base import ToolParameter, ValidationError

_JSON_TYPES = {
    "string": "string",
    "number": "number",
    "integer": "integer",
    "boolean": "boolean",
    "array": "array",
    "object": "object",
}


@dataclass(frozen=True)
class FieldViolation:
    field: str
    code: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "code": self.code, "message": self.message}


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, float) and not math.isfinite(value):
        return "non-finite number"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _matches(type_name: str, value: Any) -> bool:
    # bool is an int subclass, so it has to be ruled out explicitly
    if type_name == "string":
        return isinstance(value, str)
    if type_name == "number":
        # NaN and Infinity cannot be sent as JSON
        return (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and math.isfinite(value)
        )
    if type_name == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if type_name == "boolean":
        return isinstance(value, bool)
    if type_name == "array":
        return isinstance(value, (list, tuple))
    if type_name == "object":
        return isinstance(value, Mapping)
    raise ValueError(f"Unsupported parameter type: {type_name}")


def _check_value(
    param: ToolParameter, path: str, value: Any, violations: List[FieldViolation]
) -> Any:
    """Validate one present, non-null value. Returns the normalized value."""
    if not _matches(param.type, value):
        violations.append(FieldViolation(
            path, "invalid_type",
            f"Expected {param.type}, received {_type_name(value)}",
        ))
        return None

    if param.enum is not None and value not in param.enum:
        allowed = ", ".join(repr(v) for v in param.enum)
        violations.append(FieldViolation(
            path, "invalid_enum",
            f"Invalid value {value!r}; expected one of {allowed}",
        ))
        return None

    normalized = value
    if param.type == "array":
        normalized = []
        for index, item in enumerate(value):
            if param.items_type and not _matches(param.items_type, item):
                violations.append(FieldViolation(
                    f"{path}[{index}]", "invalid_type",
                    f"Expected {param.items_type}, received {_type_name(item)}",
                ))
            normalized.append(item)
    elif param.type == "object" and param.properties:
        normalized = _validate_fields(param.properties, value, violations, prefix=f"{path}.")

    for constraint in param.constraints:
        problem = constraint(value)
        if problem:
            violations.append(FieldViolation(path, "constraint", problem))

    return normalized


def _validate_fields(
    parameters: Sequence[ToolParameter],
    raw: Mapping[str, Any],
    violations: List[FieldViolation],
    prefix: str = "",
) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}

    for param in parameters:
        path = f"{prefix}{param.name}"

        if param.name not in raw:
            if param.required:
                violations.append(FieldViolation(path, "missing", "Required field is missing"))
            elif param.has_default:
                normalized[param.name] = param.default
            continue

        value = raw[param.name]
        if value is None:
            if param.nullable:
                normalized[param.name] = None
            else:
                violations.append(FieldViolation(
                    path, "invalid_type", f"Expected {param.type}, received null",
                ))
            continue

        normalized[param.name] = _check_value(param, path, value, violations)

    return normalized


def validate_arguments(
    parameters: Sequence[ToolParameter],
    raw_arguments: Any,
    tool_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Validate ``raw_arguments`` against ``parameters``.

    Returns the normalized arguments: unknown keys dropped, absent optional
    fields left out unless they declare a default. Raises ValidationError
    listing every violation.
    """
    if raw_arguments is None:
        raw_arguments = {}
    if not isinstance(raw_arguments, Mapping):
        raise ValidationError(
            [FieldViolation(
                "arguments", "invalid_type",
                f"Expected object, received {_type_name(raw_arguments)}",
            )],
            tool_name=tool_name,
        )

    violations: List[FieldViolation] = []
    normalized = _validate_fields(parameters, raw_arguments, violations)
    if violations:
        raise ValidationError(violations, tool_name=tool_name)
    return normalized


def _property_schema(param: ToolParameter) -> Dict[str, Any]:
    json_type = _JSON_TYPES[param.type]
    prop: Dict[str, Any] = {"type": [json_type, "null"] if param.nullable else json_type}

    if param.description:
        prop["description"] = param.description
    if param.enum is not None:
        prop["enum"] = list(param.enum) + ([None] if param.nullable else [])
    if param.type == "array":
        prop["items"] = {"type": _JSON_TYPES[param.items_type or "string"]}
    if param.type == "object" and param.properties:
        prop.update(to_json_schema(param.properties))
        prop["type"] = [json_type, "null"] if param.nullable else json_type
    if param.has_default:
        prop["default"] = param.default

    return prop


def to_json_schema(parameters: Sequence[ToolParameter]) -> Dict[str, Any]:
    """Project parameter specs onto a JSON-Schema object description."""
    schema: Dict[str, Any] = {
        "type": "object",
        "properties": {param.name: _property_schema(param) for param in parameters},
        "required": [param.name for param in parameters if param.required],
    }
    return schema
