"""Default values derived from JSON Schemas."""

import copy
from typing import Any, Optional


def primary_type(schema: dict[str, Any]) -> Optional[str]:
    """Returns the schema's type, ignoring 'null' in a type list."""
    declared = schema.get("type")
    if isinstance(declared, list):
        non_null = [t for t in declared if t != "null"]
        return non_null[0] if non_null else None
    return declared


def default_value(schema: dict[str, Any]) -> Any:
    """Computes the value a new, untouched field starts with.

    The declared `default` wins; otherwise objects are built from their
    properties and every other type gets its zero value.

    Args:
        schema: The field's JSON Schema.

    Returns:
        A fresh value that is safe to mutate.
    """
    if "default" in schema:
        return copy.deepcopy(schema["default"])

    kind = primary_type(schema)
    if kind == "object":
        return {
            key: default_value(prop)
            for key, prop in schema.get("properties", {}).items()
        }
    if kind == "array":
        return []
    if kind == "boolean":
        return False
    if kind in ("number", "integer"):
        return 0
    if schema.get("enum"):
        return copy.deepcopy(schema["enum"][0])
    return ""


def schema_defaults(schema: dict[str, Any]) -> dict[str, Any]:
    """Collects only the defaults a settings schema explicitly declares.

    Properties without a `default` are left out, so a schema with no
    defaults yields an empty dict. Nested objects contribute their own
    declared defaults when they have any.

    Args:
        schema: An object JSON Schema.

    Returns:
        The declared defaults, deep-copied.
    """
    if "default" in schema and isinstance(schema["default"], dict):
        return copy.deepcopy(schema["default"])

    defaults: dict[str, Any] = {}
    for key, prop in schema.get("properties", {}).items():
        if "default" in prop:
            defaults[key] = copy.deepcopy(prop["default"])
        elif primary_type(prop) == "object":
            nested = schema_defaults(prop)
            if nested:
                defaults[key] = nested
    return defaults
