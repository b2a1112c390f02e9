"""Schema-driven settings forms.

Builds an editable field set from a component's settings schema and UI hints,
and validates candidate settings against that schema. Nothing here persists
anything: callers hand the result to `MutationEngine.update_component_settings`
when the user commits.
"""

import copy
import re
from typing import Any, Optional

from jsonschema import Draft7Validator

from page_composer.forms.defaults import default_value, primary_type
from page_composer.models.enums import WidgetType
from page_composer.models.form import FieldError, FormField, FormView


TEXTAREA_MIN_LENGTH = 200

_FORMAT_WIDGETS = {
    "uri": WidgetType.URL,
    "url": WidgetType.URL,
    "email": WidgetType.EMAIL,
    "color": WidgetType.COLOR,
}

_REQUIRED_RE = re.compile(r"^'(?P<name>[^']+)' is a required property$")


def _error_path(error) -> str:
    parts = [str(p) for p in error.absolute_path]
    if error.validator == "required":
        match = _REQUIRED_RE.match(error.message)
        if match:
            parts.append(match.group("name"))
    return ".".join(parts)


def validate_settings(
    schema: dict[str, Any], candidate: dict[str, Any]
) -> list[FieldError]:
    """Validates candidate settings against a settings schema.

    Args:
        schema: The component definition's settings schema.
        candidate: The complete settings object to check.

    Returns:
        Every violation, ordered by field path; empty when valid.
    """
    validator = Draft7Validator(
        schema, format_checker=Draft7Validator.FORMAT_CHECKER
    )
    errors = [
        FieldError(
            path=_error_path(e), message=e.message, validator=str(e.validator)
        )
        for e in validator.iter_errors(candidate)
    ]
    return sorted(errors, key=lambda e: (e.path, e.validator, e.message))


def resolve_widget(
    schema: dict[str, Any], ui: Optional[dict[str, Any]] = None
) -> WidgetType:
    """Chooses the widget for a field.

    A valid `ui:widget` hint wins; otherwise the choice follows the JSON
    Schema type, enum and format.
    """
    hint = (ui or {}).get("ui:widget")
    if hint:
        try:
            return WidgetType(hint)
        except ValueError:
            pass

    kind = primary_type(schema)
    if kind == "array":
        return WidgetType.ARRAY
    if kind == "object":
        return WidgetType.OBJECT
    if kind == "boolean":
        return WidgetType.CHECKBOX
    if kind == "integer":
        return WidgetType.INTEGER
    if kind == "number":
        return WidgetType.NUMBER
    if schema.get("enum"):
        return WidgetType.SELECT
    if schema.get("format") in _FORMAT_WIDGETS:
        return _FORMAT_WIDGETS[schema["format"]]
    if (schema.get("maxLength") or 0) > TEXTAREA_MIN_LENGTH:
        return WidgetType.TEXTAREA
    return WidgetType.TEXT


def _ordered_names(
    properties: dict[str, Any], ui_schema: dict[str, Any]
) -> list[str]:
    order = ui_schema.get("ui:order")
    names = list(properties.keys())
    if not order:
        return names

    listed = [n for n in order if n in properties]
    rest = [n for n in names if n not in listed]
    if "*" in order:
        star = order.index("*")
        before = [n for n in order[:star] if n in properties]
        after = [n for n in order[star + 1 :] if n in properties]
        return before + rest + after
    return listed + rest


def _build_field(
    name: str,
    schema: dict[str, Any],
    ui: dict[str, Any],
    value: Any,
    has_value: bool,
    required: bool,
    path: str,
) -> FormField:
    widget = resolve_widget(schema, ui)
    current = value if has_value else default_value(schema)

    field = FormField(
        name=name,
        path=path,
        label=schema.get("title") or name,
        description=ui.get("ui:help") or schema.get("description"),
        widget=widget,
        required=required,
        value=copy.deepcopy(current),
        options=list(schema.get("enum", [])),
        minimum=schema.get("minimum"),
        maximum=schema.get("maximum"),
        max_length=schema.get("maxLength"),
        placeholder=ui.get("ui:placeholder"),
        group=ui.get("ui:group"),
    )

    if widget == WidgetType.OBJECT:
        field.children = _build_fields(
            schema, ui, current if isinstance(current, dict) else {}, path
        )
    elif widget == WidgetType.ARRAY:
        item_schema = schema.get("items", {})
        item_ui = ui.get("items", {})
        field.item_default = default_value(item_schema)
        items = current if isinstance(current, list) else []
        for i, item in enumerate(items):
            item_path = f"{path}.{i}"
            if primary_type(item_schema) == "object":
                field.items.append(
                    _build_fields(
                        item_schema,
                        item_ui,
                        item if isinstance(item, dict) else {},
                        item_path,
                    )
                )
            else:
                field.items.append(
                    [
                        _build_field(
                            str(i), item_schema, item_ui, item, True, False,
                            item_path,
                        )
                    ]
                )
    return field


def _build_fields(
    schema: dict[str, Any],
    ui_schema: dict[str, Any],
    values: dict[str, Any],
    prefix: str,
) -> list[FormField]:
    properties = schema.get("properties", {})
    required = set(schema.get("required", []))
    fields = []
    for name in _ordered_names(properties, ui_schema):
        ui = ui_schema.get(name, {})
        if ui.get("ui:hidden"):
            continue
        fields.append(
            _build_field(
                name,
                properties[name],
                ui,
                values.get(name),
                name in values,
                name in required,
                f"{prefix}.{name}" if prefix else name,
            )
        )
    return fields


def render_form(
    schema: dict[str, Any],
    ui_schema: Optional[dict[str, Any]] = None,
    current_values: Optional[dict[str, Any]] = None,
) -> FormView:
    """Projects a settings schema and current values into an editable form.

    Args:
        schema: The component definition's settings schema.
        ui_schema: Optional rendering hints (`ui:order`, `ui:widget`,
            `ui:group`, `ui:help`, `ui:placeholder`, `ui:hidden`).
        current_values: The instance's current settings.

    Returns:
        The field set, its groups, and validation errors for the values.
    """
    ui_schema = ui_schema or {}
    values = current_values or {}
    fields = _build_fields(schema, ui_schema, values, "")

    groups: dict[str, list[str]] = {}
    for f in fields:
        if f.group:
            groups.setdefault(f.group, []).append(f.name)

    return FormView(
        fields=fields,
        groups=groups,
        errors=validate_settings(schema, values),
    )


def apply_field_change(
    values: dict[str, Any], path: str, value: Any
) -> dict[str, Any]:
    """Returns a copy of `values` with the field at `path` replaced.

    Numeric path segments address list items. Missing intermediate objects
    are created.

    Raises:
        IndexError: If a numeric segment is past the end of its list.
    """
    updated = copy.deepcopy(values)
    parts = path.split(".")
    current: Any = updated
    for part in parts[:-1]:
        if isinstance(current, list):
            current = current[int(part)]
            continue
        if not isinstance(current.get(part), (dict, list)):
            current[part] = {}
        current = current[part]

    last = parts[-1]
    if isinstance(current, list):
        current[int(last)] = copy.deepcopy(value)
    else:
        current[last] = copy.deepcopy(value)
    return updated
