"""Data models for schema-driven settings forms.

This module defines the editable field set produced from a component's
settings schema, and the structured errors reported when candidate settings
do not satisfy that schema.
"""

from typing import Any, Optional

from pydantic import Field

from page_composer.models.base import ModelBase
from page_composer.models.enums import WidgetType


class FieldError(ModelBase):
    """A single schema violation.

    Attributes:
        path: Dot-separated path to the offending field ('' for the root).
        message: Human-readable explanation of the violation.
        validator: The JSON Schema keyword that failed (e.g., 'required').
    """

    path: str = Field(
        ...,
        description="Dot-separated path to the offending field ('' for the root).",
    )
    message: str = Field(
        ..., description="Human-readable explanation of the violation."
    )
    validator: str = Field(
        ..., description="The JSON Schema keyword that failed."
    )


class FormField(ModelBase):
    """One editable field derived from a settings schema.

    Attributes:
        name: Property name within its parent object.
        path: Dot-separated path from the settings root.
        label: Label shown next to the widget.
        description: Optional help text.
        widget: The widget used to edit the value.
        required: Whether the parent schema requires the field.
        value: The current value, or the schema default when unset.
        options: Allowed values for select widgets.
        minimum: Lower bound for numeric widgets.
        maximum: Upper bound for numeric widgets.
        max_length: Maximum length for text widgets.
        placeholder: Placeholder text hint.
        group: Group name from the UI schema.
        children: Nested fields of an object widget.
        items: Field sets for each item of an array widget.
        item_default: Value inserted when an array item is added.
    """

    name: str = Field(..., description="Property name within its parent.")
    path: str = Field(..., description="Dot-separated path from the root.")
    label: str = Field(..., description="Label shown next to the widget.")
    description: Optional[str] = Field(default=None, description="Help text.")
    widget: WidgetType = Field(..., description="Widget used to edit the value.")
    required: bool = Field(default=False, description="Whether it is required.")
    value: Any = Field(default=None, description="The current value.")
    options: list[Any] = Field(
        default_factory=list, description="Allowed values for select widgets."
    )
    minimum: Optional[float] = Field(default=None, description="Lower bound.")
    maximum: Optional[float] = Field(default=None, description="Upper bound.")
    max_length: Optional[int] = Field(
        default=None, description="Maximum text length."
    )
    placeholder: Optional[str] = Field(
        default=None, description="Placeholder text hint."
    )
    group: Optional[str] = Field(
        default=None, description="Group name from the UI schema."
    )
    children: list["FormField"] = Field(
        default_factory=list, description="Nested fields of an object widget."
    )
    items: list[list["FormField"]] = Field(
        default_factory=list,
        description="Field sets for each item of an array widget.",
    )
    item_default: Any = Field(
        default=None, description="Value inserted when an item is added."
    )


class FormView(ModelBase):
    """The complete editable field set for one settings object.

    Attributes:
        fields: Top-level fields in display order.
        groups: Group name to ordered field names, for grouped layouts.
        errors: Validation errors for the current values.
    """

    fields: list[FormField] = Field(
        default_factory=list, description="Top-level fields in display order."
    )
    groups: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Group name to ordered field names.",
    )
    errors: list[FieldError] = Field(
        default_factory=list,
        description="Validation errors for the current values.",
    )

    def field(self, name: str) -> Optional[FormField]:
        """Looks up a top-level field by name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None


FormField.model_rebuild()
