"""Data models for component definitions.

This module defines the catalog entry describing a component type that can be
placed on a page, including the schema its settings must satisfy.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ComponentDefinition(BaseModel):
    """Catalog entry for a component type.

    Attributes:
        id: Unique component type key (e.g., 'hero_banner').
        display_name: Short human-readable name.
        description: Explanation of what the component shows.
        category: Grouping used by the component library.
        icon: Icon name shown in the component library.
        settings_schema: JSON Schema describing valid settings.
        ui_schema: Rendering hints (field order, widgets, grouping).
        default_settings: Settings overlaid on the schema defaults when a new
            instance is added.
        is_active: Whether the definition can still be referenced.
        max_instances: Optional cap on instances of this type per page.
        preview_image_url: Optional thumbnail for the component library.
    """

    id: str = Field(
        ...,
        pattern=r"^[a-z0-9]+([._-][a-z0-9]+)*$",
        description="Unique component type key (e.g., 'hero_banner').",
    )
    display_name: str = Field(..., description="Short human-readable name.")
    description: str = Field(
        default="", description="Explanation of what the component shows."
    )
    category: Optional[str] = Field(
        default=None, description="Grouping used by the component library."
    )
    icon: Optional[str] = Field(
        default=None, description="Icon name shown in the component library."
    )
    settings_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema describing valid settings.",
    )
    ui_schema: dict[str, Any] = Field(
        default_factory=dict,
        description="Rendering hints (field order, widgets, grouping).",
    )
    default_settings: dict[str, Any] = Field(
        default_factory=dict,
        description="Settings overlaid on schema defaults for new instances.",
    )
    is_active: bool = Field(
        default=True,
        description="Whether the definition can still be referenced.",
    )
    max_instances: Optional[int] = Field(
        default=None,
        ge=1,
        description="Optional cap on instances of this type per page.",
    )
    preview_image_url: Optional[str] = Field(
        default=None, description="Optional thumbnail for the library."
    )
