"""Renderers turn a component instance into displayable markup.

The composer treats rendering as opaque: the editor only needs some text per
block. Production front ends plug their own renderer in.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

from page_composer.models.component import ComponentDefinition


class ComponentRenderer(ABC):
    """Abstract interface for rendering one component instance."""

    @abstractmethod
    def render(
        self,
        definition: ComponentDefinition,
        settings: dict[str, Any],
        preview: bool = False,
    ) -> str:
        """Renders an instance as markdown.

        Args:
            definition: The instance's component definition.
            settings: The instance's current settings.
            preview: True when rendering for the read-only preview.

        Returns:
            A markdown string.
        """
        pass  # pragma: no cover


def _summarize(value: Any, limit: int = 60) -> str:
    if isinstance(value, (dict, list)):
        text = json.dumps(value, default=str)
    else:
        text = str(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


class PlaceholderRenderer(ComponentRenderer):
    """Renders each block as a heading followed by its top-level settings."""

    def render(
        self,
        definition: ComponentDefinition,
        settings: dict[str, Any],
        preview: bool = False,
    ) -> str:
        lines = [f"#### {definition.display_name}"]
        properties = definition.settings_schema.get("properties", {})
        for name, value in settings.items():
            if value in (None, "", [], {}):
                continue
            label = properties.get(name, {}).get("title") or name
            if preview:
                lines.append(f"{_summarize(value)}")
            else:
                lines.append(f"- **{label}**: {_summarize(value)}")
        return "\n".join(lines)
