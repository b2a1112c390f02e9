"""In-memory component registry and the built-in university catalog."""

from typing import Iterable, Optional

from jsonschema import Draft7Validator

from page_composer.exceptions import NotFoundError
from page_composer.models.component import ComponentDefinition
from page_composer.registry.abstract import ComponentRegistry
from page_composer.registry.catalog import sort_definitions


class InMemoryComponentRegistry(ComponentRegistry):
    """Registry backed by a dict.

    Definitions are registered up front (from code or a YAML catalog) and
    then only read. Lookups of retired definitions fail like unknown ones.
    """

    def __init__(
        self, definitions: Optional[Iterable[ComponentDefinition]] = None
    ):
        self._definitions: dict[str, ComponentDefinition] = {}
        for definition in definitions or []:
            self.register(definition)

    def register(self, definition: ComponentDefinition):
        """Adds or replaces a definition after checking its settings schema.

        Raises:
            jsonschema.SchemaError: If the settings schema is not valid JSON
                Schema.
        """
        Draft7Validator.check_schema(definition.settings_schema)
        self._definitions[definition.id] = definition

    async def get_definition(self, component_type: str) -> ComponentDefinition:
        definition = self._definitions.get(component_type)
        if definition is None or not definition.is_active:
            raise NotFoundError(
                f"Component type not in registry: {component_type}",
                code="component.unknown",
            )
        return definition

    async def list_definitions(self) -> list[ComponentDefinition]:
        return sort_definitions(
            d for d in self._definitions.values() if d.is_active
        )


def build_default_catalog() -> list[ComponentDefinition]:
    return [
        ComponentDefinition(
            id="hero_banner",
            display_name="Hero Banner",
            description="Full-width banner with heading, background image and call to action.",
            category="headers",
            icon="Image",
            settings_schema={
                "type": "object",
                "required": ["heading", "background_image", "text_color", "height"],
                "properties": {
                    "heading": {
                        "type": "string",
                        "title": "Heading",
                        "maxLength": 120,
                        "default": "Welcome to the University",
                    },
                    "subheading": {
                        "type": "string",
                        "title": "Subheading",
                        "maxLength": 250,
                    },
                    "background_image": {
                        "type": "string",
                        "title": "Background image",
                        "format": "uri",
                        "default": "https://example.edu/images/campus.jpg",
                    },
                    "cta_text": {"type": "string", "title": "Button text"},
                    "cta_link": {
                        "type": "string",
                        "title": "Button link",
                        "format": "uri",
                    },
                    "text_color": {
                        "type": "string",
                        "enum": ["light", "dark"],
                        "default": "light",
                    },
                    "height": {
                        "type": "string",
                        "enum": ["small", "medium", "large", "fullscreen"],
                        "default": "large",
                    },
                },
                "additionalProperties": False,
            },
            ui_schema={
                "ui:order": ["heading", "subheading", "*"],
                "cta_text": {"ui:group": "Call to action"},
                "cta_link": {
                    "ui:group": "Call to action",
                    "ui:placeholder": "https://...",
                },
            },
            max_instances=1,
        ),
        ComponentDefinition(
            id="text_content",
            display_name="Text Content",
            description="Rich text section with optional heading.",
            category="content",
            icon="Type",
            settings_schema={
                "type": "object",
                "required": ["content", "text_align", "max_width"],
                "properties": {
                    "heading": {"type": "string", "title": "Heading"},
                    "content": {
                        "type": "string",
                        "title": "Content",
                        "maxLength": 5000,
                        "default": "",
                    },
                    "text_align": {
                        "type": "string",
                        "enum": ["left", "center", "right"],
                        "default": "left",
                    },
                    "max_width": {
                        "type": "string",
                        "enum": ["narrow", "medium", "wide", "full"],
                        "default": "medium",
                    },
                },
                "additionalProperties": False,
            },
        ),
        ComponentDefinition(
            id="faculty_grid",
            display_name="Faculty Grid",
            description="Grid of faculty members pulled from the directory.",
            category="people",
            icon="Users",
            settings_schema={
                "type": "object",
                "required": ["title", "columns", "limit"],
                "properties": {
                    "title": {
                        "type": "string",
                        "title": "Title",
                        "default": "Our Faculty",
                    },
                    "description": {"type": "string", "maxLength": 500},
                    "columns": {
                        "type": "integer",
                        "enum": [2, 3, 4],
                        "default": 3,
                    },
                    "show_bio": {"type": "boolean", "default": True},
                    "show_specialization": {"type": "boolean", "default": True},
                    "limit": {
                        "type": "integer",
                        "minimum": 1,
                        "maximum": 48,
                        "default": 12,
                    },
                    "filter_by_department": {"type": "string"},
                },
                "additionalProperties": False,
            },
            ui_schema={"columns": {"ui:widget": "select"}},
        ),
        ComponentDefinition(
            id="course_showcase",
            display_name="Course Showcase",
            description="Featured courses shown as a grid, carousel or list.",
            category="academics",
            icon="BookOpen",
            settings_schema={
                "type": "object",
                "required": ["title", "layout", "limit"],
                "properties": {
                    "title": {
                        "type": "string",
                        "default": "Featured Courses",
                    },
                    "layout": {
                        "type": "string",
                        "enum": ["grid", "carousel", "list"],
                        "default": "grid",
                    },
                    "show_featured_only": {"type": "boolean", "default": True},
                    "limit": {
                        "type": "integer",
                        "minimum": 1,
                        "maximum": 24,
                        "default": 6,
                    },
                    "show_price": {"type": "boolean", "default": False},
                    "show_instructor": {"type": "boolean", "default": True},
                },
                "additionalProperties": False,
            },
        ),
        ComponentDefinition(
            id="cta_banner",
            display_name="Call to Action",
            description="Banner that sends visitors to apply, enrol or contact admissions.",
            category="marketing",
            icon="Megaphone",
            settings_schema={
                "type": "object",
                "required": [
                    "heading",
                    "button_text",
                    "button_link",
                    "background_color",
                    "style",
                ],
                "properties": {
                    "heading": {"type": "string", "default": "Ready to apply?"},
                    "description": {"type": "string"},
                    "button_text": {"type": "string", "default": "Apply now"},
                    "button_link": {
                        "type": "string",
                        "format": "uri",
                        "default": "https://example.edu/apply",
                    },
                    "background_color": {
                        "type": "string",
                        "enum": ["blue", "green", "purple", "orange", "gray"],
                        "default": "blue",
                    },
                    "style": {
                        "type": "string",
                        "enum": ["solid", "gradient", "image"],
                        "default": "solid",
                    },
                },
                "additionalProperties": False,
            },
        ),
        ComponentDefinition(
            id="image_gallery",
            display_name="Image Gallery",
            description="Captioned images from campus life.",
            category="media",
            icon="Images",
            settings_schema={
                "type": "object",
                "required": ["images"],
                "properties": {
                    "title": {"type": "string"},
                    "images": {
                        "type": "array",
                        "default": [],
                        "maxItems": 24,
                        "items": {
                            "type": "object",
                            "required": ["url"],
                            "properties": {
                                "url": {"type": "string", "format": "uri"},
                                "caption": {"type": "string", "default": ""},
                            },
                            "additionalProperties": False,
                        },
                    },
                },
                "additionalProperties": False,
            },
        ),
    ]


def build_default_registry() -> InMemoryComponentRegistry:
    return InMemoryComponentRegistry(build_default_catalog())
