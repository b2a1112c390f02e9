"""Loads component definitions from a YAML catalog file."""

from pathlib import Path
from typing import Union

import yaml
from jsonschema import Draft7Validator

from page_composer.models.component import ComponentDefinition
from page_composer.observability.logging import get_logger
from page_composer.registry.in_memory import InMemoryComponentRegistry


logger = get_logger(__name__)


def load_catalog(file_path: Union[str, Path]) -> list[ComponentDefinition]:
    """Parses a YAML catalog into component definitions.

    The file holds either a list of definitions or a mapping with a
    `components` list. Every settings schema is checked against the JSON
    Schema meta-schema.

    Args:
        file_path: Path to the YAML catalog.

    Returns:
        The parsed definitions in file order.

    Raises:
        ValueError: If the document has neither shape.
        pydantic.ValidationError: If an entry is not a valid definition.
        jsonschema.SchemaError: If a settings schema is malformed.
    """
    with open(file_path, "r") as f:
        document = yaml.safe_load(f) or []

    if isinstance(document, dict):
        document = document.get("components")
    if not isinstance(document, list):
        raise ValueError(
            f"Catalog {file_path} must be a list or contain a 'components' list"
        )

    definitions = []
    for entry in document:
        definition = ComponentDefinition.model_validate(entry)
        Draft7Validator.check_schema(definition.settings_schema)
        definitions.append(definition)

    logger.info(f"Loaded {len(definitions)} component definition(s) from {file_path}")
    return definitions


def load_registry(file_path: Union[str, Path]) -> InMemoryComponentRegistry:
    """Builds an in-memory registry from a YAML catalog."""
    return InMemoryComponentRegistry(load_catalog(file_path))
