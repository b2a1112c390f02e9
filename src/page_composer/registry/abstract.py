"""Abstract base class for the Component Definition Registry.

This module defines the read-only interface for looking up the component
types that can be placed on a page.
"""

from abc import ABC, abstractmethod

from page_composer.models.component import ComponentDefinition


class ComponentRegistry(ABC):
    """Interface for accessing component definitions.

    Implementations may suspend while fetching from a backing store. They
    never expose retired (inactive) definitions.
    """

    @abstractmethod
    async def get_definition(self, component_type: str) -> ComponentDefinition:
        """Retrieves a definition by its component type key.

        Args:
            component_type: The definition's unique key.

        Returns:
            The active component definition.

        Raises:
            NotFoundError: If the type is unknown or retired.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def list_definitions(self) -> list[ComponentDefinition]:
        """Lists all active definitions.

        Returns:
            The active definitions ordered by category, then display name.
        """
        pass  # pragma: no cover
