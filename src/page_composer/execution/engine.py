"""The page mutation engine.

Every content-altering verb is a read of the current page, a pure transform
of its component list, and one atomic repository write that bumps the
version. A call either returns the new page or raises; it never leaves a
half-applied change behind.
"""

import copy
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from pydantic import ValidationError as PydanticValidationError

from page_composer.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    TransientError,
    ValidationError,
)
from page_composer.execution import transforms
from page_composer.forms.defaults import schema_defaults
from page_composer.forms.renderer import validate_settings
from page_composer.models.component import ComponentDefinition
from page_composer.models.enums import PageStatus
from page_composer.models.page import ComponentInstance, Page, PageVersion
from page_composer.observability.logging import get_logger, page_context
from page_composer.persistence.repository import PageRepository
from page_composer.registry.abstract import ComponentRegistry
from page_composer.utils import compute_settings_diff


logger = get_logger(__name__)


@contextmanager
def _not_blindly_retryable() -> Iterator[None]:
    # Index-relative writes: if an earlier attempt landed, the same index may
    # now point at a different instance.
    try:
        yield
    except TransientError as e:
        if e.retryable:
            raise TransientError(e.detail, retryable=False) from e
        raise


def _as_validation_error(e: PydanticValidationError) -> ValidationError:
    first = e.errors()[0]
    field = ".".join(str(p) for p in first["loc"])
    return ValidationError(
        f"Invalid page field {field}: {first['msg']}", code="page.invalid"
    )


class MutationEngine:
    """
    Applies page mutations against a component registry and a page repository.
    """

    def __init__(
        self, registry: ComponentRegistry, repository: PageRepository
    ) -> None:
        self.registry = registry
        self.repository = repository

    # -- lookups ---------------------------------------------------------

    async def get_page(self, page_id: str) -> Page:
        return await self.repository.get_page(page_id)

    async def get_page_by_slug(self, slug: str) -> Optional[Page]:
        return await self.repository.get_page_by_slug(slug)

    async def get_published_page_by_slug(self, slug: str) -> Optional[Page]:
        """Returns the page for public rendering, or None if not published."""
        page = await self.repository.get_page_by_slug(slug)
        if page is None or page.status != PageStatus.PUBLISHED:
            return None
        return page

    async def list_pages(
        self, status: Optional[PageStatus] = None
    ) -> list[Page]:
        return await self.repository.list_pages(status)

    async def list_versions(self, page_id: str) -> list[PageVersion]:
        return await self.repository.list_versions(page_id)

    # -- validation helpers ---------------------------------------------

    async def _resolve(self, component_type: str) -> ComponentDefinition:
        try:
            return await self.registry.get_definition(component_type)
        except NotFoundError as e:
            raise ValidationError(
                f"Unknown component type: {component_type}",
                code="component.unknown",
            ) from e

    def _validate(
        self, definition: ComponentDefinition, settings: dict[str, Any]
    ):
        errors = validate_settings(definition.settings_schema, settings)
        if errors:
            first = errors[0]
            raise ValidationError(
                f"Invalid settings for {definition.id} at "
                f"'{first.path or '(root)'}': {first.message}",
                errors=errors,
            )

    def _check_capacity(self, page: Page, definition: ComponentDefinition):
        if (
            definition.max_instances is not None
            and page.count_of(definition.id) >= definition.max_instances
        ):
            raise ValidationError(
                f"Page already has the maximum of {definition.max_instances} "
                f"{definition.id} component(s)",
                code="component.max_instances",
            )

    def initial_settings(self, definition: ComponentDefinition) -> dict[str, Any]:
        """Settings for a freshly added instance: schema defaults overlaid
        with the definition's default settings."""
        settings = schema_defaults(definition.settings_schema)
        settings.update(copy.deepcopy(definition.default_settings))
        return settings

    async def _validate_content(self, content: tuple[ComponentInstance, ...]):
        for index, instance in enumerate(content):
            definition = await self._resolve(instance.component_type)
            try:
                self._validate(definition, instance.settings)
            except ValidationError as e:
                raise ValidationError(
                    f"Component {index}: {e.detail}", errors=e.errors
                ) from e

    # -- page lifecycle -------------------------------------------------

    async def create_page(
        self,
        *,
        slug: str,
        title: str,
        meta_title: Optional[str] = None,
        meta_description: Optional[str] = None,
        layout_template: str = "default",
        created_by: Optional[str] = None,
    ) -> Page:
        """Creates an empty DRAFT page.

        Raises:
            ConflictError: If the slug is taken.
            ValidationError: If the slug or title is malformed.
        """
        try:
            page = await self.repository.create_page(
                slug=slug,
                title=title,
                meta_title=meta_title,
                meta_description=meta_description,
                layout_template=layout_template,
                created_by=created_by,
            )
        except PydanticValidationError as e:
            raise _as_validation_error(e) from e
        logger.info("Page created", extra=page_context(page.id, slug=slug))
        return page

    async def update_page_details(
        self,
        page_id: str,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
        **fields: Any,
    ) -> Page:
        """Updates title, slug, meta fields or layout.

        A slug cannot change once the page has been published, so public
        links stay stable.

        Raises:
            ValidationError: On a malformed field or a slug change after
                publication.
            ConflictError: If the new slug is taken.
        """
        page = await self.repository.get_page(page_id)
        if (
            "slug" in fields
            and fields["slug"] != page.slug
            and page.published_at is not None
        ):
            raise ValidationError(
                f"Slug of page {page_id} cannot change after publication",
                code="page.slug_immutable",
            )
        try:
            updated = await self.repository.update_details(
                page_id,
                expected_version=expected_version,
                modified_by=modified_by,
                **fields,
            )
        except PydanticValidationError as e:
            raise _as_validation_error(e) from e
        logger.info(
            "Page details updated",
            extra=page_context(page_id, fields=sorted(fields)),
        )
        return updated

    # -- content mutations ----------------------------------------------

    async def add_component(
        self,
        page_id: str,
        component_type: str,
        position: Optional[int] = None,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
    ) -> Page:
        """Adds a new instance initialized to its defaults.

        Args:
            page_id: The page to edit.
            component_type: Registry key of the component to add.
            position: Insertion index; appends when None.

        Raises:
            ValidationError: Unknown or retired type, per-page cap reached,
                or defaults that do not satisfy the schema.
            IndexOutOfRangeError: If `position` is outside [0, len].
        """
        definition = await self._resolve(component_type)
        page = await self.repository.get_page(page_id)
        self._check_capacity(page, definition)

        settings = self.initial_settings(definition)
        self._validate(definition, settings)

        content = transforms.insert_component(
            page.content_data,
            ComponentInstance(component_type=component_type, settings=settings),
            position,
        )
        updated = await self.repository.replace_content(
            page_id,
            content,
            expected_version=expected_version,
            modified_by=modified_by,
            change_description=f"Added {component_type}",
        )
        logger.info(
            "Component added",
            extra=page_context(
                page_id,
                version=updated.version,
                component_type=component_type,
                position=position,
            ),
        )
        return updated

    async def remove_component(
        self,
        page_id: str,
        index: int,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
    ) -> Page:
        """Removes the instance at `index`.

        Raises:
            IndexOutOfRangeError: If `index` is out of bounds.
        """
        page = await self.repository.get_page(page_id)
        content = transforms.remove_component(page.content_data, index)
        removed = page.content_data[index].component_type
        updated = await self.repository.replace_content(
            page_id,
            content,
            expected_version=expected_version,
            modified_by=modified_by,
            change_description=f"Removed {removed} at {index}",
        )
        logger.info(
            "Component removed",
            extra=page_context(page_id, version=updated.version, index=index),
        )
        return updated

    async def duplicate_component(
        self,
        page_id: str,
        index: int,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
    ) -> Page:
        """Inserts a deep copy of the instance at `index` right after it.

        Raises:
            IndexOutOfRangeError: If `index` is out of bounds.
            ValidationError: If the type's per-page cap is reached.
            TransientError: Never retryable for this operation.
        """
        with _not_blindly_retryable():
            page = await self.repository.get_page(page_id)
            transforms.check_index(page.content_data, index)
            definition = await self._resolve(
                page.content_data[index].component_type
            )
            self._check_capacity(page, definition)

            content = transforms.duplicate_component(page.content_data, index)
            updated = await self.repository.replace_content(
                page_id,
                content,
                expected_version=expected_version,
                modified_by=modified_by,
                change_description=f"Duplicated {definition.id} at {index}",
            )
        logger.info(
            "Component duplicated",
            extra=page_context(page_id, version=updated.version, index=index),
        )
        return updated

    async def reorder_components(
        self,
        page_id: str,
        from_index: int,
        to_index: int,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
    ) -> Page:
        """Moves the instance at `from_index` to `to_index`.

        Moving an instance onto itself is validated and then returns the
        page unchanged, without a write.

        Raises:
            IndexOutOfRangeError: If either index is out of bounds.
            TransientError: Never retryable for this operation.
        """
        with _not_blindly_retryable():
            page = await self.repository.get_page(page_id)
            content = transforms.move_component(
                page.content_data, from_index, to_index
            )
            if from_index == to_index:
                return page
            updated = await self.repository.replace_content(
                page_id,
                content,
                expected_version=expected_version,
                modified_by=modified_by,
                change_description=f"Moved component {from_index} to {to_index}",
            )
        logger.info(
            "Components reordered",
            extra=page_context(
                page_id,
                version=updated.version,
                from_index=from_index,
                to_index=to_index,
            ),
        )
        return updated

    async def update_component_settings(
        self,
        page_id: str,
        index: int,
        new_settings: dict[str, Any],
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
    ) -> Page:
        """Replaces the settings of the instance at `index` wholesale.

        Callers must pass the complete settings object; nothing is merged.

        Raises:
            IndexOutOfRangeError: If `index` is out of bounds.
            ValidationError: Describing the first schema violation.
        """
        page = await self.repository.get_page(page_id)
        transforms.check_index(page.content_data, index)
        current = page.content_data[index]
        definition = await self._resolve(current.component_type)
        self._validate(definition, new_settings)

        content = transforms.replace_settings(
            page.content_data, index, new_settings
        )
        updated = await self.repository.replace_content(
            page_id,
            content,
            expected_version=expected_version,
            modified_by=modified_by,
            change_description=f"Updated {definition.id} settings at {index}",
        )
        logger.info(
            "Component settings updated",
            extra=page_context(
                page_id,
                version=updated.version,
                index=index,
                changed=compute_settings_diff(current.settings, new_settings),
            ),
        )
        return updated

    async def restore_version(
        self,
        page_id: str,
        version: int,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
    ) -> Page:
        """Writes the content of an earlier version as a new version.

        The restored content is checked against the current catalog first.

        Raises:
            NotFoundError: If the version does not exist.
            ValidationError: If the old content no longer validates.
        """
        record = await self.repository.get_version(page_id, version)
        await self._validate_content(record.content_data)
        updated = await self.repository.replace_content(
            page_id,
            record.content_data,
            expected_version=expected_version,
            modified_by=modified_by,
            change_description=f"Restored version {version}",
        )
        logger.info(
            "Page version restored",
            extra=page_context(
                page_id, version=updated.version, restored_from=version
            ),
        )
        return updated

    # -- status transitions ---------------------------------------------

    async def publish_page(
        self,
        page_id: str,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
    ) -> Page:
        """DRAFT or ARCHIVED -> PUBLISHED. No-op if already published.

        Raises:
            ValidationError: If any instance no longer resolves or validates.
        """
        page = await self.repository.get_page(page_id)
        if page.status == PageStatus.PUBLISHED:
            return page

        await self._validate_content(page.content_data)
        updated = await self.repository.set_status(
            page_id,
            PageStatus.PUBLISHED,
            expected_version=expected_version,
            modified_by=modified_by,
            change_description=f"Published from {page.status.value}",
        )
        logger.info(
            "Page published", extra=page_context(page_id, version=updated.version)
        )
        return updated

    async def unpublish_page(
        self,
        page_id: str,
        archive: bool = False,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
    ) -> Page:
        """PUBLISHED -> DRAFT (or ARCHIVED when `archive`). No-op on DRAFT.

        Raises:
            InvalidTransitionError: If the page is ARCHIVED.
        """
        page = await self.repository.get_page(page_id)
        if page.status == PageStatus.DRAFT:
            return page
        if page.status == PageStatus.ARCHIVED:
            raise InvalidTransitionError(
                f"Page {page_id} is archived; only publish can leave ARCHIVED"
            )

        target = PageStatus.ARCHIVED if archive else PageStatus.DRAFT
        updated = await self.repository.set_status(
            page_id,
            target,
            expected_version=expected_version,
            modified_by=modified_by,
            change_description=f"Unpublished to {target.value}",
        )
        logger.info(
            "Page unpublished",
            extra=page_context(page_id, version=updated.version, status=target.value),
        )
        return updated
