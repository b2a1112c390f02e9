"""Persistence layer interface for pages.

This module defines the abstract contract every page store honours. Content
is never saved through a generic "save": each write replaces the whole
component list (or the status) and bumps the version in one atomic step,
recording a version entry alongside it.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from page_composer.exceptions import StaleVersionError
from page_composer.models.enums import PageStatus
from page_composer.models.page import ComponentInstance, Page, PageVersion
from page_composer.utils import compute_checksum


DETAIL_FIELDS = frozenset(
    {"title", "slug", "meta_title", "meta_description", "layout_template"}
)


class PageRepository(ABC):
    """Abstract interface for persisting pages and their version history."""

    @abstractmethod
    async def create_page(
        self,
        *,
        slug: str,
        title: str,
        meta_title: Optional[str] = None,
        meta_description: Optional[str] = None,
        layout_template: str = "default",
        content_data: Sequence[ComponentInstance] = (),
        created_by: Optional[str] = None,
    ) -> Page:
        """Creates a new page in DRAFT at version 1.

        Raises:
            ConflictError: If the slug is already taken.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def get_page(self, page_id: str) -> Page:
        """Retrieves a page by ID.

        Raises:
            NotFoundError: If the page does not exist.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def get_page_by_slug(self, slug: str) -> Optional[Page]:
        """Retrieves a page by slug, or None if no page has that slug."""
        pass  # pragma: no cover

    @abstractmethod
    async def list_pages(
        self, status: Optional[PageStatus] = None
    ) -> list[Page]:
        """Lists pages, most recently updated first.

        Args:
            status: Optional status filter.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def replace_content(
        self,
        page_id: str,
        content_data: Sequence[ComponentInstance],
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
        change_description: Optional[str] = None,
    ) -> Page:
        """Atomically replaces the component list and increments the version.

        Args:
            page_id: The page to write.
            content_data: The complete new component list.
            expected_version: If set, the write only applies when the stored
                version still equals it.
            modified_by: Who performs the write.
            change_description: Summary stored on the version record.

        Returns:
            The updated page.

        Raises:
            NotFoundError: If the page does not exist.
            StaleVersionError: If `expected_version` is not current.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def set_status(
        self,
        page_id: str,
        status: PageStatus,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
        change_description: Optional[str] = None,
    ) -> Page:
        """Atomically changes the status and increments the version.

        Publishing also stamps `published_at` and `published_by`.

        Raises:
            NotFoundError: If the page does not exist.
            StaleVersionError: If `expected_version` is not current.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def update_details(
        self,
        page_id: str,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
        **fields: Any,
    ) -> Page:
        """Updates descriptive fields (title, slug, meta fields, layout).

        The version is not incremented: it tracks content and status only.

        Raises:
            NotFoundError: If the page does not exist.
            ConflictError: If the new slug is already taken.
            StaleVersionError: If `expected_version` is not current.
            ValueError: If an unknown field is passed.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def list_versions(self, page_id: str) -> list[PageVersion]:
        """Lists a page's version records, newest first.

        Raises:
            NotFoundError: If the page does not exist.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def get_version(self, page_id: str, version: int) -> PageVersion:
        """Retrieves one version record.

        Raises:
            NotFoundError: If the page or the version does not exist.
        """
        pass  # pragma: no cover


def check_expected_version(page: Page, expected_version: Optional[int]):
    """Rejects a write whose version precondition no longer holds."""
    if expected_version is not None and page.version != expected_version:
        raise StaleVersionError(page.id, expected_version, page.version)


def check_detail_fields(fields: dict[str, Any]):
    unknown = set(fields) - DETAIL_FIELDS
    if unknown:
        raise ValueError(f"Unknown page fields: {sorted(unknown)}")


def next_page(page: Page, modified_by: Optional[str], **updates: Any) -> Page:
    """Builds the page produced by a versioned write.

    Runs the updates through model validation so a write can never store a
    malformed page.
    """
    now = datetime.now(timezone.utc)
    data = page.model_dump()
    data.update(updates)
    data["version"] = page.version + 1
    data["updated_at"] = now
    data["last_modified_by"] = modified_by
    if updates.get("status") == PageStatus.PUBLISHED:
        data["published_at"] = now
        data["published_by"] = modified_by
    return Page.model_validate(data)


def version_record(
    page: Page,
    created_by: Optional[str],
    change_description: Optional[str],
) -> PageVersion:
    return PageVersion(
        page_id=page.id,
        version=page.version,
        status=page.status,
        content_data=page.content_data,
        checksum=compute_checksum(page.content_data),
        created_by=created_by,
        change_description=change_description,
        created_at=page.updated_at,
    )
