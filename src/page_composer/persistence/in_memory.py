"""In-memory implementation of the PageRepository.

This module provides an ephemeral page store suitable for testing and local
development. Writes are serialized with an asyncio lock so each
read-modify-write is atomic with respect to other coroutines.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from page_composer.exceptions import ConflictError, NotFoundError
from page_composer.models.enums import PageStatus
from page_composer.models.page import ComponentInstance, Page, PageVersion
from page_composer.persistence.repository import (
    PageRepository,
    check_detail_fields,
    check_expected_version,
    next_page,
    version_record,
)


class InMemoryPageRepository(PageRepository):
    """In-memory implementation of the PageRepository.

    Pages are copied on the way in and out so callers can never alter
    stored state by mutating a returned object.
    """

    def __init__(self):
        """Initializes the empty in-memory stores."""
        self._pages: dict[str, Page] = {}
        self._slugs: dict[str, str] = {}  # slug -> page_id
        self._versions: dict[str, list[PageVersion]] = {}
        self._lock = asyncio.Lock()

    def _load(self, page_id: str) -> Page:
        page = self._pages.get(page_id)
        if page is None:
            raise NotFoundError(f"Page not found: {page_id}", code="page.not_found")
        return page

    def _store(self, page: Page, version: PageVersion) -> Page:
        self._pages[page.id] = page.model_copy(deep=True)
        self._slugs[page.slug] = page.id
        self._versions.setdefault(page.id, []).append(version)
        return page.model_copy(deep=True)

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
        async with self._lock:
            if slug in self._slugs:
                raise ConflictError(
                    f"Slug already in use: {slug}", code="page.slug_conflict"
                )
            now = datetime.now(timezone.utc)
            page = Page(
                id=uuid.uuid4().hex,
                slug=slug,
                title=title,
                meta_title=meta_title,
                meta_description=meta_description,
                layout_template=layout_template,
                content_data=tuple(content_data),
                created_at=now,
                updated_at=now,
                last_modified_by=created_by,
            )
            return self._store(
                page, version_record(page, created_by, "Created page")
            )

    async def get_page(self, page_id: str) -> Page:
        return self._load(page_id).model_copy(deep=True)

    async def get_page_by_slug(self, slug: str) -> Optional[Page]:
        page_id = self._slugs.get(slug)
        if page_id is None:
            return None
        return self._pages[page_id].model_copy(deep=True)

    async def list_pages(
        self, status: Optional[PageStatus] = None
    ) -> list[Page]:
        pages = [
            p.model_copy(deep=True)
            for p in self._pages.values()
            if status is None or p.status == status
        ]
        return sorted(pages, key=lambda p: p.updated_at, reverse=True)

    async def replace_content(
        self,
        page_id: str,
        content_data: Sequence[ComponentInstance],
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
        change_description: Optional[str] = None,
    ) -> Page:
        async with self._lock:
            current = self._load(page_id)
            check_expected_version(current, expected_version)
            page = next_page(
                current, modified_by, content_data=tuple(content_data)
            )
            return self._store(
                page, version_record(page, modified_by, change_description)
            )

    async def set_status(
        self,
        page_id: str,
        status: PageStatus,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
        change_description: Optional[str] = None,
    ) -> Page:
        async with self._lock:
            current = self._load(page_id)
            check_expected_version(current, expected_version)
            page = next_page(current, modified_by, status=status)
            return self._store(
                page, version_record(page, modified_by, change_description)
            )

    async def update_details(
        self,
        page_id: str,
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
        **fields: Any,
    ) -> Page:
        check_detail_fields(fields)
        async with self._lock:
            current = self._load(page_id)
            check_expected_version(current, expected_version)
            new_slug = fields.get("slug", current.slug)
            if new_slug != current.slug and new_slug in self._slugs:
                raise ConflictError(
                    f"Slug already in use: {new_slug}", code="page.slug_conflict"
                )
            data = current.model_dump()
            data.update(fields)
            data["updated_at"] = datetime.now(timezone.utc)
            data["last_modified_by"] = modified_by
            page = Page.model_validate(data)

            self._slugs.pop(current.slug, None)
            self._slugs[page.slug] = page.id
            self._pages[page.id] = page.model_copy(deep=True)
            return page

    async def list_versions(self, page_id: str) -> list[PageVersion]:
        self._load(page_id)
        return [
            v.model_copy(deep=True)
            for v in reversed(self._versions.get(page_id, []))
        ]

    async def get_version(self, page_id: str, version: int) -> PageVersion:
        self._load(page_id)
        for record in self._versions.get(page_id, []):
            if record.version == version:
                return record.model_copy(deep=True)
        raise NotFoundError(
            f"Version {version} not found for page {page_id}",
            code="page.version_not_found",
        )
