"""SQLAlchemy implementation of the PageRepository."""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from page_composer.config import DEFAULT_DATABASE_URL
from page_composer.exceptions import (
    ConflictError,
    NotFoundError,
    StaleVersionError,
    TransientError,
)
from page_composer.models.enums import PageStatus
from page_composer.models.page import ComponentInstance, Page, PageVersion
from page_composer.observability.logging import get_logger
from page_composer.persistence.db import (
    create_tables,
    make_engine,
    make_session_factory,
)
from page_composer.persistence.models import PageRow, PageVersionRow
from page_composer.persistence.repository import (
    PageRepository,
    check_detail_fields,
    check_expected_version,
    next_page,
    version_record,
)
from page_composer.utils import serialize_content


logger = get_logger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo; everything is stored in UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_page(row: PageRow) -> Page:
    return Page(
        id=row.id,
        slug=row.slug,
        title=row.title,
        status=PageStatus(row.status),
        version=row.version,
        content_data=tuple(
            ComponentInstance(**c) for c in (row.content_data or [])
        ),
        meta_title=row.meta_title,
        meta_description=row.meta_description,
        layout_template=row.layout_template,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        published_at=_aware(row.published_at),
        published_by=row.published_by,
        last_modified_by=row.last_modified_by,
    )


def _to_version(row: PageVersionRow) -> PageVersion:
    return PageVersion(
        page_id=row.page_id,
        version=row.version,
        status=PageStatus(row.status),
        content_data=tuple(
            ComponentInstance(**c) for c in (row.content_data or [])
        ),
        checksum=row.checksum,
        created_by=row.created_by,
        change_description=row.change_description,
        created_at=_aware(row.created_at),
    )


def _page_values(page: Page) -> dict[str, Any]:
    return {
        "slug": page.slug,
        "title": page.title,
        "status": page.status.value,
        "version": page.version,
        "content_data": serialize_content(page.content_data),
        "meta_title": page.meta_title,
        "meta_description": page.meta_description,
        "layout_template": page.layout_template,
        "updated_at": page.updated_at,
        "published_at": page.published_at,
        "published_by": page.published_by,
        "last_modified_by": page.last_modified_by,
    }


def _version_row(record: PageVersion) -> PageVersionRow:
    return PageVersionRow(
        page_id=record.page_id,
        version=record.version,
        status=record.status.value,
        content_data=serialize_content(record.content_data),
        checksum=record.checksum,
        created_by=record.created_by,
        change_description=record.change_description,
        created_at=record.created_at,
    )


class SQLPageRepository(PageRepository):
    """Relational page store.

    Each write runs in one transaction: a conditional UPDATE keyed on the
    version that was read, plus the version record insert. Connectivity
    failures surface as TransientError.
    """

    def __init__(
        self,
        database_url: str = DEFAULT_DATABASE_URL,
        engine: Optional[AsyncEngine] = None,
    ):
        """Initialize the repository with a database URL or an existing engine.

        Args:
            database_url: SQLAlchemy async connection string.
            engine: Optional engine to share with other repositories.
        """
        self.engine = engine or make_engine(database_url)
        self.SessionLocal = make_session_factory(self.engine)
        self._tables_ready = False

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            if not self._tables_ready:
                await create_tables(self.engine)
                self._tables_ready = True
            async with self.SessionLocal() as session:
                yield session
        except (OperationalError, InterfaceError) as e:
            logger.error(f"Page store unavailable: {e}")
            raise TransientError(f"Page store unavailable: {e.orig}") from e

    async def _get_row(self, session: AsyncSession, page_id: str) -> PageRow:
        row = await session.get(PageRow, page_id)
        if row is None:
            raise NotFoundError(f"Page not found: {page_id}", code="page.not_found")
        return row

    async def _slug_taken(self, session: AsyncSession, slug: str) -> bool:
        stmt = select(PageRow.id).where(PageRow.slug == slug)
        return (await session.execute(stmt)).first() is not None

    async def _write(
        self,
        session: AsyncSession,
        current: Page,
        page: Page,
        modified_by: Optional[str],
        change_description: Optional[str],
    ) -> Page:
        stmt = (
            update(PageRow)
            .where(PageRow.id == current.id, PageRow.version == current.version)
            .values(**_page_values(page))
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            await session.rollback()
            latest = await self._get_row(session, current.id)
            raise StaleVersionError(current.id, current.version, latest.version)

        session.add(
            _version_row(version_record(page, modified_by, change_description))
        )
        await session.commit()
        return page

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
        async with self._session() as session:
            if await self._slug_taken(session, slug):
                raise ConflictError(
                    f"Slug already in use: {slug}", code="page.slug_conflict"
                )
            session.add(PageRow(id=page.id, created_at=now, **_page_values(page)))
            session.add(
                _version_row(version_record(page, created_by, "Created page"))
            )
            try:
                await session.commit()
            except IntegrityError as e:
                raise ConflictError(
                    f"Slug already in use: {slug}", code="page.slug_conflict"
                ) from e
        return page

    async def get_page(self, page_id: str) -> Page:
        async with self._session() as session:
            return _to_page(await self._get_row(session, page_id))

    async def get_page_by_slug(self, slug: str) -> Optional[Page]:
        async with self._session() as session:
            stmt = select(PageRow).where(PageRow.slug == slug)
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _to_page(row) if row else None

    async def list_pages(
        self, status: Optional[PageStatus] = None
    ) -> list[Page]:
        async with self._session() as session:
            stmt = select(PageRow).order_by(PageRow.updated_at.desc())
            if status is not None:
                stmt = stmt.where(PageRow.status == status.value)
            rows = (await session.execute(stmt)).scalars().all()
            return [_to_page(row) for row in rows]

    async def replace_content(
        self,
        page_id: str,
        content_data: Sequence[ComponentInstance],
        *,
        expected_version: Optional[int] = None,
        modified_by: Optional[str] = None,
        change_description: Optional[str] = None,
    ) -> Page:
        async with self._session() as session:
            current = _to_page(await self._get_row(session, page_id))
            check_expected_version(current, expected_version)
            page = next_page(
                current, modified_by, content_data=tuple(content_data)
            )
            return await self._write(
                session, current, page, modified_by, change_description
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
        async with self._session() as session:
            current = _to_page(await self._get_row(session, page_id))
            check_expected_version(current, expected_version)
            page = next_page(current, modified_by, status=status)
            return await self._write(
                session, current, page, modified_by, change_description
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
        async with self._session() as session:
            row = await self._get_row(session, page_id)
            current = _to_page(row)
            check_expected_version(current, expected_version)
            new_slug = fields.get("slug", current.slug)
            if new_slug != current.slug and await self._slug_taken(
                session, new_slug
            ):
                raise ConflictError(
                    f"Slug already in use: {new_slug}", code="page.slug_conflict"
                )

            data = current.model_dump()
            data.update(fields)
            data["updated_at"] = datetime.now(timezone.utc)
            data["last_modified_by"] = modified_by
            page = Page.model_validate(data)

            for key, value in _page_values(page).items():
                setattr(row, key, value)
            try:
                await session.commit()
            except IntegrityError as e:
                raise ConflictError(
                    f"Slug already in use: {new_slug}", code="page.slug_conflict"
                ) from e
            return page

    async def list_versions(self, page_id: str) -> list[PageVersion]:
        async with self._session() as session:
            await self._get_row(session, page_id)
            stmt = (
                select(PageVersionRow)
                .where(PageVersionRow.page_id == page_id)
                .order_by(PageVersionRow.version.desc())
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [_to_version(row) for row in rows]

    async def get_version(self, page_id: str, version: int) -> PageVersion:
        async with self._session() as session:
            await self._get_row(session, page_id)
            stmt = select(PageVersionRow).where(
                PageVersionRow.page_id == page_id,
                PageVersionRow.version == version,
            )
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                raise NotFoundError(
                    f"Version {version} not found for page {page_id}",
                    code="page.version_not_found",
                )
            return _to_version(row)

    async def dispose(self):
        """Closes every pooled connection."""
        await self.engine.dispose()
