"""Read-only component registry backed by the `component_definitions` table.

The catalog is maintained outside the editor; `import_definitions` is the
administrative entry point the CLI uses to load it.
"""

from typing import Iterable, Optional

from jsonschema import Draft7Validator
from sqlalchemy import func, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine

from page_composer.config import DEFAULT_DATABASE_URL
from page_composer.exceptions import NotFoundError, TransientError
from page_composer.models.component import ComponentDefinition
from page_composer.persistence.db import (
    create_tables,
    make_engine,
    make_session_factory,
)
from page_composer.persistence.models import ComponentDefinitionRow
from page_composer.registry.abstract import ComponentRegistry
from page_composer.registry.catalog import sort_definitions


def _to_definition(row: ComponentDefinitionRow) -> ComponentDefinition:
    return ComponentDefinition(
        id=row.id,
        display_name=row.display_name,
        description=row.description or "",
        category=row.category,
        icon=row.icon,
        settings_schema=row.settings_schema,
        ui_schema=row.ui_schema or {},
        default_settings=row.default_settings or {},
        is_active=row.is_active,
        max_instances=row.max_instances,
        preview_image_url=row.preview_image_url,
    )


class SQLComponentRegistry(ComponentRegistry):
    """Registry that reads active definitions from the database."""

    def __init__(
        self,
        database_url: str = DEFAULT_DATABASE_URL,
        engine: Optional[AsyncEngine] = None,
    ):
        self.engine = engine or make_engine(database_url)
        self.SessionLocal = make_session_factory(self.engine)
        self._tables_ready = False

    async def _ensure_tables(self):
        if not self._tables_ready:
            await create_tables(self.engine)
            self._tables_ready = True

    async def get_definition(self, component_type: str) -> ComponentDefinition:
        try:
            await self._ensure_tables()
            async with self.SessionLocal() as session:
                row = await session.get(ComponentDefinitionRow, component_type)
        except (OperationalError, InterfaceError) as e:
            raise TransientError(f"Component catalog unavailable: {e.orig}") from e
        if row is None or not row.is_active:
            raise NotFoundError(
                f"Component type not in registry: {component_type}",
                code="component.unknown",
            )
        return _to_definition(row)

    async def list_definitions(self) -> list[ComponentDefinition]:
        try:
            await self._ensure_tables()
            async with self.SessionLocal() as session:
                stmt = select(ComponentDefinitionRow).where(
                    ComponentDefinitionRow.is_active.is_(True)
                )
                rows = (await session.execute(stmt)).scalars().all()
        except (OperationalError, InterfaceError) as e:
            raise TransientError(f"Component catalog unavailable: {e.orig}") from e
        return sort_definitions(_to_definition(row) for row in rows)


async def import_definitions(
    engine: AsyncEngine, definitions: Iterable[ComponentDefinition]
) -> int:
    """Inserts or replaces catalog rows.

    Args:
        engine: The database engine.
        definitions: Definitions to store.

    Returns:
        The number of definitions written.
    """
    await create_tables(engine)
    count = 0
    async with make_session_factory(engine)() as session:
        for definition in definitions:
            Draft7Validator.check_schema(definition.settings_schema)
            await session.merge(
                ComponentDefinitionRow(**definition.model_dump())
            )
            count += 1
        await session.commit()
    return count


async def seed_definitions(
    engine: AsyncEngine, definitions: Iterable[ComponentDefinition]
) -> int:
    """Imports `definitions` only when the catalog table is empty.

    Returns:
        The number of definitions written; 0 if the catalog already had rows.
    """
    await create_tables(engine)
    async with make_session_factory(engine)() as session:
        count = await session.scalar(
            select(func.count()).select_from(ComponentDefinitionRow)
        )
    if count:
        return 0
    return await import_definitions(engine, definitions)
