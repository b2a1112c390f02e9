"""Application wiring: stores, registry, engine and the Gradio editor."""

import asyncio
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from page_composer.config import ComposerSettings
from page_composer.execution.engine import MutationEngine
from page_composer.observability.logging import get_logger, setup_logging
from page_composer.persistence.db import create_tables, make_engine
from page_composer.persistence.sql_registry import (
    SQLComponentRegistry,
    seed_definitions,
)
from page_composer.persistence.sql_repository import SQLPageRepository
from page_composer.registry.abstract import ComponentRegistry
from page_composer.registry.in_memory import build_default_catalog
from page_composer.registry.loader import load_registry
from page_composer.ui.layout import create_ui


logger = get_logger(__name__)


def build_mutation_engine(
    settings: ComposerSettings, db_engine: Optional[AsyncEngine] = None
) -> MutationEngine:
    """Builds the engine over the configured stores.

    A YAML catalog, when configured, replaces the database catalog.
    """
    db_engine = db_engine or make_engine(settings.database_url)
    registry: ComponentRegistry
    if settings.catalog_path:
        registry = load_registry(settings.catalog_path)
    else:
        registry = SQLComponentRegistry(engine=db_engine)
    return MutationEngine(registry, SQLPageRepository(engine=db_engine))


async def prepare_database(db_engine: AsyncEngine) -> int:
    """Creates the tables and seeds the built-in catalog into an empty DB.

    Returns:
        The number of definitions seeded.
    """
    await create_tables(db_engine)
    seeded = await seed_definitions(db_engine, build_default_catalog())
    if seeded:
        logger.info(f"Seeded {seeded} built-in component definition(s)")
    return seeded


class PageComposerApp:
    def __init__(self, settings: Optional[ComposerSettings] = None) -> None:
        self.settings = settings or ComposerSettings.from_env()
        self.db_engine = make_engine(self.settings.database_url)
        self.engine = build_mutation_engine(self.settings, self.db_engine)

    async def _prepare(self) -> None:
        await prepare_database(self.db_engine)
        # Connections are bound to this event loop; Gradio runs its own.
        await self.db_engine.dispose()

    def launch(self) -> None:
        setup_logging(self.settings.log_level)
        asyncio.run(self._prepare())
        demo = create_ui(self.engine, timeout=self.settings.mutation_timeout)
        demo.launch()


def main() -> None:
    PageComposerApp().launch()


if __name__ == "__main__":
    main()
