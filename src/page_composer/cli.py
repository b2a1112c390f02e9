"""CLI tool for managing pages and the component catalog."""

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
from typing_extensions import Annotated

from page_composer.app import build_mutation_engine, prepare_database
from page_composer.config import ComposerSettings
from page_composer.exceptions import PageComposerError
from page_composer.execution.engine import MutationEngine
from page_composer.models.enums import PageStatus
from page_composer.models.page import Page
from page_composer.persistence.db import make_engine
from page_composer.persistence.sql_registry import import_definitions
from page_composer.registry.catalog import filter_definitions, group_by_category
from page_composer.registry.loader import load_catalog


app = typer.Typer(help="Page Composer Management CLI")
page_app = typer.Typer(help="Manage pages")
component_app = typer.Typer(help="Manage the component catalog")

app.add_typer(page_app, name="page")
app.add_typer(component_app, name="component")


def get_settings() -> ComposerSettings:
    return ComposerSettings.from_env()


def run(action: Callable[[MutationEngine], Awaitable[Any]]) -> Any:
    """Runs one engine action on a fresh connection and reports failures."""

    async def runner():
        settings = get_settings()
        db_engine = make_engine(settings.database_url)
        try:
            await prepare_database(db_engine)
            return await action(build_mutation_engine(settings, db_engine))
        finally:
            await db_engine.dispose()

    try:
        return asyncio.run(runner())
    except PageComposerError as e:
        typer.echo(f"Error: {e.detail}", err=True)
        raise typer.Exit(code=1)


def _page_line(page: Page) -> str:
    return (
        f"[{page.status.value}] {page.id}: {page.title} (/{page.slug}) "
        f"v{page.version}"
    )


@page_app.command("create")
def page_create(
    slug: Annotated[str, typer.Option(help="Unique page slug")],
    title: Annotated[str, typer.Option(help="Page title")],
    meta_title: Annotated[Optional[str], typer.Option(help="SEO title")] = None,
    meta_description: Annotated[
        Optional[str], typer.Option(help="SEO description")
    ] = None,
    layout: Annotated[str, typer.Option(help="Layout template")] = "default",
    user: Annotated[Optional[str], typer.Option(help="Acting user")] = None,
):
    """Creates a new draft page."""
    page = run(
        lambda engine: engine.create_page(
            slug=slug,
            title=title,
            meta_title=meta_title,
            meta_description=meta_description,
            layout_template=layout,
            created_by=user,
        )
    )
    typer.echo(f"Page created: {page.title} (ID: {page.id})")


@page_app.command("list")
def page_list(
    status: Annotated[
        Optional[PageStatus], typer.Option(help="Filter by status")
    ] = None,
):
    """Lists pages, most recently updated first."""
    pages = run(lambda engine: engine.list_pages(status))
    if not pages:
        typer.echo("No pages found.")
        return

    for p in pages:
        typer.echo(_page_line(p))


@page_app.command("show")
def page_show(
    page: Annotated[str, typer.Argument(help="Page ID or slug")],
):
    """Prints a page as JSON."""

    async def lookup(engine: MutationEngine) -> Page:
        found = await engine.get_page_by_slug(page)
        if found is not None:
            return found
        return await engine.get_page(page)

    found = run(lookup)
    typer.echo(json.dumps(found.model_dump(mode="json"), indent=2))


@page_app.command("publish")
def page_publish(
    page_id: Annotated[str, typer.Argument(help="The page ID")],
    user: Annotated[Optional[str], typer.Option(help="Acting user")] = None,
):
    """Publishes a draft or archived page."""
    page = run(lambda engine: engine.publish_page(page_id, modified_by=user))
    typer.echo(f"Page {page.id} is {page.status.value} (v{page.version})")


@page_app.command("unpublish")
def page_unpublish(
    page_id: Annotated[str, typer.Argument(help="The page ID")],
    archive: Annotated[
        bool, typer.Option(help="Archive instead of returning to draft")
    ] = False,
    user: Annotated[Optional[str], typer.Option(help="Acting user")] = None,
):
    """Takes a published page offline."""
    page = run(
        lambda engine: engine.unpublish_page(
            page_id, archive=archive, modified_by=user
        )
    )
    typer.echo(f"Page {page.id} is {page.status.value} (v{page.version})")


@page_app.command("versions")
def page_versions(
    page_id: Annotated[str, typer.Argument(help="The page ID")],
):
    """Lists a page's version history, newest first."""
    versions = run(lambda engine: engine.list_versions(page_id))
    for v in versions:
        typer.echo(
            f"v{v.version} [{v.status.value}] {v.created_at.isoformat()} "
            f"{v.created_by or '-'}: {v.change_description or ''} "
            f"({len(v.content_data)} component(s), {v.checksum[:12]})"
        )


@page_app.command("restore")
def page_restore(
    page_id: Annotated[str, typer.Argument(help="The page ID")],
    version: Annotated[int, typer.Argument(help="Version to restore")],
    user: Annotated[Optional[str], typer.Option(help="Acting user")] = None,
):
    """Restores the content of an earlier version as a new version."""
    page = run(
        lambda engine: engine.restore_version(page_id, version, modified_by=user)
    )
    typer.echo(f"Restored version {version} of {page.id} as v{page.version}")


@component_app.command("list")
def component_list(
    search: Annotated[Optional[str], typer.Option(help="Search text")] = None,
    category: Annotated[
        Optional[str], typer.Option(help="Filter by category")
    ] = None,
):
    """Lists the active component catalog by category."""

    async def listing(engine: MutationEngine):
        return await engine.registry.list_definitions()

    definitions = filter_definitions(run(listing), search, category)
    if not definitions:
        typer.echo("No components found.")
        return

    for group, members in group_by_category(definitions).items():
        typer.echo(f"{group}:")
        for d in members:
            limit = f" (max {d.max_instances})" if d.max_instances else ""
            typer.echo(f"  {d.id}: {d.display_name}{limit}")


@component_app.command("import")
def component_import(
    file_path: Annotated[Path, typer.Argument(help="Path to catalog YAML file")],
):
    """Imports or replaces component definitions from a YAML catalog."""
    if not file_path.exists():
        typer.echo(f"Error: File not found: {file_path}", err=True)
        raise typer.Exit(code=1)

    try:
        definitions = load_catalog(file_path)
    except Exception as e:
        typer.echo(f"Error loading catalog: {str(e)}", err=True)
        raise typer.Exit(code=1)

    async def store():
        db_engine = make_engine(get_settings().database_url)
        try:
            return await import_definitions(db_engine, definitions)
        finally:
            await db_engine.dispose()

    count = asyncio.run(store())
    typer.echo(f"Imported {count} component definition(s) from {file_path}")


if __name__ == "__main__":
    app()
