import json
import re

import pytest
from typer.testing import CliRunner

from page_composer.cli import app


runner = CliRunner()

CATALOG_YAML = """\
components:
  - id: news_list
    display_name: News List
    category: content
    settings_schema:
      type: object
      properties:
        limit: {type: integer, default: 5}
  - id: spacer
    display_name: Spacer
    category: layout
    max_instances: 3
"""


def created_id(output: str) -> str:
    match = re.search(r"\(ID: (\w+)\)", output)
    assert match, output
    return match.group(1)


class TestCLI:
    @pytest.fixture(autouse=True)
    def setup_db(self, tmp_path, monkeypatch):
        db_file = tmp_path / "test_cli.sqlite3"
        monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_file}")
        monkeypatch.delenv("PAGE_COMPOSER_CATALOG", raising=False)

    def create(self, slug="home", title="Home") -> str:
        result = runner.invoke(
            app, ["page", "create", "--slug", slug, "--title", title]
        )
        assert result.exit_code == 0, result.output
        assert f"Page created: {title}" in result.output
        return created_id(result.output)

    def test_page_list_empty(self):
        result = runner.invoke(app, ["page", "list"])
        assert result.exit_code == 0
        assert "No pages found." in result.output

    def test_page_create_and_list(self):
        page_id = self.create()
        result = runner.invoke(app, ["page", "list"])
        assert result.exit_code == 0
        assert f"[DRAFT] {page_id}: Home (/home) v1" in result.output

        result = runner.invoke(app, ["page", "list", "--status", "PUBLISHED"])
        assert result.exit_code == 0
        assert "No pages found." in result.output

    def test_duplicate_slug_fails(self):
        self.create()
        result = runner.invoke(
            app, ["page", "create", "--slug", "home", "--title", "Again"]
        )
        assert result.exit_code == 1
        assert "Error: Slug already in use: home" in result.output

    def test_invalid_slug_fails(self):
        result = runner.invoke(
            app, ["page", "create", "--slug", "Not A Slug", "--title", "Bad"]
        )
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_page_show_by_id_and_slug(self):
        page_id = self.create(slug="admissions", title="Admissions")
        for ref in (page_id, "admissions"):
            result = runner.invoke(app, ["page", "show", ref])
            assert result.exit_code == 0
            data = json.loads(result.output)
            assert data["id"] == page_id
            assert data["status"] == "DRAFT"
            assert data["content_data"] == []

    def test_page_show_unknown(self):
        result = runner.invoke(app, ["page", "show", "missing"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_publish_unpublish_cycle(self):
        page_id = self.create()
        result = runner.invoke(app, ["page", "publish", page_id, "--user", "ada"])
        assert result.exit_code == 0
        assert f"Page {page_id} is PUBLISHED (v2)" in result.output

        result = runner.invoke(app, ["page", "unpublish", page_id, "--archive"])
        assert result.exit_code == 0
        assert f"Page {page_id} is ARCHIVED (v3)" in result.output

        result = runner.invoke(app, ["page", "unpublish", page_id])
        assert result.exit_code == 1
        assert "archived" in result.output

    def test_versions_and_restore(self):
        page_id = self.create()
        runner.invoke(app, ["page", "publish", page_id, "--user", "ada"])

        result = runner.invoke(app, ["page", "versions", page_id])
        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert lines[0].startswith("v2 [PUBLISHED]")
        assert "ada: Published from DRAFT" in lines[0]
        assert lines[1].startswith("v1 [DRAFT]")

        result = runner.invoke(app, ["page", "restore", page_id, "1"])
        assert result.exit_code == 0
        assert f"Restored version 1 of {page_id} as v3" in result.output

        result = runner.invoke(app, ["page", "restore", page_id, "9"])
        assert result.exit_code == 1


class TestComponentCLI:
    @pytest.fixture(autouse=True)
    def setup_db(self, tmp_path, monkeypatch):
        db_file = tmp_path / "test_components.sqlite3"
        monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_file}")
        monkeypatch.delenv("PAGE_COMPOSER_CATALOG", raising=False)

    def test_list_seeded_catalog(self):
        result = runner.invoke(app, ["component", "list"])
        assert result.exit_code == 0
        assert "headers:" in result.output
        assert "  hero_banner: Hero Banner (max 1)" in result.output
        assert "  text_content: Text Content" in result.output

    def test_list_filters(self):
        result = runner.invoke(app, ["component", "list", "--search", "faculty"])
        assert result.exit_code == 0
        assert "faculty_grid" in result.output
        assert "hero_banner" not in result.output

        result = runner.invoke(app, ["component", "list", "--category", "nothing"])
        assert result.exit_code == 0
        assert "No components found." in result.output

    def test_import(self, tmp_path):
        catalog = tmp_path / "catalog.yaml"
        catalog.write_text(CATALOG_YAML)
        result = runner.invoke(app, ["component", "import", str(catalog)])
        assert result.exit_code == 0
        assert "Imported 2 component definition(s)" in result.output

        result = runner.invoke(app, ["component", "list", "--category", "layout"])
        assert "  spacer: Spacer (max 3)" in result.output

    def test_import_missing_file(self, tmp_path):
        result = runner.invoke(
            app, ["component", "import", str(tmp_path / "nope.yaml")]
        )
        assert result.exit_code == 1
        assert "Error: File not found" in result.output

    def test_import_bad_catalog(self, tmp_path):
        catalog = tmp_path / "catalog.yaml"
        catalog.write_text("components: nope\n")
        result = runner.invoke(app, ["component", "import", str(catalog)])
        assert result.exit_code == 1
        assert "Error loading catalog" in result.output
