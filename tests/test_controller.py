import asyncio

import pytest
import pytest_asyncio

from page_composer.editor.canvas import parse_drag_id
from page_composer.editor.controller import VisualEditorController
from page_composer.exceptions import (
    EditorBusyError,
    IndexOutOfRangeError,
    StaleVersionError,
    TransientError,
    ValidationError,
)
from page_composer.execution.engine import MutationEngine
from page_composer.models.enums import PageStatus
from page_composer.persistence.in_memory import InMemoryPageRepository
from page_composer.registry.in_memory import build_default_registry


class GatedPageRepository(InMemoryPageRepository):
    """Holds every content write until `gate` is set."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()
        self.fail_with = None

    async def replace_content(self, page_id, content_data, **kwargs):
        await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return await super().replace_content(page_id, content_data, **kwargs)


@pytest_asyncio.fixture
async def setup():
    registry = build_default_registry()
    repository = GatedPageRepository()
    repository.gate.set()
    engine = MutationEngine(registry, repository)
    page = await engine.create_page(slug="admissions", title="Admissions")
    for t in ["hero_banner", "text_content", "cta_banner"]:
        page = await engine.add_component(page.id, t)
    controller = await VisualEditorController.open(engine, page.id, user_id="editor")
    return controller, engine, repository, registry


def types_of(page):
    return [c.component_type for c in page.content_data]


class TestSelection:
    @pytest.mark.asyncio
    async def test_select_in_and_out_of_bounds(self, setup):
        controller, *_ = setup
        assert controller.select(1) == 1
        assert controller.select(3) is None
        assert controller.select(-1) is None
        controller.select(2)
        controller.clear_selection()
        assert controller.selected_index is None

    @pytest.mark.asyncio
    async def test_toggle_preview(self, setup):
        controller, *_ = setup
        assert controller.toggle_preview() is True
        assert controller.toggle_preview() is False


class TestStructuralEdits:
    @pytest.mark.asyncio
    async def test_add_selects_new_block(self, setup):
        controller, *_ = setup
        version = controller.page.version
        page = await controller.add_component("faculty_grid")
        assert page.version == version + 1
        assert controller.selected_index == 3
        assert controller.is_dirty is True
        assert controller.is_saving is False
        assert controller.pending_page is None

        await controller.add_component("image_gallery", 0)
        assert controller.selected_index == 0
        assert types_of(controller.page)[0] == "image_gallery"

    @pytest.mark.asyncio
    async def test_remove_selected_clears_selection(self, setup):
        controller, *_ = setup
        controller.select(0)
        await controller.remove_component(0)
        assert types_of(controller.page) == ["text_content", "cta_banner"]
        assert controller.selected_index is None

    @pytest.mark.asyncio
    async def test_remove_before_selection_shifts_it(self, setup):
        controller, *_ = setup
        controller.select(2)
        await controller.remove_component(0)
        assert controller.selected_index == 1
        assert controller.page.content_data[1].component_type == "cta_banner"

    @pytest.mark.asyncio
    async def test_remove_after_selection_keeps_it(self, setup):
        controller, *_ = setup
        controller.select(0)
        await controller.remove_component(2)
        assert controller.selected_index == 0

    @pytest.mark.asyncio
    async def test_duplicate_selects_copy(self, setup):
        controller, *_ = setup
        await controller.duplicate_component(1)
        assert controller.selected_index == 2
        assert types_of(controller.page) == [
            "hero_banner", "text_content", "text_content", "cta_banner"
        ]

    @pytest.mark.asyncio
    async def test_reorder_selection_follows_block(self, setup):
        controller, *_ = setup
        controller.select(0)
        await controller.reorder_components(0, 2)
        assert types_of(controller.page) == ["text_content", "cta_banner", "hero_banner"]
        assert controller.selected_index == 2

        controller.select(0)
        await controller.reorder_components(2, 0)
        assert controller.selected_index == 1
        assert controller.page.content_data[1].component_type == "text_content"

    @pytest.mark.asyncio
    async def test_drag_end(self, setup):
        controller, *_ = setup
        version = controller.page.version
        await controller.handle_drag_end("component-2", "component-0")
        assert types_of(controller.page) == ["cta_banner", "hero_banner", "text_content"]
        assert controller.page.version == version + 1

        unchanged = await controller.handle_drag_end("component-1", None)
        assert unchanged.version == version + 1
        unchanged = await controller.handle_drag_end("component-1", "component-1")
        assert unchanged.version == version + 1

        with pytest.raises(ValueError):
            await controller.handle_drag_end("hero", "component-1")

    def test_parse_drag_id(self):
        assert parse_drag_id("component-12") == 12
        for bad in ["component-", "component--1", "block-1"]:
            with pytest.raises(ValueError):
                parse_drag_id(bad)


class TestFailures:
    @pytest.mark.asyncio
    async def test_failed_mutation_keeps_committed_state(self, setup):
        controller, _, repository, _ = setup
        before = controller.page
        controller.select(1)
        repository.fail_with = TransientError("Page store unavailable")

        with pytest.raises(TransientError):
            await controller.remove_component(1)

        assert controller.page == before
        assert controller.selected_index == 1
        assert controller.last_error is not None
        assert controller.last_error.code == "store.unavailable"
        assert controller.is_saving is False
        assert controller.pending_page is None
        assert controller.is_dirty is False

    @pytest.mark.asyncio
    async def test_invalid_index_is_reported(self, setup):
        controller, *_ = setup
        with pytest.raises(IndexOutOfRangeError):
            await controller.remove_component(7)
        assert isinstance(controller.last_error, IndexOutOfRangeError)
        assert controller.is_saving is False

    @pytest.mark.asyncio
    async def test_success_clears_last_error(self, setup):
        controller, *_ = setup
        with pytest.raises(IndexOutOfRangeError):
            await controller.duplicate_component(9)
        await controller.duplicate_component(1)
        assert controller.last_error is None

    @pytest.mark.asyncio
    async def test_optimistic_view_and_busy(self, setup):
        controller, _, repository, _ = setup
        committed = controller.page
        repository.gate.clear()

        task = asyncio.create_task(controller.reorder_components(0, 2))
        for _ in range(5):
            await asyncio.sleep(0)

        assert controller.is_saving is True
        assert types_of(controller.view) == ["text_content", "cta_banner", "hero_banner"]
        assert controller.page == committed
        with pytest.raises(EditorBusyError):
            await controller.remove_component(0)

        repository.gate.set()
        page = await task
        assert controller.page == page
        assert controller.view == page
        assert controller.is_saving is False

    @pytest.mark.asyncio
    async def test_timeout(self, setup):
        controller, _, repository, _ = setup
        controller.timeout = 0.05
        before = controller.page
        repository.gate.clear()

        with pytest.raises(TransientError) as exc:
            await controller.remove_component(0)
        assert exc.value.retryable is True
        with pytest.raises(TransientError) as exc:
            await controller.reorder_components(0, 1)
        assert exc.value.retryable is False

        assert controller.page == before
        assert controller.is_saving is False
        repository.gate.set()

    @pytest.mark.asyncio
    async def test_concurrent_editor_is_detected(self, setup):
        controller, engine, _, _ = setup
        await engine.remove_component(controller.page.id, 0)

        with pytest.raises(StaleVersionError):
            await controller.duplicate_component(0)
        assert isinstance(controller.last_error, StaleVersionError)

        await controller.reload()
        assert types_of(controller.page) == ["text_content", "cta_banner"]
        await controller.duplicate_component(0)
        assert types_of(controller.page)[:2] == ["text_content", "text_content"]


class TestSettings:
    @pytest.mark.asyncio
    async def test_stage_and_commit(self, setup):
        controller, *_ = setup
        controller.select(0)
        draft = controller.stage_field("heading", "Graduate Admissions")
        assert draft["heading"] == "Graduate Admissions"
        assert controller.is_dirty is True
        assert controller.page.content_data[0].settings["heading"] != "Graduate Admissions"

        form = await controller.settings_form()
        assert form.field("heading").value == "Graduate Admissions"

        await controller.update_settings()
        assert controller.page.content_data[0].settings["heading"] == "Graduate Admissions"
        assert controller.draft_settings is None

    @pytest.mark.asyncio
    async def test_invalid_draft_stays_staged(self, setup):
        controller, *_ = setup
        controller.select(0)
        controller.stage_field("height", "enormous")
        with pytest.raises(ValidationError):
            await controller.update_settings()
        assert controller.draft_settings["height"] == "enormous"
        form = await controller.settings_form()
        assert [e.path for e in form.errors] == ["height"]

    @pytest.mark.asyncio
    async def test_selecting_another_block_drops_draft(self, setup):
        controller, *_ = setup
        controller.select(0)
        controller.stage_field("heading", "Draft")
        controller.select(1)
        assert controller.draft_settings is None

    @pytest.mark.asyncio
    async def test_requires_selection(self, setup):
        controller, *_ = setup
        assert await controller.settings_form() is None
        with pytest.raises(ValidationError) as exc:
            await controller.update_settings()
        assert exc.value.code == "editor.no_selection"
        with pytest.raises(ValidationError):
            controller.stage_field("heading", "x")

    @pytest.mark.asyncio
    async def test_explicit_settings_and_index(self, setup):
        controller, *_ = setup
        settings = dict(controller.page.content_data[1].settings, content="Apply by May")
        await controller.update_settings(settings, index=1)
        assert controller.page.content_data[1].settings["content"] == "Apply by May"

    @pytest.mark.asyncio
    async def test_explicit_index_out_of_range(self, setup):
        controller, *_ = setup
        version = controller.page.version
        with pytest.raises(IndexOutOfRangeError):
            await controller.update_settings(index=5)
        assert isinstance(controller.last_error, IndexOutOfRangeError)
        assert controller.is_saving is False
        assert controller.page.version == version

    @pytest.mark.asyncio
    async def test_draft_only_applies_to_selected_block(self, setup):
        controller, *_ = setup
        controller.select(0)
        controller.stage_field("heading", "Graduate Admissions")
        before = controller.page.content_data[1].settings
        await controller.update_settings(index=1)
        assert controller.page.content_data[1].settings == before
        assert controller.draft_settings["heading"] == "Graduate Admissions"

    @pytest.mark.asyncio
    async def test_selected_settings(self, setup):
        controller, *_ = setup
        assert controller.selected_settings() is None
        controller.select(2)
        assert controller.selected_settings() == controller.page.content_data[2].settings
        controller.stage_field("heading", "Visit campus")
        assert controller.selected_settings()["heading"] == "Visit campus"


class TestSession:
    @pytest.mark.asyncio
    async def test_save_commits_draft_and_clears_dirty(self, setup):
        controller, *_ = setup
        controller.select(1)
        controller.stage_field("content", "Welcome")
        page = await controller.save()
        assert page.content_data[1].settings["content"] == "Welcome"
        assert controller.is_dirty is False

    @pytest.mark.asyncio
    async def test_save_detects_foreign_changes(self, setup):
        controller, engine, _, _ = setup
        await controller.add_component("faculty_grid")
        await engine.publish_page(controller.page.id)
        with pytest.raises(StaleVersionError):
            await controller.save()
        assert controller.is_dirty is True

        await controller.reload()
        assert controller.page.status == PageStatus.PUBLISHED
        assert controller.is_dirty is False

    @pytest.mark.asyncio
    async def test_reload_clears_stale_selection(self, setup):
        controller, engine, _, _ = setup
        controller.select(2)
        await engine.remove_component(controller.page.id, 2)
        await controller.reload()
        assert controller.selected_index is None

    @pytest.mark.asyncio
    async def test_publish_and_unpublish(self, setup):
        controller, *_ = setup
        await controller.publish()
        assert controller.page.status == PageStatus.PUBLISHED
        await controller.unpublish(archive=True)
        assert controller.page.status == PageStatus.ARCHIVED


class TestViews:
    @pytest.mark.asyncio
    async def test_render_canvas(self, setup):
        controller, *_ = setup
        controller.select(1)
        canvas = await controller.render_canvas()
        assert [b.drag_id for b in canvas.blocks] == [
            "component-0", "component-1", "component-2"
        ]
        assert [b.selected for b in canvas.blocks] == [False, True, False]
        assert canvas.blocks[0].display_name == "Hero Banner"
        assert "Welcome to the University" in canvas.blocks[0].markup
        assert "(selected)" in canvas.to_markdown()

    @pytest.mark.asyncio
    async def test_preview_hides_selection(self, setup):
        controller, *_ = setup
        controller.select(1)
        controller.toggle_preview()
        canvas = await controller.render_canvas()
        assert canvas.preview_mode is True
        assert not any(b.selected for b in canvas.blocks)
        assert "(selected)" not in canvas.to_markdown()

    @pytest.mark.asyncio
    async def test_retired_component_renders_as_unavailable(self, setup):
        controller, _, _, registry = setup
        definition = registry._definitions["cta_banner"]
        registry.register(definition.model_copy(update={"is_active": False}))
        canvas = await controller.render_canvas()
        assert canvas.blocks[2].available is False
        assert "Unavailable" in canvas.blocks[2].markup

    @pytest.mark.asyncio
    async def test_library(self, setup):
        controller, *_ = setup
        groups = await controller.library()
        assert "headers" in groups
        assert sum(len(v) for v in groups.values()) == 6

        found = await controller.library(search="faculty")
        assert [d.id for g in found.values() for d in g] == ["faculty_grid"]
        only_media = await controller.library(category="media")
        assert list(only_media) == ["media"]
