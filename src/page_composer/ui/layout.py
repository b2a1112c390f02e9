"""Gradio layout and event handling for the page editor.

Each browser session keeps its own editing controller in a `gr.State`.
Every handler is a thin adapter: it takes that controller, calls one
controller method, and returns the controller plus its projection onto the
widgets. Errors are shown in the error panel instead of crashing the event.
"""

import json
from typing import Any, Optional

import gradio as gr

from page_composer.editor.controller import VisualEditorController
from page_composer.exceptions import PageComposerError
from page_composer.execution.engine import MutationEngine
from page_composer.registry.catalog import (
    ALL_CATEGORIES,
    filter_definitions,
    list_categories,
)


DEFAULT_USER_ID = "editor"


def _block_choices(controller: VisualEditorController) -> list[tuple[str, int]]:
    return [
        (f"{i}: {c.component_type}", i)
        for i, c in controller.page.ordered()
    ]


def _status_markdown(controller: VisualEditorController) -> str:
    page = controller.page
    flags = []
    if controller.is_dirty:
        flags.append("unsaved changes")
    if controller.preview_mode:
        flags.append("preview")
    suffix = f" ({', '.join(flags)})" if flags else ""
    return (
        f"**{page.title}** `/{page.slug}` | {page.status.value} | "
        f"v{page.version}{suffix}"
    )


Session = Optional[VisualEditorController]


class EditorUI:
    """Serves UI events; the editing session travels in each client's state."""

    def __init__(
        self,
        engine: MutationEngine,
        *,
        timeout: Optional[float] = None,
        user_id: str = DEFAULT_USER_ID,
    ):
        self.engine = engine
        self.timeout = timeout
        self.user_id = user_id
        self.ui: dict[str, Any] = {}

    async def session(
        self, page_id: str, controller: Session = None
    ) -> VisualEditorController:
        """Returns the client's controller, opening a new one on page change."""
        if controller is not None and controller.page.id == page_id:
            return controller
        return await VisualEditorController.open(
            self.engine, page_id, timeout=self.timeout, user_id=self.user_id
        )

    async def render(
        self, controller: VisualEditorController, error: str = ""
    ) -> tuple:
        """Projects a session onto (canvas, blocks, status, settings, error)."""
        canvas = await controller.render_canvas()
        values = controller.selected_settings()
        settings = ""
        if values is not None:
            settings = json.dumps(values, indent=2, default=str)
        return (
            canvas.to_markdown(),
            gr.update(
                choices=_block_choices(controller),
                value=controller.selected_index,
            ),
            _status_markdown(controller),
            settings,
            error,
        )

    async def _apply(
        self, page_id: Optional[str], controller: Session, action
    ) -> tuple:
        if not page_id:
            return (None, "", gr.update(choices=[]), "", "", "Open a page first.")
        try:
            controller = await self.session(page_id, controller)
        except PageComposerError as e:
            return (None, "", gr.update(choices=[]), "", "", e.detail)
        try:
            await action(controller)
        except PageComposerError as e:
            return (controller, *await self.render(controller, error=e.detail))
        except (ValueError, TypeError) as e:
            return (controller, *await self.render(controller, error=str(e)))
        return (controller, *await self.render(controller))

    # -- events ---------------------------------------------------------

    async def on_load(self):
        pages = await self.engine.list_pages()
        definitions = await self.engine.registry.list_definitions()
        return (
            gr.update(choices=[(f"{p.title} ({p.slug})", p.id) for p in pages]),
            gr.update(
                choices=[(d.display_name, d.id) for d in definitions]
            ),
            gr.update(
                choices=list_categories(definitions), value=ALL_CATEGORIES
            ),
        )

    async def on_open(self, page_id: Optional[str], controller: Session):
        return await self._apply(page_id, controller, lambda c: c.reload())

    async def on_library_filter(self, search: str, category: str):
        definitions = await self.engine.registry.list_definitions()
        matches = filter_definitions(definitions, search, category)
        return gr.update(choices=[(d.display_name, d.id) for d in matches])

    async def on_add(
        self,
        page_id: Optional[str],
        component_type: Optional[str],
        controller: Session,
    ):
        async def add(c: VisualEditorController):
            if not component_type:
                raise ValueError("Pick a component from the library first.")
            await c.add_component(component_type)

        return await self._apply(page_id, controller, add)

    async def on_select(
        self, page_id: Optional[str], index: Optional[int], controller: Session
    ):
        async def select(c: VisualEditorController):
            c.select(None if index is None else int(index))

        return await self._apply(page_id, controller, select)

    async def on_remove(
        self, page_id: Optional[str], index: Optional[int], controller: Session
    ):
        return await self._apply(
            page_id,
            controller,
            lambda c: c.remove_component(_require_index(index)),
        )

    async def on_duplicate(
        self, page_id: Optional[str], index: Optional[int], controller: Session
    ):
        return await self._apply(
            page_id,
            controller,
            lambda c: c.duplicate_component(_require_index(index)),
        )

    async def on_move(
        self,
        page_id: Optional[str],
        index: Optional[int],
        to_index: Any,
        controller: Session,
    ):
        return await self._apply(
            page_id,
            controller,
            lambda c: c.reorder_components(
                _require_index(index), _require_index(to_index)
            ),
        )

    async def on_save_settings(
        self, page_id: Optional[str], raw: str, controller: Session
    ):
        async def commit(c: VisualEditorController):
            settings = json.loads(raw or "{}")
            if not isinstance(settings, dict):
                raise ValueError("Settings must be a JSON object")
            if c.draft_settings is None and settings == c.selected_settings():
                return
            await c.update_settings(settings)

        return await self._apply(page_id, controller, commit)

    async def on_publish(self, page_id: Optional[str], controller: Session):
        return await self._apply(page_id, controller, lambda c: c.publish())

    async def on_unpublish(self, page_id: Optional[str], controller: Session):
        return await self._apply(page_id, controller, lambda c: c.unpublish())

    async def on_toggle_preview(
        self, page_id: Optional[str], controller: Session
    ):
        async def toggle(c: VisualEditorController):
            c.toggle_preview()

        return await self._apply(page_id, controller, toggle)

    async def on_save(self, page_id: Optional[str], controller: Session):
        return await self._apply(page_id, controller, lambda c: c.save())

    # -- layout ---------------------------------------------------------

    def build_layout(self) -> gr.Blocks:
        with gr.Blocks(title="page-composer") as demo:
            with gr.Row():
                with gr.Column(scale=1, min_width=250):
                    gr.Markdown("### Pages")
                    self.ui["page_dropdown"] = gr.Dropdown(
                        choices=[], label="Page"
                    )
                    gr.Markdown("### Component library")
                    self.ui["library_search"] = gr.Textbox(label="Search")
                    self.ui["library_category"] = gr.Dropdown(
                        choices=[ALL_CATEGORIES],
                        value=ALL_CATEGORIES,
                        label="Category",
                    )
                    self.ui["library_choice"] = gr.Dropdown(
                        choices=[], label="Component"
                    )
                    self.ui["add_btn"] = gr.Button("Add", variant="primary")

                with gr.Column(scale=2):
                    self.ui["status_view"] = gr.Markdown("")
                    with gr.Row():
                        self.ui["preview_btn"] = gr.Button("Toggle preview")
                        self.ui["save_btn"] = gr.Button("Save")
                        self.ui["publish_btn"] = gr.Button(
                            "Publish", variant="primary"
                        )
                        self.ui["unpublish_btn"] = gr.Button(
                            "Unpublish", variant="stop"
                        )
                    self.ui["canvas_view"] = gr.Markdown("")
                    self.ui["error_view"] = gr.Markdown("")

                with gr.Column(scale=1, min_width=300):
                    gr.Markdown("### Selected component")
                    self.ui["block_dropdown"] = gr.Dropdown(
                        choices=[], label="Component"
                    )
                    with gr.Row():
                        self.ui["remove_btn"] = gr.Button("Remove", variant="stop")
                        self.ui["duplicate_btn"] = gr.Button("Duplicate")
                    with gr.Row():
                        self.ui["move_to"] = gr.Number(
                            label="Move to position", precision=0
                        )
                        self.ui["move_btn"] = gr.Button("Move")
                    self.ui["settings_editor"] = gr.Code(
                        label="Settings", language="json"
                    )
                    self.ui["save_settings_btn"] = gr.Button("Apply settings")

            self.ui["session_state"] = gr.State(None)
            self.ui["demo"] = demo
        return demo

    def bind_events(self) -> None:
        demo: gr.Blocks = self.ui["demo"]
        page_dropdown = self.ui["page_dropdown"]
        block_dropdown = self.ui["block_dropdown"]
        library_choice = self.ui["library_choice"]
        library_search = self.ui["library_search"]
        library_category = self.ui["library_category"]
        session_state = self.ui["session_state"]

        session_outputs = [
            session_state,
            self.ui["canvas_view"],
            block_dropdown,
            self.ui["status_view"],
            self.ui["settings_editor"],
            self.ui["error_view"],
        ]

        def on_session(trigger, fn, *inputs):
            trigger(
                fn=fn,
                inputs=[page_dropdown, *inputs, session_state],
                outputs=session_outputs,
            )

        with demo:
            demo.load(
                fn=self.on_load,
                inputs=[],
                outputs=[page_dropdown, library_choice, library_category],
            )
            library_search.submit(
                fn=self.on_library_filter,
                inputs=[library_search, library_category],
                outputs=[library_choice],
            )
            library_category.change(
                fn=self.on_library_filter,
                inputs=[library_search, library_category],
                outputs=[library_choice],
            )

            on_session(page_dropdown.change, self.on_open)
            on_session(self.ui["add_btn"].click, self.on_add, library_choice)
            on_session(block_dropdown.input, self.on_select, block_dropdown)
            on_session(self.ui["remove_btn"].click, self.on_remove, block_dropdown)
            on_session(
                self.ui["duplicate_btn"].click, self.on_duplicate, block_dropdown
            )
            on_session(
                self.ui["move_btn"].click,
                self.on_move,
                block_dropdown,
                self.ui["move_to"],
            )
            on_session(
                self.ui["save_settings_btn"].click,
                self.on_save_settings,
                self.ui["settings_editor"],
            )
            on_session(self.ui["publish_btn"].click, self.on_publish)
            on_session(self.ui["unpublish_btn"].click, self.on_unpublish)
            on_session(self.ui["preview_btn"].click, self.on_toggle_preview)
            on_session(self.ui["save_btn"].click, self.on_save)


def _require_index(value: Any) -> int:
    if value is None or value == "":
        raise ValueError("Select a component first.")
    return int(value)


def create_ui(
    engine: MutationEngine, *, timeout: Optional[float] = None
) -> gr.Blocks:
    """Constructs the editor UI with its event handlers bound.

    Args:
        engine: The mutation engine every edit goes through.
        timeout: Optional per-call store timeout in seconds.

    Returns:
        A Gradio gr.Blocks object containing the editor.
    """
    editor = EditorUI(engine, timeout=timeout)
    demo = editor.build_layout()
    editor.bind_events()
    return demo
