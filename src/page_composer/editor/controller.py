"""Stateful editing session for one page.

The controller owns UI-only state (selection, preview toggle, dirty and
saving flags) and turns each user gesture into exactly one call on the
MutationEngine. While that call is in flight the controller exposes an
optimistic view of the page; the committed page only changes once the call
returns.
"""

import asyncio
from contextlib import asynccontextmanager
from functools import partial
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from page_composer.editor.canvas import (
    CanvasBlock,
    CanvasView,
    drag_id,
    parse_drag_id,
)
from page_composer.exceptions import (
    EditorBusyError,
    NotFoundError,
    PageComposerError,
    StaleVersionError,
    TransientError,
    ValidationError,
)
from page_composer.execution import transforms
from page_composer.execution.engine import MutationEngine
from page_composer.forms.renderer import apply_field_change, render_form
from page_composer.models.component import ComponentDefinition
from page_composer.models.form import FormView
from page_composer.models.page import ComponentInstance, Page
from page_composer.observability.logging import get_logger, page_context
from page_composer.registry.catalog import filter_definitions, group_by_category
from page_composer.rendering import ComponentRenderer, PlaceholderRenderer


logger = get_logger(__name__)

Selection = Optional[int]


def _follow_move(selected: Selection, from_index: int, to_index: int) -> Selection:
    if selected is None:
        return None
    if selected == from_index:
        return to_index
    if from_index < selected <= to_index:
        return selected - 1
    if to_index <= selected < from_index:
        return selected + 1
    return selected


def _after_remove(selected: Selection, index: int) -> Selection:
    if selected is None or selected == index:
        return None
    if selected > index:
        return selected - 1
    return selected


class VisualEditorController:
    """One user's editing session on one page.

    Attributes:
        engine: The mutation engine every change goes through.
        page: The last page state confirmed by the store.
        selected_index: The selected block, or None.
        preview_mode: Whether the canvas renders read-only.
        is_dirty: Whether the session has changes not yet confirmed by
            `save()`, including staged settings edits.
        is_saving: Whether a store call is in flight.
        last_error: The error raised by the most recent failed call.
        pending_page: Optimistic page shown while a mutation is in flight.
        draft_settings: Staged, uncommitted settings for the selected block.
    """

    def __init__(
        self,
        engine: MutationEngine,
        page: Page,
        *,
        renderer: Optional[ComponentRenderer] = None,
        timeout: Optional[float] = None,
        user_id: Optional[str] = None,
    ):
        self.engine = engine
        self.page = page
        self.renderer = renderer or PlaceholderRenderer()
        self.timeout = timeout
        self.user_id = user_id

        self.selected_index: Selection = None
        self.preview_mode = False
        self.is_dirty = False
        self.is_saving = False
        self.last_error: Optional[PageComposerError] = None
        self.pending_page: Optional[Page] = None
        self.draft_settings: Optional[dict[str, Any]] = None

    @classmethod
    async def open(
        cls, engine: MutationEngine, page_id: str, **kwargs: Any
    ) -> "VisualEditorController":
        """Loads a page and starts a session on it.

        Raises:
            NotFoundError: If the page does not exist.
        """
        page = await engine.get_page(page_id)
        return cls(engine, page, **kwargs)

    @property
    def view(self) -> Page:
        """The page to display: optimistic while saving, committed otherwise."""
        return self.pending_page or self.page

    # -- UI-only state --------------------------------------------------

    def select(self, index: Selection) -> Selection:
        """Selects a block. Out-of-range indices clear the selection."""
        if index != self.selected_index:
            self.draft_settings = None
        if index is None or not 0 <= index < len(self.page.content_data):
            self.selected_index = None
        else:
            self.selected_index = index
        return self.selected_index

    def clear_selection(self):
        self.select(None)

    def toggle_preview(self) -> bool:
        self.preview_mode = not self.preview_mode
        return self.preview_mode

    def _repair_selection(self):
        if self.selected_index is not None and not (
            0 <= self.selected_index < len(self.page.content_data)
        ):
            self.selected_index = None
            self.draft_settings = None

    # -- call plumbing --------------------------------------------------

    @asynccontextmanager
    async def _in_flight(self) -> AsyncIterator[None]:
        if self.is_saving:
            raise EditorBusyError(
                f"A change to page {self.page.id} is still being saved"
            )
        self.is_saving = True
        self.last_error = None
        try:
            yield
        except PageComposerError as e:
            self.last_error = e
            logger.warning(
                f"Editor call failed: {e.detail}",
                extra=page_context(self.page.id, code=e.code),
            )
            raise
        finally:
            self.pending_page = None
            self.is_saving = False

    async def _await(self, call: Awaitable[Page], retryable: bool = True) -> Page:
        if self.timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, self.timeout)
        except asyncio.TimeoutError as e:
            raise TransientError(
                f"Page store did not answer within {self.timeout}s",
                retryable=retryable,
            ) from e

    async def _mutate(
        self,
        call: Callable[..., Awaitable[Page]],
        optimistic: Optional[Callable[[tuple], tuple]] = None,
        reselect: Optional[Callable[[Selection, Page], Selection]] = None,
        retryable: bool = True,
    ) -> Page:
        async with self._in_flight():
            if optimistic is not None:
                self.pending_page = self.page.model_copy(
                    update={"content_data": optimistic(self.page.content_data)}
                )
            updated = await self._await(
                call(expected_version=self.page.version, modified_by=self.user_id),
                retryable,
            )

        changed = updated.version != self.page.version
        self.page = updated
        if changed:
            self.is_dirty = True
            if reselect is not None:
                self.selected_index = reselect(self.selected_index, updated)
        self._repair_selection()
        return updated

    # -- structural mutations -------------------------------------------

    async def add_component(
        self, component_type: str, position: Optional[int] = None
    ) -> Page:
        """Adds a block and selects it."""
        placeholder = ComponentInstance(component_type=component_type)

        def select_new(_: Selection, page: Page) -> Selection:
            self.draft_settings = None
            return len(page.content_data) - 1 if position is None else position

        return await self._mutate(
            partial(
                self.engine.add_component, self.page.id, component_type, position
            ),
            optimistic=lambda c: transforms.insert_component(
                c, placeholder, position
            ),
            reselect=select_new,
        )

    async def remove_component(self, index: int) -> Page:
        """Removes a block. Removing the selected block clears the selection."""

        def reselect(selected: Selection, _: Page) -> Selection:
            if selected == index:
                self.draft_settings = None
            return _after_remove(selected, index)

        return await self._mutate(
            partial(self.engine.remove_component, self.page.id, index),
            optimistic=lambda c: transforms.remove_component(c, index),
            reselect=reselect,
        )

    async def duplicate_component(self, index: int) -> Page:
        """Duplicates a block and selects the copy."""

        def select_copy(_: Selection, __: Page) -> Selection:
            self.draft_settings = None
            return index + 1

        return await self._mutate(
            partial(self.engine.duplicate_component, self.page.id, index),
            optimistic=lambda c: transforms.duplicate_component(c, index),
            reselect=select_copy,
            retryable=False,
        )

    async def reorder_components(self, from_index: int, to_index: int) -> Page:
        """Moves a block; the selection follows the block it pointed at."""
        return await self._mutate(
            partial(
                self.engine.reorder_components, self.page.id, from_index, to_index
            ),
            optimistic=lambda c: transforms.move_component(c, from_index, to_index),
            reselect=lambda s, _: _follow_move(s, from_index, to_index),
            retryable=False,
        )

    async def handle_drag_end(
        self, active_id: str, over_id: Optional[str]
    ) -> Page:
        """Applies a finished drag gesture.

        Dropping outside any block or onto the dragged block itself changes
        nothing and makes no store call.

        Raises:
            ValueError: If an id is not of the form 'component-<index>'.
        """
        if over_id is None or over_id == active_id:
            return self.page
        return await self.reorder_components(
            parse_drag_id(active_id), parse_drag_id(over_id)
        )

    # -- settings -------------------------------------------------------

    def _require_selection(self) -> int:
        if self.selected_index is None:
            raise ValidationError(
                "No component is selected", code="editor.no_selection"
            )
        return self.selected_index

    def stage_field(self, path: str, value: Any) -> dict[str, Any]:
        """Stages one field edit on the selected block without saving it.

        Returns:
            The full staged settings object.
        """
        index = self._require_selection()
        base = self.draft_settings
        if base is None:
            base = self.page.content_data[index].settings
        self.draft_settings = apply_field_change(base, path, value)
        self.is_dirty = True
        return self.draft_settings

    def discard_draft(self):
        self.draft_settings = None

    async def update_settings(
        self,
        settings: Optional[dict[str, Any]] = None,
        index: Optional[int] = None,
    ) -> Page:
        """Commits settings for a block.

        Args:
            settings: The complete settings object. Defaults to the staged
                draft for the selected block.
            index: Block to update. Defaults to the selection.

        Raises:
            ValidationError: If nothing is selected or the settings are
                invalid. A rejected draft stays staged.
            IndexOutOfRangeError: If `index` does not address a block.
        """
        if index is None:
            index = self._require_selection()
        if settings is None and index == self.selected_index:
            settings = self.draft_settings
        if settings is None:
            async with self._in_flight():
                transforms.check_index(self.page.content_data, index)
            settings = self.page.content_data[index].settings

        updated = await self._mutate(
            partial(
                self.engine.update_component_settings,
                self.page.id,
                index,
                settings,
            ),
            optimistic=lambda c: transforms.replace_settings(c, index, settings),
        )
        if index == self.selected_index:
            self.draft_settings = None
        return updated

    def selected_settings(self) -> Optional[dict[str, Any]]:
        """The staged draft for the selected block, else its stored settings."""
        if self.selected_index is None:
            return None
        if self.draft_settings is not None:
            return self.draft_settings
        return self.page.content_data[self.selected_index].settings

    async def settings_form(self) -> Optional[FormView]:
        """Builds the settings form for the selected block, if any."""
        values = self.selected_settings()
        if values is None:
            return None
        instance = self.page.content_data[self.selected_index]
        definition = await self.engine.registry.get_definition(
            instance.component_type
        )
        return render_form(
            definition.settings_schema, definition.ui_schema, values
        )

    # -- status ---------------------------------------------------------

    async def publish(self) -> Page:
        return await self._mutate(partial(self.engine.publish_page, self.page.id))

    async def unpublish(self, archive: bool = False) -> Page:
        return await self._mutate(
            partial(self.engine.unpublish_page, self.page.id, archive)
        )

    # -- session --------------------------------------------------------

    async def save(self) -> Page:
        """Commits any staged settings and confirms the stored version.

        Raises:
            StaleVersionError: If someone else changed the page since this
                session last read it. The session stays dirty.
        """
        if self.draft_settings is not None and self.selected_index is not None:
            await self.update_settings()

        async with self._in_flight():
            latest = await self._await(self.engine.get_page(self.page.id))
            if latest.version != self.page.version:
                raise StaleVersionError(
                    self.page.id, self.page.version, latest.version
                )
        self.page = latest
        self.is_dirty = False
        return latest

    async def reload(self) -> Page:
        """Discards session changes and re-reads the page from the store."""
        async with self._in_flight():
            latest = await self._await(self.engine.get_page(self.page.id))
        self.page = latest
        self.draft_settings = None
        self.is_dirty = False
        self._repair_selection()
        return latest

    # -- views ----------------------------------------------------------

    async def render_canvas(self) -> CanvasView:
        """Renders every block of the current view."""
        page = self.view
        blocks = []
        for index, instance in page.ordered():
            selected = not self.preview_mode and index == self.selected_index
            try:
                definition = await self.engine.registry.get_definition(
                    instance.component_type
                )
            except NotFoundError:
                blocks.append(
                    CanvasBlock(
                        index=index,
                        drag_id=drag_id(index),
                        component_type=instance.component_type,
                        display_name=instance.component_type,
                        markup=f"_Unavailable component: {instance.component_type}_",
                        selected=selected,
                        available=False,
                    )
                )
                continue

            settings = instance.settings
            if index == self.selected_index and self.draft_settings is not None:
                settings = self.draft_settings
            blocks.append(
                CanvasBlock(
                    index=index,
                    drag_id=drag_id(index),
                    component_type=instance.component_type,
                    display_name=definition.display_name,
                    markup=self.renderer.render(
                        definition, settings, preview=self.preview_mode
                    ),
                    selected=selected,
                )
            )

        return CanvasView(
            page_id=page.id,
            title=page.title,
            status=page.status,
            version=self.page.version,
            preview_mode=self.preview_mode,
            is_saving=self.is_saving,
            is_dirty=self.is_dirty,
            selected_index=self.selected_index,
            blocks=blocks,
        )

    async def library(
        self, search: Optional[str] = None, category: Optional[str] = None
    ) -> dict[str, list[ComponentDefinition]]:
        """Lists addable components grouped by category."""
        definitions = await self.engine.registry.list_definitions()
        return group_by_category(filter_definitions(definitions, search, category))
