"""View models for the editor canvas."""

from typing import Optional

from pydantic import Field

from page_composer.models.base import ModelBase
from page_composer.models.enums import PageStatus


DRAG_ID_PREFIX = "component-"


def drag_id(index: int) -> str:
    """Returns the drag handle id for the block at `index`."""
    return f"{DRAG_ID_PREFIX}{index}"


def parse_drag_id(value: str) -> int:
    """Extracts the block index from a drag handle id.

    Raises:
        ValueError: If `value` is not of the form 'component-<index>'.
    """
    if not value.startswith(DRAG_ID_PREFIX):
        raise ValueError(f"Not a component drag id: {value!r}")
    suffix = value[len(DRAG_ID_PREFIX) :]
    if not suffix.isdigit():
        raise ValueError(f"Not a component drag id: {value!r}")
    return int(suffix)


class CanvasBlock(ModelBase):
    """One rendered component instance on the canvas.

    Attributes:
        index: Position in the page's content.
        drag_id: Drag handle id, 'component-<index>'.
        component_type: Registry key of the instance.
        display_name: Catalog name, or the raw type when it is not in the
            catalog.
        markup: Renderer output.
        selected: Whether the block is the current selection.
        available: False when the type is unknown or retired.
    """

    index: int = Field(..., ge=0, description="Position in the page's content.")
    drag_id: str = Field(..., description="Drag handle id.")
    component_type: str = Field(..., description="Registry key of the instance.")
    display_name: str = Field(..., description="Catalog display name.")
    markup: str = Field(default="", description="Renderer output.")
    selected: bool = Field(default=False, description="Is the current selection.")
    available: bool = Field(
        default=True, description="False when the type is not in the catalog."
    )


class CanvasView(ModelBase):
    """Everything needed to draw the canvas for one page."""

    page_id: str = Field(..., description="The page being edited.")
    title: str = Field(..., description="Page title.")
    status: PageStatus = Field(..., description="Page status.")
    version: int = Field(..., description="Committed page version.")
    preview_mode: bool = Field(default=False, description="Read-only preview.")
    is_saving: bool = Field(default=False, description="A write is in flight.")
    is_dirty: bool = Field(default=False, description="Unsaved session edits.")
    selected_index: Optional[int] = Field(
        default=None, description="Currently selected block."
    )
    blocks: list[CanvasBlock] = Field(
        default_factory=list, description="Rendered blocks in page order."
    )

    def to_markdown(self) -> str:
        """Joins the blocks into one markdown document."""
        if not self.blocks:
            return "_This page has no components yet._"
        parts = []
        for block in self.blocks:
            if self.preview_mode:
                parts.append(block.markup)
            else:
                marker = " (selected)" if block.selected else ""
                parts.append(f"**[{block.index}]**{marker}\n\n{block.markup}")
        return "\n\n---\n\n".join(parts)
