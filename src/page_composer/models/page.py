"""Data models for pages, their component instances and version records.

A page owns an ordered sequence of component instances. The sequence is a
tuple: every mutation builds a new page rather than editing one in place, so
an editing session can compare the old and new value safely.
"""

from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field

from page_composer.models.enums import PageStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ComponentInstance(BaseModel):
    """One placed block on a page.

    Attributes:
        component_type: Key of the component definition in the registry.
        settings: Configuration validated against the definition's schema.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    component_type: str = Field(
        ..., description="Key of the component definition in the registry."
    )
    settings: dict[str, Any] = Field(
        default_factory=dict,
        description="Configuration validated against the definition's schema.",
    )


class Page(BaseModel):
    """The aggregate root of the page builder.

    Attributes:
        id: Opaque unique identifier.
        slug: Unique path segment.
        title: Display name.
        status: Lifecycle state.
        version: Incremented on every successful mutation.
        content_data: Component instances in top-to-bottom render order.
        meta_title: Optional SEO title.
        meta_description: Optional SEO description.
        layout_template: Name of the surrounding page layout.
        created_at: When the page was created.
        updated_at: When the page was last written.
        published_at: When the page was last published.
        published_by: Who last published the page.
        last_modified_by: Who performed the last write.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., description="Opaque unique identifier.")
    slug: str = Field(
        ...,
        pattern=r"^[a-z0-9]+(-[a-z0-9]+)*(/[a-z0-9]+(-[a-z0-9]+)*)*$",
        description="Unique path segment.",
    )
    title: str = Field(..., description="Display name.")
    status: PageStatus = Field(
        default=PageStatus.DRAFT, description="Lifecycle state."
    )
    version: int = Field(
        default=1, ge=1, description="Incremented on every successful mutation."
    )
    content_data: tuple[ComponentInstance, ...] = Field(
        default=(),
        description="Component instances in top-to-bottom render order.",
    )
    meta_title: Optional[str] = Field(default=None, description="SEO title.")
    meta_description: Optional[str] = Field(
        default=None, description="SEO description."
    )
    layout_template: str = Field(
        default="default", description="Name of the surrounding page layout."
    )
    created_at: datetime = Field(
        default_factory=_utcnow, description="When the page was created."
    )
    updated_at: datetime = Field(
        default_factory=_utcnow, description="When the page was last written."
    )
    published_at: Optional[datetime] = Field(
        default=None, description="When the page was last published."
    )
    published_by: Optional[str] = Field(
        default=None, description="Who last published the page."
    )
    last_modified_by: Optional[str] = Field(
        default=None, description="Who performed the last write."
    )

    def ordered(self) -> Iterator[tuple[int, ComponentInstance]]:
        """Yields (order, instance) pairs in render order."""
        return iter(enumerate(self.content_data))

    def count_of(self, component_type: str) -> int:
        """Counts the instances of a component type on this page."""
        return sum(
            1 for c in self.content_data if c.component_type == component_type
        )


class PageVersion(BaseModel):
    """Immutable record of a page's content after a successful write.

    Attributes:
        page_id: The page this record belongs to.
        version: The page version produced by the write.
        status: The page status after the write.
        content_data: The full content after the write.
        checksum: SHA-256 of the serialized content.
        created_by: Who performed the write.
        change_description: Short summary of the change.
        created_at: When the write happened.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    page_id: str = Field(..., description="The page this record belongs to.")
    version: int = Field(
        ..., ge=1, description="The page version produced by the write."
    )
    status: PageStatus = Field(
        ..., description="The page status after the write."
    )
    content_data: tuple[ComponentInstance, ...] = Field(
        default=(), description="The full content after the write."
    )
    checksum: str = Field(
        ..., description="SHA-256 of the serialized content."
    )
    created_by: Optional[str] = Field(
        default=None, description="Who performed the write."
    )
    change_description: Optional[str] = Field(
        default=None, description="Short summary of the change."
    )
    created_at: datetime = Field(
        default_factory=_utcnow, description="When the write happened."
    )
