"""SQLAlchemy models for the persistence layer.

This module defines the database schema for pages, their version history and
the component definition catalog using SQLAlchemy ORM.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class PageRow(Base):
    """A page and its current content.

    Attributes:
        id: Unique identifier for the page.
        slug: Unique path segment.
        title: Display name.
        status: DRAFT, PUBLISHED or ARCHIVED.
        version: Incremented by every content or status write.
        content_data: JSON list of component instances in render order.
        meta_title: Optional SEO title.
        meta_description: Optional SEO description.
        layout_template: Name of the surrounding layout.
        created_at: When the page was created.
        updated_at: When the page was last written.
        published_at: When the page was last published.
        published_by: Who last published the page.
        last_modified_by: Who performed the last write.
        versions: Version records for the page.
    """

    __tablename__ = "pages"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    slug: Mapped[str] = mapped_column(String, unique=True, index=True)
    title: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String, default="DRAFT", index=True)
    version: Mapped[int] = mapped_column(Integer, default=1)
    content_data: Mapped[list[dict[str, Any]]] = mapped_column(JSON)
    meta_title: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    meta_description: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True
    )
    layout_template: Mapped[str] = mapped_column(String, default="default")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    published_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    last_modified_by: Mapped[Optional[str]] = mapped_column(
        String, nullable=True
    )

    versions: Mapped[list["PageVersionRow"]] = relationship(
        back_populates="page"
    )


class PageVersionRow(Base):
    """Content of a page right after one write.

    Attributes:
        id: Internal database identifier.
        page_id: The page this record belongs to.
        version: The page version produced by the write.
        status: The page status after the write.
        content_data: JSON list of component instances.
        checksum: SHA-256 of the serialized content.
        created_by: Who performed the write.
        change_description: Short summary of the change.
        created_at: When the write happened.
        page: The page associated with this record.
    """

    __tablename__ = "page_versions"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    page_id: Mapped[str] = mapped_column(ForeignKey("pages.id"), index=True)
    version: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String)
    content_data: Mapped[list[dict[str, Any]]] = mapped_column(JSON)
    checksum: Mapped[str] = mapped_column(String(64))
    created_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    change_description: Mapped[Optional[str]] = mapped_column(
        String, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    page: Mapped["PageRow"] = relationship(back_populates="versions")

    __table_args__ = (
        UniqueConstraint("page_id", "version", name="uq_page_version"),
    )


class ComponentDefinitionRow(Base):
    """Catalog entry for a component type.

    Attributes:
        id: Component type key.
        display_name: Short human-readable name.
        description: Explanation of the component.
        category: Library grouping.
        icon: Library icon name.
        settings_schema: JSON Schema for settings.
        ui_schema: Rendering hints.
        default_settings: Overlay applied to schema defaults on add.
        is_active: False once the type is retired.
        max_instances: Optional per-page cap.
        preview_image_url: Optional thumbnail.
    """

    __tablename__ = "component_definitions"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    display_name: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    settings_schema: Mapped[dict[str, Any]] = mapped_column(JSON)
    ui_schema: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    default_settings: Mapped[dict[str, Any]] = mapped_column(
        JSON, default=dict
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    max_instances: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )
    preview_image_url: Mapped[Optional[str]] = mapped_column(
        String, nullable=True
    )
