"""Enumeration definitions for the page composer.

This module contains standard Enum classes used across the package to ensure
consistency in typing and values for page lifecycle states and form widgets.
"""

from enum import Enum


class PageStatus(str, Enum):
    """Lifecycle state of a page.

    Attributes:
        DRAFT: Initial state; the page is not publicly visible.
        PUBLISHED: The page is publicly visible.
        ARCHIVED: Retired from public view; only publish leaves this state.
    """

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class WidgetType(str, Enum):
    """Defines the editor widget used for a settings field.

    Attributes:
        TEXT: Single-line text input.
        TEXTAREA: Multi-line text input.
        NUMBER: Floating point input.
        INTEGER: Whole number input.
        CHECKBOX: Boolean toggle.
        SELECT: Choice among enumerated options.
        URL: Text input restricted to URLs.
        EMAIL: Text input restricted to email addresses.
        COLOR: Color picker.
        OBJECT: Group of nested fields.
        ARRAY: Repeatable list of items.
    """

    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    INTEGER = "integer"
    CHECKBOX = "checkbox"
    SELECT = "select"
    URL = "url"
    EMAIL = "email"
    COLOR = "color"
    OBJECT = "object"
    ARRAY = "array"
