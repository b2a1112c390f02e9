"""Error taxonomy for the page composer.

Every error carries a machine-readable ``code`` and a human-readable
``detail`` so callers can report failures without parsing messages.
"""

from typing import Optional

from page_composer.models.form import FieldError


class PageComposerError(Exception):
    """Base class for all page composer errors."""

    code = "composer.error"

    def __init__(self, detail: str, code: Optional[str] = None):
        self.detail = detail
        if code is not None:
            self.code = code
        super().__init__(detail)


class NotFoundError(PageComposerError):
    """Raised for an unknown page, slug, version or component type."""

    code = "not_found"


class ValidationError(PageComposerError):
    """Raised when settings fail schema validation or a reference is invalid.

    Attributes:
        errors: The schema violations, first violation first.
    """

    code = "validation.failed"

    def __init__(
        self,
        detail: str,
        errors: Optional[list[FieldError]] = None,
        code: Optional[str] = None,
    ):
        self.errors = list(errors or [])
        super().__init__(detail, code=code)


class IndexOutOfRangeError(PageComposerError):
    """Raised when an index does not address an existing component instance."""

    code = "index.out_of_range"

    def __init__(self, index: int, length: int):
        self.index = index
        self.length = length
        super().__init__(
            f"Index {index} is outside [0, {length}) for a page with "
            f"{length} component(s)"
        )


class ConflictError(PageComposerError):
    """Raised when a write collides with existing state (e.g., a slug)."""

    code = "conflict"


class StaleVersionError(ConflictError):
    """Raised when a write names a version that is no longer current."""

    code = "conflict.stale_version"

    def __init__(self, page_id: str, expected: int, actual: int):
        self.page_id = page_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Page {page_id} is at version {actual}, expected {expected}"
        )


class InvalidTransitionError(PageComposerError):
    """Raised when a status transition is not allowed from the current state."""

    code = "status.invalid_transition"


class TransientError(PageComposerError):
    """Raised when the underlying store is unreachable.

    Attributes:
        retryable: Whether the identical call can be retried blindly. Index
            relative operations (reorder, duplicate) are never retryable.
    """

    code = "store.unavailable"

    def __init__(self, detail: str, retryable: bool = True):
        self.retryable = retryable
        super().__init__(detail)


class EditorBusyError(PageComposerError):
    """Raised when an editing session already has a mutation in flight."""

    code = "editor.busy"
