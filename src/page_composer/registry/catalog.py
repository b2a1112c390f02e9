"""Pure view helpers over the component catalog.

These functions back the component library sidebar: free-text search,
category filtering and grouping. They never touch a store.
"""

from typing import Iterable, Optional

from page_composer.models.component import ComponentDefinition


ALL_CATEGORIES = "all"
UNCATEGORIZED = "other"


def sort_definitions(
    definitions: Iterable[ComponentDefinition],
) -> list[ComponentDefinition]:
    """Orders definitions by category, then display name."""
    return sorted(
        definitions,
        key=lambda d: (d.category is None, d.category or "", d.display_name),
    )


def filter_definitions(
    definitions: Iterable[ComponentDefinition],
    search: Optional[str] = None,
    category: Optional[str] = None,
) -> list[ComponentDefinition]:
    """Filters definitions by free text and category.

    Args:
        definitions: The full catalog.
        search: Case-insensitive text matched against display name and
            description. Blank matches everything.
        category: Category to keep. None or 'all' keeps every category.

    Returns:
        The matching definitions, in input order.
    """
    needle = (search or "").strip().lower()
    matches = []
    for d in definitions:
        if needle and not (
            needle in d.display_name.lower()
            or needle in (d.description or "").lower()
        ):
            continue
        if category not in (None, ALL_CATEGORIES) and d.category != category:
            continue
        matches.append(d)
    return matches


def group_by_category(
    definitions: Iterable[ComponentDefinition],
) -> dict[str, list[ComponentDefinition]]:
    """Groups definitions by category, keeping first-seen category order."""
    groups: dict[str, list[ComponentDefinition]] = {}
    for d in definitions:
        groups.setdefault(d.category or UNCATEGORIZED, []).append(d)
    return groups


def list_categories(definitions: Iterable[ComponentDefinition]) -> list[str]:
    """Lists the category filter choices, starting with 'all'."""
    seen: list[str] = []
    for d in definitions:
        if d.category and d.category not in seen:
            seen.append(d.category)
    return [ALL_CATEGORIES] + seen
