"""Pure transformations of a page's component list.

Every function takes the current sequence and returns a new tuple; the input
is never modified. Index checks happen here so the engine can reject a bad
index before it touches the store.
"""

import copy
from typing import Any, Optional, Sequence

from page_composer.exceptions import IndexOutOfRangeError
from page_composer.models.page import ComponentInstance

Content = tuple[ComponentInstance, ...]


def check_index(content: Sequence[ComponentInstance], index: int):
    """Raises IndexOutOfRangeError unless 0 <= index < len(content)."""
    if isinstance(index, bool) or not isinstance(index, int):
        raise IndexOutOfRangeError(index, len(content))
    if not 0 <= index < len(content):
        raise IndexOutOfRangeError(index, len(content))


def insert_component(
    content: Sequence[ComponentInstance],
    instance: ComponentInstance,
    position: Optional[int] = None,
) -> Content:
    """Inserts an instance at `position`, or appends it when None.

    Raises:
        IndexOutOfRangeError: If `position` is outside [0, len(content)].
    """
    items = list(content)
    if position is None:
        items.append(instance)
    else:
        if isinstance(position, bool) or not 0 <= position <= len(items):
            raise IndexOutOfRangeError(position, len(items) + 1)
        items.insert(position, instance)
    return tuple(items)


def remove_component(
    content: Sequence[ComponentInstance], index: int
) -> Content:
    """Removes the instance at `index`; later instances shift down by one."""
    check_index(content, index)
    return tuple(content[:index]) + tuple(content[index + 1 :])


def duplicate_component(
    content: Sequence[ComponentInstance], index: int
) -> Content:
    """Inserts a deep copy of the instance at `index` right after it."""
    check_index(content, index)
    original = content[index]
    clone = ComponentInstance(
        component_type=original.component_type,
        settings=copy.deepcopy(original.settings),
    )
    return tuple(content[: index + 1]) + (clone,) + tuple(content[index + 1 :])


def move_component(
    content: Sequence[ComponentInstance], from_index: int, to_index: int
) -> Content:
    """Moves one instance from `from_index` to `to_index` in a single pass.

    All other instances keep their relative order. Both indices must address
    existing instances.
    """
    check_index(content, from_index)
    check_index(content, to_index)
    items = list(content)
    moved = items.pop(from_index)
    items.insert(to_index, moved)
    return tuple(items)


def replace_settings(
    content: Sequence[ComponentInstance], index: int, settings: dict[str, Any]
) -> Content:
    """Replaces the settings of the instance at `index` wholesale."""
    check_index(content, index)
    items = list(content)
    items[index] = ComponentInstance(
        component_type=items[index].component_type,
        settings=copy.deepcopy(settings),
    )
    return tuple(items)
