"""Utility functions for the page composer.

This module provides shared helpers used across the package, such as content
checksums and settings diffs.
"""

import hashlib
import json
from typing import Any, Iterable

from page_composer.models.page import ComponentInstance


def serialize_content(
    content_data: Iterable[ComponentInstance],
) -> list[dict[str, Any]]:
    """Converts component instances into plain JSON-compatible dicts."""
    return [c.model_dump(mode="json") for c in content_data]


def compute_checksum(content_data: Iterable[ComponentInstance]) -> str:
    """Computes a deterministic SHA-256 hash of a page's content.

    Args:
        content_data: The ordered component instances.

    Returns:
        A hex string representing the checksum.
    """
    dump = json.dumps(serialize_content(content_data), sort_keys=True)
    return hashlib.sha256(dump.encode("utf-8")).hexdigest()


def compute_settings_diff(
    old: dict[str, Any], new: dict[str, Any], path_prefix: str = ""
) -> list[str]:
    """Lists the dotted paths whose values differ between two settings dicts.

    Nested dictionaries are compared recursively; any other differing value
    (including lists) is reported at its own path.

    Args:
        old: The original settings.
        new: The replacement settings.
        path_prefix: Internal recursion helper to build dotted paths.

    Returns:
        The sorted list of changed paths.
    """
    changed = []

    for key in set(old.keys()) | set(new.keys()):
        path = f"{path_prefix}.{key}" if path_prefix else key

        if key not in old or key not in new:
            changed.append(path)
        elif old[key] != new[key]:
            if isinstance(old[key], dict) and isinstance(new[key], dict):
                changed.extend(compute_settings_diff(old[key], new[key], path))
            else:
                changed.append(path)

    return sorted(changed)
