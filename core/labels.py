"""
Display strings for label keys.

Keys that are not in the catalog (such as free-text other_type values)
are returned unchanged.
"""

from __future__ import annotations

DEFAULT_LABELS: dict[str, str] = {
    "part_association.type.other": "Other",
    "part_association.type.compatible": "Compatible",
    "part_association.type.supersedes": "Supersedes",
}


def translate(key: str, catalog: dict[str, str] | None = None) -> str:
    labels = DEFAULT_LABELS if catalog is None else catalog
    return labels.get(key, key)


__all__ = ["DEFAULT_LABELS", "translate"]
