"""Normalization of raw category payloads into Category models."""

from typing import Any

from maintenance_desk.types import Category, Subcategory


def _is_active(item: Any) -> bool:
    # Missing isActive means active; only an explicit false hides the entry
    return isinstance(item, dict) and item.get("isActive") is not False


def normalize_categories(items: list[Any]) -> list[Category]:
    """
    Filter and reshape raw category items from GET /api/v1/categories.

    Inactive categories and inactive subcategories are dropped. The source
    `id` takes precedence over `name` for the normalized name, and display
    names default to the name.

    Args:
        items: Raw category dicts as returned by the backend.

    Returns:
        Active categories in backend order.
    """
    categories = []
    for raw in items or []:
        if not _is_active(raw):
            continue
        name = raw.get("id") or raw.get("name") or ""
        subcategories = [
            Subcategory(
                name=sub.get("name") or "",
                display_name=sub.get("displayName") or sub.get("name") or "",
            )
            for sub in raw.get("subcategories") or []
            if _is_active(sub)
        ]
        categories.append(
            Category(
                name=name,
                display_name=raw.get("displayName") or name,
                subcategories=subcategories,
            )
        )
    return categories
