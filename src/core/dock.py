"""Dock layout — ordering and visibility of the navigation entries."""

from __future__ import annotations

from dataclasses import replace

from src.data.models import DockItem


class DockLayoutError(Exception):
    """Raised when a layout change would leave the dock unusable."""


def move_dock_item(items: list[DockItem], index: int, direction: str) -> list[DockItem]:
    """Swap an item with its neighbour.

    "up" swaps with index-1 and is a no-op at 0; "down" swaps with index+1
    and is a no-op at the last index.
    """
    if direction not in ("up", "down"):
        raise ValueError(f"Unknown direction {direction!r}")
    if not 0 <= index < len(items):
        raise IndexError(f"Dock index {index} out of range")

    new_items = list(items)
    if direction == "up" and index > 0:
        new_items[index], new_items[index - 1] = new_items[index - 1], new_items[index]
    elif direction == "down" and index < len(new_items) - 1:
        new_items[index], new_items[index + 1] = new_items[index + 1], new_items[index]
    return new_items


def toggle_dock_item(items: list[DockItem], index: int) -> list[DockItem]:
    """Flip visibility of one item. The last visible item cannot be hidden."""
    if not 0 <= index < len(items):
        raise IndexError(f"Dock index {index} out of range")

    target = items[index]
    if target.is_visible and len(visible_items(items)) == 1:
        raise DockLayoutError("At least one navigation entry must stay visible.")

    new_items = list(items)
    new_items[index] = replace(target, is_visible=not target.is_visible)
    return new_items


def visible_items(items: list[DockItem]) -> list[DockItem]:
    return [item for item in items if item.is_visible]
