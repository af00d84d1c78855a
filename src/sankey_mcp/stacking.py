"""Vertical placement of the nodes in one tier."""

from __future__ import annotations

from typing import Sequence

from .models import LayoutConfig


def total_stack_height(heights: Sequence[float], padding: float) -> float:
    """Height of a stacked block: all heights plus ``(n - 1)`` paddings."""
    if not heights:
        return 0.0
    return sum(heights) + (len(heights) - 1) * padding


def center(height: float, config: LayoutConfig) -> float:
    """Top edge that vertically centers a single node in the drawable area."""
    return config.margin.top + (config.inner_height - height) / 2


def stack(heights: Sequence[float], config: LayoutConfig) -> list[float]:
    """Return the top edge of each node in a stacked, vertically centered block.

    Node ``i`` starts after every earlier node plus ``i`` paddings, so
    ``y[i] + heights[i] <= y[i + 1]`` (padding is never negative).
    A single height gives the same answer as ``center``.
    """
    if not heights:
        return []
    padding = config.node_padding
    start_y = center(total_stack_height(heights, padding), config)

    offsets: list[float] = []
    acc = 0.0
    for i, h in enumerate(heights):
        offsets.append(start_y + acc + i * padding)
        acc += h
    return offsets
