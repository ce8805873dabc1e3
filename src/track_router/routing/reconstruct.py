"""Utilities to reconstruct node paths from predecessor arrays."""
from __future__ import annotations

from typing import List, Sequence


def reconstruct_path(prev_node: Sequence[int], current: int) -> List[int]:
    path = [current]
    while prev_node[current] >= 0:
        current = prev_node[current]
        path.append(current)
    path.reverse()
    return path
