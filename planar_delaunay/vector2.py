"""
Immutable 2D point type used by the mesh primitives.

`Vector2` is a named tuple of Python floats. Exact `==` compares coordinates
bit for bit and is reserved for constructed values (the super-triangle
vertices); measured points are compared with `Vector2.almost_equal`.
"""
from typing import NamedTuple

import torch

from .numeric import DEFAULT_ULP, almost_equal, resolve_dtype


class Vector2(NamedTuple):
    x: float
    y: float

    def __str__(self):
        return f"({self.x}, {self.y})"

    def dist2(self, other) -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def almost_equal(self, other, ulp: int = DEFAULT_ULP, dtype=None) -> bool:
        """Coordinate-wise `almost_equal` against another point."""
        return (almost_equal(self.x, other.x, ulp, dtype)
                and almost_equal(self.y, other.y, ulp, dtype))


def points_to_tensor(points, dtype=None) -> torch.Tensor:
    """Stacks a sequence of `Vector2` or (x, y) pairs into an (N, 2) tensor."""
    dtype = resolve_dtype(dtype)
    if len(points) == 0:
        return torch.empty((0, 2), dtype=dtype)
    return torch.tensor([[float(p[0]), float(p[1])] for p in points], dtype=dtype)


def tensor_to_points(tensor: torch.Tensor) -> list:
    """Converts an (N, 2) tensor into a list of `Vector2`."""
    return [Vector2(row[0], row[1]) for row in tensor.tolist()]
