# planar_delaunay: incremental (Bowyer-Watson) 2D Delaunay triangulation on PyTorch.
#
# Core engine:
#   from .delaunay_2d import delaunay_triangulation_2d, Delaunay, Triangulation
# Mesh primitives:
#   from .vector2 import Vector2; from .edge import Edge; from .triangle import Triangle
# Surrounding program (I/O, plotting, CLI) lives in point_io, plotting and cli;
# plotting is not imported here so that matplotlib stays optional at import time.
import logging

from .numeric import DEFAULT_DTYPE, DEFAULT_ULP, almost_equal, half, resolve_dtype
from .vector2 import Vector2
from .edge import Edge, edges_equal
from .triangle import Triangle, get_triangle_circumcircle_details_2d
from .delaunay_2d import Delaunay, Triangulation, delaunay_triangulation_2d, super_triangle
from .convex_hull import monotone_chain_2d, unique_points

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "DEFAULT_DTYPE", "DEFAULT_ULP", "almost_equal", "half", "resolve_dtype",
    "Vector2", "Edge", "edges_equal", "Triangle", "get_triangle_circumcircle_details_2d",
    "Delaunay", "Triangulation", "delaunay_triangulation_2d", "super_triangle",
    "monotone_chain_2d", "unique_points", "__version__",
]
