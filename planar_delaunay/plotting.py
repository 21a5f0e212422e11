import torch
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection

# Project-specific imports
from .delaunay_2d import delaunay_triangulation_2d
from .logging_utils import get_logger

logger = get_logger(__name__)


def _as_numpy_points(points) -> np.ndarray:
    if isinstance(points, torch.Tensor):
        return points.detach().cpu().to(torch.float64).numpy().reshape(-1, 2)
    return np.asarray([[p[0], p[1]] for p in points], dtype=np.float64).reshape(-1, 2)


def plot_triangulation_2d(
    points,
    edges: list | None = None,
    ax=None,
    title: str = "2D Delaunay Triangulation",
    show_points: bool = True,
):
    """
    Plots points and the edges of their Delaunay triangulation.

    Args:
        points (torch.Tensor | Sequence): (N, 2) tensor or sequence of `Vector2` / (x, y) pairs.
        edges (list[Edge] | None, optional): Edges to draw. If None, the triangulation is
                                             computed here. Pass an empty list to draw
                                             only the points.
        ax (matplotlib.axes.Axes | None, optional): Existing axes to plot on.
                                                   If None, a new figure and axes are created.
        title (str, optional): Title for the plot.
        show_points (bool): Whether to draw the input points. Defaults to True.

    Returns:
        matplotlib.axes.Axes: The axes that were drawn on.
    """
    pts = _as_numpy_points(points)
    if ax is None:
        _, ax = plt.subplots()

    if pts.shape[0] == 0:
        logger.warning("No points provided for triangulation plot.")
        ax.set_title(title)
        return ax

    if edges is None:
        edges = delaunay_triangulation_2d(pts).edges

    if edges:
        segments = np.asarray([[[e.p1.x, e.p1.y], [e.p2.x, e.p2.y]] for e in edges], dtype=np.float64)
        ax.add_collection(LineCollection(segments, colors='blue', linewidths=0.8, label='Delaunay Edges'))

    if show_points:
        ax.plot(pts[:, 0], pts[:, 1], 's', color='red', markersize=3, label='Points')

    ax.autoscale_view()
    ax.set_xlabel("X-axis")
    ax.set_ylabel("Y-axis")
    ax.set_title(title)
    ax.legend()
    ax.set_aspect('equal', adjustable='box')
    return ax


def save_triangulation_plot(points, edges: list | None, path: str, title: str = "2D Delaunay Triangulation"):
    """Renders `plot_triangulation_2d` into an image file and closes the figure."""
    fig, ax = plt.subplots()
    try:
        plot_triangulation_2d(points, edges, ax=ax, title=title)
        fig.savefig(path)
        logger.info("Saved triangulation plot to %s", path)
    finally:
        plt.close(fig)
    return path


if __name__ == '__main__': # Example Usage
    example_points_2d = torch.rand((50, 2)) * 10
    plot_triangulation_2d(example_points_2d, title="Sample 2D Delaunay Triangulation")
    plt.show()
