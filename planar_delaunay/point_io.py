"""
Point sources and result sinks around the triangulation engine.

Text formats are line oriented and whitespace separated:
- points:    `x y`
- edges:     `x1 y1 x2 y2`
- triangles: `x1 y1 x2 y2 x3 y3`

Run statistics are appended to a CSV file. Whether the header row is written
is decided by explicit state on `StatisticsWriter`, not by a hidden global.
"""
import csv
import os

import numpy as np
import torch

from .numeric import resolve_dtype
from .logging_utils import get_logger

logger = get_logger(__name__)

DEFAULT_CANVAS = (800.0, 600.0) # Width and height of the random point area
DEFAULT_POINT_COUNTS = (20, 30, 40, 50, 60, 70, 80, 90, 100, 110)
STATISTICS_HEADER = ("file", "points", "triangles", "edges", "duration_ms")
DEFAULT_FMT = "%.9g"


def _ensure_parent_dir(path: str):
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def read_points(path: str, dtype=None) -> torch.Tensor:
    """
    Reads `x y` pairs, one per line.

    Lines that do not start with two numbers are skipped; anything after the
    second number on a line is ignored.

    Args:
        path (str): Text file to read.
        dtype (torch.dtype | str | None): Precision of the returned tensor.

    Returns:
        torch.Tensor: Tensor of shape (N, 2).

    Raises:
        FileNotFoundError: If `path` does not exist.
    """
    dtype = resolve_dtype(dtype)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Point file does not exist: {path}")

    rows = []
    skipped = 0
    with open(path, "r", encoding="utf-8") as fh:
        for line in fh:
            fields = line.split()
            if len(fields) < 2:
                skipped += int(bool(fields))
                continue
            try:
                x, y = float(fields[0]), float(fields[1])
            except ValueError:
                skipped += 1
                continue
            rows.append((x, y))

    if skipped:
        logger.warning("Skipped %d malformed line(s) in %s", skipped, path)
    logger.info("Read %d points from %s", len(rows), path)
    if not rows:
        return torch.empty((0, 2), dtype=dtype)
    return torch.tensor(rows, dtype=dtype)


def _save_rows(rows: np.ndarray, path: str, columns: int, fmt: str, what: str) -> str:
    _ensure_parent_dir(path)
    np.savetxt(path, rows.reshape(-1, columns), fmt=fmt, delimiter=" ")
    logger.info("Saved %d %s to %s", rows.reshape(-1, columns).shape[0], what, path)
    return path


def save_points(points, path: str, fmt: str = DEFAULT_FMT) -> str:
    """Writes points (an (N, 2) tensor/array or a sequence of `Vector2`) as `x y` lines."""
    if isinstance(points, torch.Tensor):
        rows = points.detach().cpu().to(torch.float64).numpy()
    else:
        rows = np.asarray([[p[0], p[1]] for p in points], dtype=np.float64)
    return _save_rows(rows, path, 2, fmt, "points")


def save_edges(edges, path: str, fmt: str = DEFAULT_FMT) -> str:
    """Writes `Edge` objects as `x1 y1 x2 y2` lines."""
    rows = np.asarray([e.coords() for e in edges], dtype=np.float64)
    return _save_rows(rows, path, 4, fmt, "edges")


def save_triangles(triangles, path: str, fmt: str = DEFAULT_FMT) -> str:
    """Writes `Triangle` objects as `x1 y1 x2 y2 x3 y3` lines."""
    rows = np.asarray([[c for p in t.vertices for c in p] for t in triangles], dtype=np.float64)
    return _save_rows(rows, path, 6, fmt, "triangles")


def generate_random_points(count: int, width: float = DEFAULT_CANVAS[0], height: float = DEFAULT_CANVAS[1],
                           seed: int | None = None, dtype=None) -> torch.Tensor:
    """
    Draws `count` points uniformly from [0, width) x [0, height).

    Args:
        count (int): Number of points, >= 0.
        width, height (float): Extent of the sampling rectangle.
        seed (int | None): Seed for a private `torch.Generator`; None draws a fresh seed.
        dtype (torch.dtype | str | None): Precision of the returned tensor.

    Returns:
        torch.Tensor: Tensor of shape (count, 2).
    """
    if count < 0:
        raise ValueError(f"Point count must be non-negative, got {count}.")
    dtype = resolve_dtype(dtype)
    gen = torch.Generator()
    if seed is None:
        gen.seed()
    else:
        gen.manual_seed(seed)
    unit = torch.rand((count, 2), generator=gen, dtype=torch.float64)
    scale = torch.tensor([width, height], dtype=torch.float64)
    points = (unit * scale).to(dtype)
    logger.info("Generated %d random points", count)
    return points


def data_file_path(data_dir: str, file_num: int) -> str:
    return os.path.join(data_dir, f"{file_num}.txt")


def generate_data_files(data_dir: str, counts=DEFAULT_POINT_COUNTS, seed: int | None = None) -> list:
    """
    Writes numbered point files `1.txt`, `2.txt`, ... with `counts[i]` random points each.

    Returns:
        list[str]: Paths of the written files.
    """
    os.makedirs(data_dir, exist_ok=True)
    paths = []
    for i, count in enumerate(counts, start=1):
        file_seed = None if seed is None else seed + i
        points = generate_random_points(count, seed=file_seed)
        paths.append(save_points(points, data_file_path(data_dir, i)))
    logger.info("Generated %d data files in %s", len(paths), data_dir)
    return paths


class StatisticsWriter:
    """
    Appends one CSV row per triangulation run.

    Attributes:
        path (str): CSV file to append to.
        first_record (bool): When True the next `write` emits the header first.
                             Defaults to True only if `path` does not exist yet.
    """

    def __init__(self, path: str, first_record: bool | None = None):
        self.path = path
        self.first_record = (not os.path.exists(path)) if first_record is None else first_record

    def write(self, file_num: int, point_count: int, triangle_count: int, edge_count: int,
              duration_ms: float) -> str:
        _ensure_parent_dir(self.path)
        with open(self.path, "a", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh)
            if self.first_record:
                writer.writerow(STATISTICS_HEADER)
                self.first_record = False
            writer.writerow([file_num, point_count, triangle_count, edge_count, f"{duration_ms:.3f}"])
        logger.info("Statistics appended to %s", self.path)
        return self.path


def read_statistics(path: str) -> list:
    """Reads a statistics CSV back as a list of dicts keyed by `STATISTICS_HEADER`."""
    with open(path, "r", newline="", encoding="utf-8") as fh:
        return list(csv.DictReader(fh))
