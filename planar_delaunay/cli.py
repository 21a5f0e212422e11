"""
Command-line front end: batch processing of numbered point files, random
examples with optional plotting, and regeneration of the data files.

    python -m planar_delaunay generate --data-dir data
    python -m planar_delaunay process --data-dir data --result-dir result
    python -m planar_delaunay random --count 50 --plot out.png
"""
from __future__ import annotations

import argparse
import os
import time
from typing import Optional, Sequence

from .numeric import DEFAULT_ULP, resolve_dtype
from .delaunay_2d import Triangulation, delaunay_triangulation_2d
from .point_io import (
    DEFAULT_POINT_COUNTS, StatisticsWriter, data_file_path, generate_data_files,
    generate_random_points, read_points, save_edges, save_points, save_triangles,
)
from .logging_utils import configure_logging, get_logger

log = get_logger(__name__)


def timed_triangulation(points, dtype=None, ulp: int = DEFAULT_ULP):
    """Runs the triangulation and returns `(result, elapsed_ms)`."""
    start = time.perf_counter()
    result = delaunay_triangulation_2d(points, dtype=dtype, ulp=ulp)
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    return result, elapsed_ms


def process_file(file_num: int, data_dir: str, result_dir: str, stats: Optional[StatisticsWriter] = None,
                 save_results: bool = True, dtype=None, ulp: int = DEFAULT_ULP) -> Optional[Triangulation]:
    """
    Triangulates `<data_dir>/<file_num>.txt` and stores the results.

    Results go to `<result_dir>/<file_num>/` (points_original.txt,
    points_processed.txt, edges.txt, triangles.txt) and one row is appended to
    `stats`.

    Returns:
        Triangulation | None: None when the data file is missing or holds no points.
    """
    data_file = data_file_path(data_dir, file_num)
    if not os.path.exists(data_file):
        log.warning("Data file %s does not exist, skipping", data_file)
        return None

    points = read_points(data_file, dtype=dtype)
    if points.shape[0] == 0:
        log.error("File %d holds no points, skipping", file_num)
        return None

    out_dir = os.path.join(result_dir, str(file_num))
    if save_results:
        save_points(points, os.path.join(out_dir, "points_original.txt"))

    result, elapsed_ms = timed_triangulation(points, dtype=dtype, ulp=ulp)
    log.info("File %d: %d points, %d triangles, %d edges in %.3f ms",
             file_num, len(result.vertices), result.num_triangles, result.num_edges, elapsed_ms)

    if save_results:
        save_points(result.vertices, os.path.join(out_dir, "points_processed.txt"))
        save_edges(result.edges, os.path.join(out_dir, "edges.txt"))
        save_triangles(result.triangles, os.path.join(out_dir, "triangles.txt"))
        if stats is not None:
            stats.write(file_num, len(result.vertices), result.num_triangles, result.num_edges, elapsed_ms)
    return result


def _cmd_process(args) -> int:
    stats = StatisticsWriter(os.path.join(args.result_dir, "statistics.csv"))
    processed = 0
    for file_num in range(1, args.files + 1):
        result = process_file(file_num, args.data_dir, args.result_dir, stats,
                              save_results=not args.no_save, dtype=args.precision, ulp=args.ulp)
        processed += result is not None
    log.info("Processed %d of %d files; results in %s", processed, args.files, args.result_dir)
    return 0 if processed else 1


def _cmd_random(args) -> int:
    points = generate_random_points(args.count, seed=args.seed, dtype=args.precision)
    result, elapsed_ms = timed_triangulation(points, dtype=args.precision, ulp=args.ulp)
    log.info("Random example: %d points, %d triangles, %d edges in %.3f ms",
             len(result.vertices), result.num_triangles, result.num_edges, elapsed_ms)
    if args.plot:
        # Imported lazily so the other commands do not need matplotlib
        from .plotting import save_triangulation_plot
        save_triangulation_plot(result.vertices, result.edges, args.plot, title="Delaunay - random example")
    return 0


def _cmd_generate(args) -> int:
    counts = args.counts or list(DEFAULT_POINT_COUNTS)
    generate_data_files(args.data_dir, counts, seed=args.seed)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="planar_delaunay", description="Bowyer-Watson Delaunay triangulation")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    def _add_numeric(p):
        p.add_argument("--precision", choices=["float32", "float64"], default="float64",
                       help="Floating-point precision of all predicates")
        p.add_argument("--ulp", type=int, default=DEFAULT_ULP, help="Near-equality tolerance in ULPs")

    p_proc = sub.add_parser("process", help="Triangulate numbered point files and save the results")
    p_proc.add_argument("--data-dir", default="data")
    p_proc.add_argument("--result-dir", default="result")
    p_proc.add_argument("--files", type=int, default=len(DEFAULT_POINT_COUNTS), help="Process files 1..N")
    p_proc.add_argument("--no-save", action="store_true", help="Only log statistics, write nothing")
    _add_numeric(p_proc)
    p_proc.set_defaults(func=_cmd_process)

    p_rand = sub.add_parser("random", help="Triangulate a random point set")
    p_rand.add_argument("--count", type=int, default=50)
    p_rand.add_argument("--seed", type=int, default=None)
    p_rand.add_argument("--plot", default=None, help="Save a PNG of the triangulation to this path")
    _add_numeric(p_rand)
    p_rand.set_defaults(func=_cmd_random)

    p_gen = sub.add_parser("generate", help="Regenerate the numbered data files")
    p_gen.add_argument("--data-dir", default="data")
    p_gen.add_argument("--counts", type=int, nargs="+", default=None, help="Point count per file")
    p_gen.add_argument("--seed", type=int, default=None)
    p_gen.set_defaults(func=_cmd_generate)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    if hasattr(args, "precision"):
        args.precision = resolve_dtype(args.precision)
    return args.func(args)
