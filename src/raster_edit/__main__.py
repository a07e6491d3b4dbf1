"""エントリーポイント: python -m raster_edit

  python -m raster_edit list
  python -m raster_edit process a.png b.jpg --op grayscale --op contrast:1.3 -o out/
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from raster_edit.application.batch_service import (
    DEFAULT_OUTPUT_SUFFIX,
    DEFAULT_THREADS,
    BatchConfig,
    BatchResult,
    BatchService,
    create_tasks,
)
from raster_edit.application.operation_registry import available_operations, parse_operation
from raster_edit.domain.errors import ConstructionError, ProcessingError
from raster_edit.domain.image_model import BatchMode
from raster_edit.infrastructure.image_io import load_image, save_image

logger = logging.getLogger("raster_edit")


def setup_logging(verbosity: int = 0) -> None:
    level = [logging.WARNING, logging.INFO, logging.DEBUG][min(verbosity, 2)]
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )


class _ConsoleListener:
    """進捗をログに出す。"""

    def on_progress(self, name: str, completed: int, total: int) -> None:
        logger.info("[%d/%d] %s", completed, total, name)

    def on_task_complete(self, result: BatchResult) -> None:
        if not result.success:
            logger.warning("%s: %s", result.name, result.message)

    def on_batch_complete(self, success_count: int, total: int) -> None:
        logger.info("done: %d/%d succeeded", success_count, total)


def output_extension(value: str) -> str:
    """'png' / '.PNG' などを '.png' 形式に正規化。"""
    ext = value.strip().lower()
    if not ext.strip("."):
        raise argparse.ArgumentTypeError(f"invalid format: {value!r}")
    return "." + ext.lstrip(".")


def cmd_list(args: argparse.Namespace) -> int:
    for name in available_operations():
        print(name)
    return 0


def cmd_process(args: argparse.Namespace) -> int:
    try:
        operations = [parse_operation(expr) for expr in args.op]
    except ConstructionError as e:
        logger.error("%s", e)
        return 2

    config = BatchConfig(
        BatchMode.OPERATION_SEQUENCE, tuple(operations), args.threads, args.suffix,
    )

    inputs: list[Path] = args.inputs
    images = []
    names = []
    for path in inputs:
        try:
            images.append(load_image(path))
        except ProcessingError as e:
            logger.error("%s", e)
            return 1
        names.append(path.stem)

    results = BatchService().run(create_tasks(images, config, names), _ConsoleListener())

    out_dir: Path = args.output_dir
    out_dir.mkdir(parents=True, exist_ok=True)
    failures = 0
    for path, result in zip(inputs, results):
        if not result.success or result.image is None:
            failures += 1
            continue
        target = out_dir / f"{config.output_name(result.name)}{args.format or path.suffix}"
        save_image(result.image, target)
        logger.info("saved %s", target)
    return 1 if failures else 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="raster-edit", description="Raster image editing engine")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv).")

    sub = p.add_subparsers(dest="cmd", required=True)

    lp = sub.add_parser("list", help="List available operations.")
    lp.set_defaults(func=cmd_list)

    pp = sub.add_parser("process", help="Apply an operation sequence to images.")
    pp.add_argument("inputs", nargs="+", type=Path, help="Input image files.")
    pp.add_argument("--op", action="append", required=True,
                    help="Operation as 'name' or 'name:arg' (repeatable, applied in order).")
    pp.add_argument("-o", "--output-dir", type=Path, default=Path("."), help="Output directory.")
    pp.add_argument("--suffix", default=DEFAULT_OUTPUT_SUFFIX, help="Output file name suffix.")
    pp.add_argument("--format", type=output_extension, default=None,
                    help="Output extension such as png or .png (default: input's).")
    pp.add_argument("--threads", type=int, default=DEFAULT_THREADS, help="Worker threads (1-8).")
    pp.set_defaults(func=cmd_process)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
