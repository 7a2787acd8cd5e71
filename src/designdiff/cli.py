from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any

import orjson
from pydantic import ValidationError

from designdiff.analysis import AnalysisClient, AnalysisError
from designdiff.conf import Settings
from designdiff.image_diff import DiffEngine, InvalidImage, ProcessingFailed, encode_png
from designdiff.image_diff.stats import severity_for
from designdiff.image_diff.types import DiffResult

logger = logging.getLogger("designdiff")

EXIT_OK = 0
EXIT_INVALID_INPUT = 1
EXIT_FAILED = 2


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _write_json(path: str, payload: Any) -> None:
    target = Path(path)
    _ensure_parent(target)
    target.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))


def _add_diff_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("before", help="Path to the before image")
    parser.add_argument("after", help="Path to the after image")
    parser.add_argument("--json-out", help="Path to write the JSON report")
    parser.add_argument("--diff-out", help="Path to write the diff image (PNG)")
    parser.add_argument(
        "--threshold",
        type=float,
        help="Per-channel tolerance on a 0-1 scale (default: 0.05)",
    )
    parser.add_argument("--dim", type=float, help="Dim factor for unchanged pixels (default: 0.3)")
    parser.add_argument(
        "--antialias",
        action="store_true",
        default=None,
        help="Render anti-aliased edge pixels in yellow and exclude them from the count",
    )
    parser.add_argument("--workers", type=int, help="Row bands compared in parallel (default: 1)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="designdiff",
        description="Compare two UI screenshots and describe what changed.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    diff = subparsers.add_parser("diff", help="Compute a pixel diff between two images")
    _add_diff_arguments(diff)

    analyze = subparsers.add_parser(
        "analyze", help="Compute a pixel diff and ask the analysis service to describe it"
    )
    _add_diff_arguments(analyze)

    return parser


def _report(args: argparse.Namespace, result: DiffResult, diff_path: str | None) -> dict[str, Any]:
    return {
        "before": os.path.abspath(args.before),
        "after": os.path.abspath(args.after),
        "diff_image": os.path.abspath(diff_path) if diff_path else None,
        "diff_percentage": round(result.diff_percentage, 4),
        "changed_pixels": result.changed_pixels,
        "antialiased_pixels": result.antialiased_pixels,
        "total_pixels": result.total_pixels,
        "width": result.width,
        "height": result.height,
        "severity": severity_for(result.diff_percentage).value,
    }


def _run_diff(args: argparse.Namespace, settings: Settings) -> tuple[int, DiffResult | None]:
    for label, path in (("before", args.before), ("after", args.after)):
        if not os.path.exists(path):
            print(f"error: {label} image not found: {path}", file=sys.stderr)
            return EXIT_INVALID_INPUT, None

    try:
        options = settings.diff_options(
            channel_threshold=args.threshold,
            dim_factor=args.dim,
            distinguish_antialiasing=args.antialias,
            workers=args.workers,
        )
    except ValidationError as e:
        print(f"error: invalid option: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT, None
    engine = DiffEngine(options)
    try:
        result = engine.generate_diff(
            Path(args.before).read_bytes(),
            Path(args.after).read_bytes(),
        )
    except InvalidImage as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT, None
    except ProcessingFailed as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILED, None

    if args.diff_out:
        target = Path(args.diff_out)
        _ensure_parent(target)
        target.write_bytes(encode_png(result.diff_image))

    return EXIT_OK, result


def cmd_diff(args: argparse.Namespace, settings: Settings) -> int:
    code, result = _run_diff(args, settings)
    if result is None:
        return code

    report = _report(args, result, args.diff_out)
    if args.json_out:
        _write_json(args.json_out, report)
    print(orjson.dumps(report).decode())
    return EXIT_OK


def cmd_analyze(args: argparse.Namespace, settings: Settings) -> int:
    code, result = _run_diff(args, settings)
    if result is None:
        return code

    client = AnalysisClient(settings)
    try:
        analysis = client.analyze(
            Path(args.before).read_bytes(),
            Path(args.after).read_bytes(),
            result,
        )
    except AnalysisError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILED

    payload = {
        "diff": _report(args, result, args.diff_out),
        "analysis": analysis.model_dump(by_alias=True),
    }
    if args.json_out:
        _write_json(args.json_out, payload)
    print(orjson.dumps(payload).decode())
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        settings = Settings.from_env()
    except ValidationError as e:
        print(f"error: invalid configuration: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    if args.command == "diff":
        return cmd_diff(args, settings)
    return cmd_analyze(args, settings)


if __name__ == "__main__":
    raise SystemExit(main())
