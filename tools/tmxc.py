#!/usr/bin/env python3
"""
tmxc.py - Tiled .tmx map -> C header/source pair embedding the first layer as a static array.

Outputs:
  - <output>.h     Size defines + extern declaration of the tile array
  - <output>.c     The tile array itself, wrapped at the map's row width
  - .png           Optional preview of the grid (--preview)
  - .json          Optional debug dump (--json)

Usage:
  python tools/tmxc.py --input-path maps/level1.tmx
  python tools/tmxc.py --input-path maps/level1.tmx --output-path gen/maps/level1
  python tools/tmxc.py --input-path maps/level1.tmx --format hex --strict --preview

By default the outputs land next to the input, named after it without the
.tmx extension. The array is named <base>_TILES with <base>_WIDTH and
<base>_HEIGHT defines, where <base> is the output file name.

Notes:
- Only CSV-encoded layers are supported; the first <layer> found is used.
- Values are rebased: tile index N becomes N-1, empty cells (0) become -1.
- Both the .h and the .c are rendered before either is written; a failure
  leaves no partial output behind.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import tempfile
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from gen_paths import ANALYSIS_ROOT
from tile_render import (
    STYLE_DEC,
    STYLES,
    TEMPLATE_DIR,
    RenderContext,
    load_templates,
    render_templates,
    tile_histogram,
)
from tmx_errors import TmxError, TmxIOError, TmxUsageError
from tmx_parser import MapDocument, parse_tmx
from tmx_preview import render_preview, save_preview

PROGRAM_NAME = "tmxc"
PROGRAM_VERSION = "1.0.0"
PROGRAM_COPYRIGHT_YEARS = "2024"

HEADER_EXT = ".h"
SOURCE_EXT = ".c"


@dataclass(frozen=True)
class Options:
    input_path: str
    output_path: str
    style: str = STYLE_DEC
    strict: bool = False
    template_dir: str = TEMPLATE_DIR
    preview_path: Optional[str] = None
    preview_scale: int = 4
    json_path: Optional[str] = None

    @property
    def header_path(self) -> str:
        return self.output_path + HEADER_EXT

    @property
    def source_path(self) -> str:
        return self.output_path + SOURCE_EXT


def default_output_path(input_path: str) -> str:
    return os.path.splitext(input_path)[0]


def default_preview_path(output_path: str) -> str:
    base = os.path.basename(output_path)
    return os.path.join(ANALYSIS_ROOT, "maps", f"{base}.png")


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog=PROGRAM_NAME,
        usage=f"{PROGRAM_NAME} --input-path [inputPath] --output-path [outputPath]",
        epilog=f"example: {PROGRAM_NAME} --input-path level1.tmx --output-path gen/maps/level1",
    )
    ap.add_argument("-v", "--version", action="store_true", help="Show version information")
    ap.add_argument("--input-path", default="", help="Path to the Tiled map (.tmx)")
    ap.add_argument(
        "--output-path",
        default="",
        help="Output path without extension (default: input path minus its extension)",
    )
    ap.add_argument(
        "--format",
        dest="style",
        choices=STYLES,
        default=STYLE_DEC,
        help="Number style for the tile array",
    )
    ap.add_argument(
        "--strict",
        action="store_true",
        help="Fail if the layer does not hold exactly width*height tiles",
    )
    ap.add_argument("--template-dir", default=TEMPLATE_DIR, help="Directory holding template.h/template.c")
    ap.add_argument(
        "--preview",
        nargs="?",
        const="AUTO",
        default="",
        help=f"Write a PNG preview (default path: {ANALYSIS_ROOT}/maps/<name>.png)",
    )
    ap.add_argument("--preview-scale", type=int, default=4, help="Preview pixels per tile")
    ap.add_argument("--json", default="", help="Output debug JSON (.json)")
    return ap


def options_from_args(args: argparse.Namespace) -> Options:
    if not args.input_path:
        raise TmxUsageError("<command line>", "Missing input-path")
    if args.preview_scale < 1:
        raise TmxUsageError("<command line>", "--preview-scale must be at least 1")

    output_path = args.output_path or default_output_path(args.input_path)
    if not os.path.splitext(os.path.basename(output_path))[0]:
        raise TmxUsageError("<command line>", f"Output path {output_path!r} has no file name")
    preview_path = None
    if args.preview == "AUTO":
        preview_path = default_preview_path(output_path)
    elif args.preview:
        preview_path = args.preview

    return Options(
        input_path=args.input_path,
        output_path=output_path,
        style=args.style,
        strict=args.strict,
        template_dir=args.template_dir,
        preview_path=preview_path,
        preview_scale=args.preview_scale,
        json_path=args.json or None,
    )


def version_text() -> str:
    return (
        f"{PROGRAM_NAME} - {PROGRAM_VERSION}\n"
        f"Copyright (c) {PROGRAM_COPYRIGHT_YEARS}\n"
        "Converts Tiled .tmx maps into C tile arrays.\n"
    )


# ----------------------------
# Output
# ----------------------------


def _discard(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


def write_outputs(outputs: Sequence[Tuple[str, str]]) -> None:
    """Write every (path, text) pair or none of them.

    Existing targets are moved aside first and put back if any write fails.
    """
    staged: List[Tuple[str, str]] = []
    backups: List[Tuple[str, str]] = []
    committed: List[str] = []
    current = ""
    done = False
    try:
        for path, text in outputs:
            current = path
            out_dir = os.path.dirname(path) or "."
            os.makedirs(out_dir, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".tmxc-", suffix=os.path.basename(path), dir=out_dir)
            staged.append((tmp, path))
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
        for tmp, path in staged:
            current = path
            if os.path.exists(path):
                backup = tmp + ".bak"
                os.replace(path, backup)
                backups.append((backup, path))
            os.replace(tmp, path)
            committed.append(path)
        done = True
    except OSError as e:
        raise TmxIOError(current, f"error writing output: {e.strerror or e}") from e
    except UnicodeError as e:
        raise TmxIOError(current, f"output text cannot be encoded as UTF-8: {e}") from e
    finally:
        if not done:
            for tmp, _ in staged:
                _discard(tmp)
            for path in committed:
                _discard(path)
            for backup, path in backups:
                os.replace(backup, path)
    for backup, _ in backups:
        _discard(backup)


def debug_info(doc: MapDocument, source: str) -> dict:
    histogram = tile_histogram(doc.tiles)
    return {
        "source": source,
        "width": doc.width,
        "height": doc.height,
        "tile_count": len(doc.tiles),
        "expected_count": doc.expected_count,
        "empty_count": histogram.get(-1, 0),
        "tile_histogram": {str(k): v for k, v in histogram.items()},
    }


def write_debug_json(path: str, info: dict) -> None:
    try:
        out_dir = os.path.dirname(path)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(info, f, indent=2)
    except OSError as e:
        raise TmxIOError(path, f"error writing JSON file: {e.strerror or e}") from e


# ----------------------------
# Pipeline
# ----------------------------


def convert(options: Options, generated_at: Optional[datetime] = None) -> List[str]:
    """Run parse -> render -> write for one map and return the paths written."""
    doc = parse_tmx(options.input_path, strict=options.strict)
    if not doc.is_complete():
        print(
            f"{os.path.abspath(options.input_path)}:1:1: warning: layer holds {len(doc.tiles)} tiles, "
            f"map is {doc.width}x{doc.height} ({doc.expected_count})",
            file=sys.stderr,
        )

    header_template, source_template = load_templates(options.template_dir)
    ctx = RenderContext.for_output(
        output_path=options.output_path,
        source_path=options.input_path,
        tool_name=PROGRAM_NAME,
        tool_version=PROGRAM_VERSION,
        generated_at=generated_at,
    )
    header_text, source_text = render_templates(doc, ctx, header_template, source_template, options.style)

    preview = None
    if options.preview_path:
        preview = render_preview(doc, options.preview_scale, options.input_path)

    write_outputs([(options.header_path, header_text), (options.source_path, source_text)])
    written = [options.header_path, options.source_path]
    print(f"Wrote {options.header_path}")
    print(f"Wrote {options.source_path}")

    if preview is not None:
        try:
            save_preview(preview, options.preview_path)
        except OSError as e:
            raise TmxIOError(options.preview_path, f"error writing preview: {e.strerror or e}") from e
        written.append(options.preview_path)
        print(f"Wrote {options.preview_path}")

    if options.json_path:
        write_debug_json(options.json_path, debug_info(doc, options.input_path))
        written.append(options.json_path)
        print(f"Wrote {options.json_path}")

    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_arg_parser()
    args = ap.parse_args(argv)

    if args.version:
        print(version_text())
        return 0

    try:
        options = options_from_args(args)
    except TmxUsageError as e:
        print(f"{e.message}\n", file=sys.stderr)
        ap.print_help(sys.stderr)
        return 1

    try:
        convert(options)
    except TmxError as e:
        print(e.diagnostic(), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
