#!/usr/bin/env python3
"""
watch_maps.py - Rebuild C tile arrays when .tmx maps (or their outputs) change.

Usage:
  python tools/watch_maps.py --maps maps
  python tools/watch_maps.py --once
  python tools/watch_maps.py /path/to/project --format hex
"""

from __future__ import annotations

import argparse
import json
import sys
import threading
import time
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from gen_paths import GEN_ROOT
from tile_render import STYLE_DEC, STYLES
from tmx_errors import TmxError
from tmxc import Options, convert


def file_mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return 0.0


def load_cache(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}


def save_cache(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def should_run(input_path: Path, outputs: list[Path], cache: dict) -> bool:
    input_m = file_mtime(input_path)
    if input_m == 0.0:
        return False
    cached = cache.get(str(input_path), {})
    if cached.get("input_mtime") != input_m:
        return True
    cached_out = cached.get("outputs", {})
    for out in outputs:
        out_m = file_mtime(out)
        if out_m == 0.0 or cached_out.get(str(out)) != out_m:
            return True
    return False


def update_cache_entry(input_path: Path, outputs: list[Path], cache: dict) -> None:
    cache[str(input_path)] = {
        "input_mtime": file_mtime(input_path),
        "outputs": {str(out): file_mtime(out) for out in outputs},
    }


def output_base_for(tmx: Path, root: Path) -> Path:
    return root / GEN_ROOT / "maps" / tmx.stem


def outputs_for(tmx: Path, root: Path) -> list[Path]:
    base = output_base_for(tmx, root)
    return [base.with_name(base.name + ".h"), base.with_name(base.name + ".c")]


def convert_one(tmx: Path, root: Path, style: str, strict: bool) -> bool:
    options = Options(
        input_path=str(tmx),
        output_path=str(output_base_for(tmx, root)),
        style=style,
        strict=strict,
    )
    try:
        convert(options)
    except TmxError as e:
        print(e.diagnostic(), file=sys.stderr)
        return False
    return True


def run_once(
    root: Path,
    maps_dir: Path,
    cache_path: Path,
    style: str = STYLE_DEC,
    strict: bool = False,
    changed_path: str | None = None,
) -> bool:
    ok = True
    cache = load_cache(cache_path)
    for tmx in sorted(maps_dir.glob("*.tmx")):
        if changed_path and str(tmx) != changed_path:
            continue
        outputs = outputs_for(tmx, root)
        if not should_run(tmx, outputs, cache):
            continue
        if convert_one(tmx, root, style, strict):
            update_cache_entry(tmx, outputs, cache)
        else:
            ok = False
    save_cache(cache_path, cache)
    return ok


class MapsHandler(FileSystemEventHandler):
    """Observer callbacks; every pass runs under one lock shared with the startup pass."""

    def __init__(self, root: Path, maps_dir: Path, cache_path: Path, style: str, strict: bool):
        super().__init__()
        self.root = root
        self.maps_dir = maps_dir
        self.cache_path = cache_path
        self.style = style
        self.strict = strict
        self.lock = threading.Lock()

    def run_pass(self, changed_path: str | None = None) -> bool:
        with self.lock:
            print("MAPGEN START")
            ok = run_once(
                self.root,
                self.maps_dir,
                self.cache_path,
                self.style,
                self.strict,
                changed_path=changed_path,
            )
            print("MAPGEN END")
        return ok

    def _rebuild(self, event) -> None:
        if event.is_directory or not str(event.src_path).endswith(".tmx"):
            return
        self.run_pass(changed_path=str(Path(event.src_path).resolve()))

    def on_modified(self, event):
        self._rebuild(event)

    def on_created(self, event):
        self._rebuild(event)


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("root", nargs="?", default=".", help="Project root (default: .)")
    ap.add_argument("--maps", default="maps", help="Directory containing .tmx files")
    ap.add_argument("--format", dest="style", choices=STYLES, default=STYLE_DEC, help="Number style")
    ap.add_argument("--strict", action="store_true", help="Reject maps whose tile count is not width*height")
    ap.add_argument("--interval", type=float, default=0.5, help="Polling interval in seconds")
    ap.add_argument("--once", action="store_true", help="Run a single pass and exit")
    args = ap.parse_args()

    root = Path(args.root).resolve()
    maps_dir = (root / args.maps).resolve()
    cache_path = root / "build" / ".tmx_cache.json"

    if not maps_dir.is_dir():
        print(f"{maps_dir}:1:1: error: Maps dir not found", file=sys.stderr)
        sys.exit(1)

    if args.once:
        if not run_once(root, maps_dir, cache_path, args.style, args.strict):
            sys.exit(1)
        return

    handler = MapsHandler(root, maps_dir, cache_path, args.style, args.strict)
    observer = Observer()
    observer.schedule(handler, str(maps_dir), recursive=False)
    observer.start()

    handler.run_pass()

    try:
        while True:
            time.sleep(args.interval)
    except KeyboardInterrupt:
        observer.stop()
    observer.join()


if __name__ == "__main__":
    main()
