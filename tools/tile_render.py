#!/usr/bin/env python3
"""
tile_render.py - Render a MapDocument into the .h/.c pair via placeholder templates.

Templates are plain text with __NAME__ placeholders. The header template gets
EXPORT_HEADER_FILENAME, the source template gets EXPORT_SOURCE_FILENAME and
MAP_DATA, and both get the shared set (sizes, names, provenance).

Tile values are rebased before formatting: Tiled writes 1-based indices with
0 as "no tile", the generated array holds 0-based indices with -1 as "no tile".
"""

from __future__ import annotations

import os
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from tmx_errors import TmxTemplateError
from tmx_parser import MapDocument

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
HEADER_TEMPLATE_NAME = "template.h"
SOURCE_TEMPLATE_NAME = "template.c"

STYLE_DEC = "dec"
STYLE_HEX = "hex"
STYLES = (STYLE_DEC, STYLE_HEX)

ROW_BREAK = "\n    "
DEC_DIGITS = 3
HEX_DIGITS = 3
INCLUDE_GUARD_SUFFIX = "__INCLUDE"

SHARED_PLACEHOLDERS = (
    "MAP_WIDTH",
    "MAP_HEIGHT",
    "IMPORT_TILED_FILENAME",
    "PROGRAM_NAME",
    "PROGRAM_VERSION",
    "CURRENT_DATE",
    "INCLUDE_GUARD",
    "DEFINE_MAP_WIDTH",
    "DEFINE_MAP_HEIGHT",
    "VAR_MAP_NAME",
)
HEADER_PLACEHOLDERS = ("EXPORT_HEADER_FILENAME",) + SHARED_PLACEHOLDERS
SOURCE_PLACEHOLDERS = ("EXPORT_SOURCE_FILENAME",) + SHARED_PLACEHOLDERS + ("MAP_DATA",)
ALL_PLACEHOLDERS = tuple(sorted(set(HEADER_PLACEHOLDERS) | set(SOURCE_PLACEHOLDERS)))

_KNOWN_TOKEN = re.compile(r"__(" + "|".join(ALL_PLACEHOLDERS) + r")__")


@dataclass(frozen=True)
class RenderContext:
    output_base_name: str
    source_path: str
    generated_at: datetime
    tool_name: str
    tool_version: str

    @classmethod
    def for_output(
        cls,
        output_path: str,
        source_path: str,
        tool_name: str,
        tool_version: str,
        generated_at: Optional[datetime] = None,
    ) -> "RenderContext":
        base = os.path.splitext(os.path.basename(output_path))[0]
        return cls(
            output_base_name=base,
            source_path=source_path,
            generated_at=generated_at or datetime.now().astimezone(),
            tool_name=tool_name,
            tool_version=tool_version,
        )

    @property
    def header_filename(self) -> str:
        return self.output_base_name + ".h"

    @property
    def source_filename(self) -> str:
        return self.output_base_name + ".c"

    @property
    def date_text(self) -> str:
        return self.generated_at.isoformat(sep=" ", timespec="seconds")


def stored_value(tile: int) -> int:
    return tile - 1


def format_tile(value: int, style: str = STYLE_DEC) -> str:
    """Format one stored value as an array element, trailing comma included."""
    if style == STYLE_HEX:
        # No sign handling: -1 comes out as 0x0-1, which C still reads as -1.
        return "0x" + format(value, "x").rjust(HEX_DIGITS, "0") + ","
    if style == STYLE_DEC:
        return " " + str(value).rjust(DEC_DIGITS) + ","
    raise ValueError(f"Unknown tile style: {style}")


def make_tiles_values(tiles: Sequence[int], map_width: int, style: str = STYLE_DEC) -> str:
    if map_width <= 0:
        raise ValueError(f"map_width must be positive, got {map_width}")
    out: List[str] = []
    for i, tile in enumerate(tiles):
        if i % map_width == 0 and i != 0:
            out.append(ROW_BREAK)
        out.append(format_tile(stored_value(tile), style))
    return "".join(out)


def shared_values(doc: MapDocument, ctx: RenderContext) -> Dict[str, str]:
    base = ctx.output_base_name
    return {
        "MAP_WIDTH": str(doc.width),
        "MAP_HEIGHT": str(doc.height),
        "IMPORT_TILED_FILENAME": ctx.source_path,
        "PROGRAM_NAME": ctx.tool_name,
        "PROGRAM_VERSION": ctx.tool_version,
        "CURRENT_DATE": ctx.date_text,
        "INCLUDE_GUARD": base.upper() + INCLUDE_GUARD_SUFFIX,
        "DEFINE_MAP_WIDTH": base + "_WIDTH",
        "DEFINE_MAP_HEIGHT": base + "_HEIGHT",
        "VAR_MAP_NAME": base + "_TILES",
    }


def header_values(doc: MapDocument, ctx: RenderContext) -> Dict[str, str]:
    values = shared_values(doc, ctx)
    values["EXPORT_HEADER_FILENAME"] = ctx.header_filename
    return values


def source_values(doc: MapDocument, ctx: RenderContext, style: str = STYLE_DEC) -> Dict[str, str]:
    values = shared_values(doc, ctx)
    values["EXPORT_SOURCE_FILENAME"] = ctx.source_filename
    values["MAP_DATA"] = make_tiles_values(doc.tiles, doc.width, style)
    return values


def substitute(template: str, values: Dict[str, str]) -> str:
    """Replace every __NAME__ for NAME in values, in a single pass."""
    if not values:
        return template
    names = sorted(values, key=len, reverse=True)
    pattern = re.compile("__(" + "|".join(re.escape(n) for n in names) + ")__")
    return pattern.sub(lambda m: values[m.group(1)], template)


def find_unresolved(text: str) -> List[str]:
    seen: List[str] = []
    for m in _KNOWN_TOKEN.finditer(text):
        if m.group(1) not in seen:
            seen.append(m.group(1))
    return seen


def _fill(template: str, values: Dict[str, str], template_name: str) -> str:
    # Check the template, not the output: substituted values (e.g. a source
    # path) may legitimately contain placeholder-looking text.
    leftover = [n for n in find_unresolved(template) if n not in values]
    if leftover:
        names = ", ".join(f"__{n}__" for n in leftover)
        raise TmxTemplateError(template_name, f"placeholder(s) not available here: {names}")
    return substitute(template, values)


def render_templates(
    doc: MapDocument,
    ctx: RenderContext,
    header_template: str,
    source_template: str,
    style: str = STYLE_DEC,
    template_names: Tuple[str, str] = (HEADER_TEMPLATE_NAME, SOURCE_TEMPLATE_NAME),
) -> Tuple[str, str]:
    header = _fill(header_template, header_values(doc, ctx), template_names[0])
    source = _fill(source_template, source_values(doc, ctx, style), template_names[1])
    return header, source


def load_templates(template_dir: str = TEMPLATE_DIR) -> Tuple[str, str]:
    texts: List[str] = []
    for name in (HEADER_TEMPLATE_NAME, SOURCE_TEMPLATE_NAME):
        path = os.path.join(template_dir, name)
        try:
            with open(path, "r", encoding="utf-8") as f:
                texts.append(f.read())
        except FileNotFoundError:
            raise TmxTemplateError(path, "template file not found") from None
        except OSError as e:
            raise TmxTemplateError(path, f"error reading template: {e.strerror or e}") from e
    return texts[0], texts[1]


def tile_histogram(tiles: Iterable[int]) -> Dict[int, int]:
    counts = Counter(stored_value(t) for t in tiles)
    return dict(sorted(counts.items()))
