#!/usr/bin/env python3
"""
tmx_parser.py - Tiled .tmx reader for tmxc.py and watch_maps.py.

Only the first layer's CSV payload is read:

  <map width="2" height="2" ...>
    <layer name="ground" width="2" height="2">
      <data encoding="csv">
  1,2,
  3,4
  </data>
    </layer>
  </map>

Tile indices are kept exactly as Tiled writes them (1-based, 0 = empty).
"""

from __future__ import annotations

import re
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import List, Tuple

from tmx_errors import TmxIOError, TmxParseError, TmxSchemaError

SEPARATOR = ","
LINE_TERMINATORS = ("\r\n", "\n", "\r")
TILE_TOKEN = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class MapDocument:
    width: int
    height: int
    tiles: Tuple[int, ...]

    @property
    def expected_count(self) -> int:
        return self.width * self.height

    def is_complete(self) -> bool:
        return len(self.tiles) == self.expected_count


def _read_dimension(root: ET.Element, name: str, path: str) -> int:
    raw = root.get(name)
    if raw is None:
        raise TmxSchemaError(path, f"<{root.tag}> is missing the '{name}' attribute")
    try:
        value = int(raw.strip())
    except ValueError:
        raise TmxSchemaError(path, f"<{root.tag}> attribute {name}={raw!r} is not an integer") from None
    if value <= 0:
        raise TmxSchemaError(path, f"<{root.tag}> attribute {name}={value} must be positive")
    return value


def strip_line_terminators(payload: str) -> str:
    for term in LINE_TERMINATORS:
        payload = payload.replace(term, "")
    return payload


def split_tokens(payload: str, path: str = "<string>") -> List[str]:
    tokens = [t.strip() for t in payload.split(SEPARATOR)]
    # A trailing (or leading) separator leaves an empty token at the edge.
    while tokens and not tokens[-1]:
        tokens.pop()
    while tokens and not tokens[0]:
        tokens.pop(0)
    for idx, tok in enumerate(tokens):
        if not tok:
            raise TmxSchemaError(path, f"empty tile token at position {idx}")
    return tokens


def parse_tile_tokens(tokens: List[str], path: str = "<string>") -> List[int]:
    tiles: List[int] = []
    for idx, tok in enumerate(tokens):
        if not TILE_TOKEN.fullmatch(tok):
            raise TmxSchemaError(path, f"tile token {tok!r} at position {idx} is not a decimal integer")
        tiles.append(int(tok))
    return tiles


def _find_layer_data(root: ET.Element, path: str) -> ET.Element:
    layer = root.find(".//layer")
    if layer is None:
        raise TmxSchemaError(path, "map has no <layer> element")
    data = layer.find("data")
    if data is None:
        raise TmxSchemaError(path, f"layer {layer.get('name', '?')!r} has no <data> element")
    encoding = data.get("encoding", "csv")
    if encoding != "csv" or data.get("compression"):
        raise TmxSchemaError(path, f"unsupported layer data encoding {encoding!r}; re-save the map as CSV")
    return data


def parse_tmx_text(text: str, path: str = "<string>", strict: bool = False) -> MapDocument:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        line, col = e.position
        raise TmxParseError(path, str(e), line=line, col=col + 1) from e

    width = _read_dimension(root, "width", path)
    height = _read_dimension(root, "height", path)

    data = _find_layer_data(root, path)
    payload = strip_line_terminators(data.text or "")
    tokens = split_tokens(payload, path)
    if not tokens:
        raise TmxSchemaError(path, "layer <data> holds no tile indices")

    doc = MapDocument(width=width, height=height, tiles=tuple(parse_tile_tokens(tokens, path)))
    if strict and not doc.is_complete():
        raise TmxSchemaError(
            path,
            f"layer holds {len(doc.tiles)} tiles but map is {width}x{height} ({doc.expected_count})",
        )
    return doc


def parse_tmx(path: str, strict: bool = False) -> MapDocument:
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError:
        raise TmxIOError(path, "input file not found") from None
    except PermissionError:
        raise TmxIOError(path, "permission denied reading file") from None
    except UnicodeDecodeError as e:
        raise TmxIOError(path, f"file encoding error: {e}") from e
    except OSError as e:
        raise TmxIOError(path, f"error reading file: {e.strerror or e}") from e
    return parse_tmx_text(text, path, strict=strict)


if __name__ == "__main__":
    for arg in sys.argv[1:]:
        doc = parse_tmx(arg)
        print(f"{arg}: {doc.width}x{doc.height}, {len(doc.tiles)} tiles")
